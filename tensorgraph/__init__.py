"""Tensor computation graphs with shape inference, memory planning and CPU kernels."""

__version__ = "0.1.0"
__all__ = [
    "allocator",
    "cpu_kernels",
    "errors",
    "generators",
    "graph",
    "kernel",
    "kinds",
    "operator",
    "operator_utils",
    "operators",
    "runtime",
    "tensor",
]
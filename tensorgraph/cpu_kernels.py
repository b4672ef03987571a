"""Reference CPU kernels for concat, element-wise, transpose, relu and clip."""

from __future__ import annotations

from typing import Any

import numpy as np

from .errors import TensorGraphError
from .kernel import Kernel, register_kernel
from .kinds import DataType, Device, OpType
from .tensor import Tensor

__all__ = [
    "NaiveConcat",
    "NativeElementWise",
    "NaiveTranspose",
    "NativeUnary",
    "ClipKernel",
]

_SUPPORTED = (DataType.Float32, DataType.UInt32)


def _require_supported(op: Any) -> None:
    if op.dtype not in _SUPPORTED:
        raise TensorGraphError("Unimplemented")


def _values(tensor: Tensor) -> np.ndarray:
    return tensor.data.reshape(tensor.shape)


def _store(tensor: Tensor, values: np.ndarray) -> None:
    tensor.data[:] = np.broadcast_to(values, tensor.shape).ravel()


@register_kernel(Device.CPU, OpType.Concat, "ConcatNaive_CPU")
class NaiveConcat(Kernel):
    """Concatenates the inputs along the operator's axis."""

    def compute(self, op: Any, runtime: Any) -> None:
        _require_supported(op)
        output = op.get_output()
        joined = np.concatenate([_values(t) for t in op.inputs], axis=op.dim)
        _store(output, joined)


def _divide(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    if np.issubdtype(a.dtype, np.integer):
        return np.floor_divide(a, b)
    return np.divide(a, b)


_BINARY = {
    OpType.Add: np.add,
    OpType.Sub: np.subtract,
    OpType.Mul: np.multiply,
    OpType.Div: _divide,
}


@register_kernel(Device.CPU, OpType.Div, "divNaive_CPU")
@register_kernel(Device.CPU, OpType.Mul, "mulNaive_CPU")
@register_kernel(Device.CPU, OpType.Sub, "subNaive_CPU")
@register_kernel(Device.CPU, OpType.Add, "addNaive_CPU")
class NativeElementWise(Kernel):
    """Binary arithmetic with broadcasting of both inputs."""

    def compute(self, op: Any, runtime: Any) -> None:
        _require_supported(op)
        function = _BINARY.get(op.op_type)
        if function is None:
            raise TensorGraphError("Unimplemented")
        a, b = (_values(t) for t in op.inputs)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            result = function(a, b)
        _store(op.get_output(), result)


@register_kernel(Device.CPU, OpType.Transpose, "TransposeNaive_CPU")
class NaiveTranspose(Kernel):
    """Permutes the input axes."""

    def compute(self, op: Any, runtime: Any) -> None:
        _require_supported(op)
        permuted = np.transpose(_values(op.inputs[0]), op.permute)
        _store(op.get_output(), permuted)


@register_kernel(Device.CPU, OpType.Relu, "reluNaive_CPU")
class NativeUnary(Kernel):
    """Element-wise unary activations."""

    def compute(self, op: Any, runtime: Any) -> None:
        _require_supported(op)
        if op.op_type != OpType.Relu:
            raise TensorGraphError("Unimplemented")
        source = _values(op.inputs[0])
        _store(op.get_output(), np.maximum(source, source.dtype.type(0)))


@register_kernel(Device.CPU, OpType.Clip, "Clip_CPU")
class ClipKernel(Kernel):
    """Limits values to the operator's optional bounds; the lower bound wins."""

    def compute(self, op: Any, runtime: Any) -> None:
        _require_supported(op)
        source = _values(op.inputs[0])
        result = source
        if op.max_value is not None:
            result = np.where(source > op.max_value, op.max_value, result)
        if op.min_value is not None:
            result = np.where(source < op.min_value, op.min_value, result)
        _store(op.get_output(), result)
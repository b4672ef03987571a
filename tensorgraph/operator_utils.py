"""Shape, axis and index helpers shared by operators and kernels."""

from __future__ import annotations

from collections.abc import Sequence

from .errors import TensorGraphError, check
from .kinds import Device, OpType

__all__ = [
    "infer_broadcast",
    "get_real_axis",
    "locate_index",
    "delocate_index",
    "get_kernel_attrs_str",
]


def infer_broadcast(a: Sequence[int], b: Sequence[int]) -> list[int]:
    """Return the shape produced by multidirectional broadcasting of ``a`` and ``b``."""
    rank = max(len(a), len(b))
    padded_a = [1] * (rank - len(a)) + list(a)
    padded_b = [1] * (rank - len(b)) + list(b)
    result = []
    for x, y in zip(padded_a, padded_b):
        if x == y or y == 1:
            result.append(x)
        elif x == 1:
            result.append(y)
        else:
            raise TensorGraphError(
                f"Shapes {list(a)} and {list(b)} cannot be broadcast together"
            )
    return result


def get_real_axis(axis: int, rank: int) -> int:
    """Map a possibly negative ``axis`` onto ``range(rank)``."""
    check(rank >= 1, "rank must be at least 1")
    check(-rank <= axis <= rank - 1, f"axis {axis} out of range for rank {rank}")
    return rank + axis if axis < 0 else axis


def locate_index(flat_index: int, shape: Sequence[int]) -> list[int]:
    """Convert a row-major flat index into per-dimension coordinates."""
    coords = []
    rest = flat_index
    for extent in reversed(shape):
        rest, coord = divmod(rest, extent)
        coords.append(coord)
    coords.reverse()
    return coords


def delocate_index(
    shape_index: Sequence[int], shape: Sequence[int], stride: Sequence[int]
) -> int:
    """Convert coordinates into a flat offset, wrapping each by its extent."""
    check(len(shape_index) == len(shape), "index and shape rank differ")
    check(len(shape) == len(stride), "shape and stride rank differ")
    return sum((i % s) * st for i, s, st in zip(shape_index, shape, stride))


def _device_to_str(device: Device) -> str:
    if device is Device.CPU:
        return "CPU"
    raise TensorGraphError(f"Unsupported device {device!r}")


def _op_type_to_str(op_type: int) -> str:
    try:
        return str(OpType(op_type))
    except ValueError:
        return str(OpType.Unknown)


def get_kernel_attrs_str(kernel_attrs: tuple[Device, int]) -> str:
    """Describe a ``(device, op_type)`` kernel key as ``"CPU, Add"``."""
    device, op_type = kernel_attrs
    return f"{_device_to_str(device)}, {_op_type_to_str(op_type)}"
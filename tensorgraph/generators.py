"""Callables that fill a tensor's bound data with generated values."""

from __future__ import annotations

import numpy as np

from .errors import TensorGraphError
from .kinds import DataType

__all__ = [
    "DataGenerator",
    "IncrementalGenerator",
    "ValueGenerator",
    "one_generator",
    "zero_generator",
]

_SUPPORTED = (DataType.UInt32, DataType.Float32)


class DataGenerator:
    """Fills the first ``size`` elements of a UInt32 or Float32 array.

    Passed to :meth:`Tensor.set_data`; subclasses provide :meth:`_fill`.
    """

    def __call__(self, data: np.ndarray, size: int, dtype: DataType) -> None:
        if DataType(dtype) not in _SUPPORTED:
            raise TensorGraphError("Unimplemented")
        self._fill(data, size)

    def _fill(self, data: np.ndarray, size: int) -> None:
        raise TensorGraphError("Unimplemented")


class IncrementalGenerator(DataGenerator):
    """Writes 0, 1, 2, ... into the elements."""

    def _fill(self, data: np.ndarray, size: int) -> None:
        data[:size] = np.arange(size, dtype=data.dtype)


class ValueGenerator(DataGenerator):
    """Writes one constant into every element."""

    def __init__(self, value: int) -> None:
        self.value = value

    def _fill(self, data: np.ndarray, size: int) -> None:
        data[:size] = self.value


def one_generator() -> ValueGenerator:
    """A generator that writes ones."""
    return ValueGenerator(1)


def zero_generator() -> ValueGenerator:
    """A generator that writes zeros."""
    return ValueGenerator(0)
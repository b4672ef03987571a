"""Element data types, operator kinds and devices."""

from __future__ import annotations

import enum
from typing import Optional

import numpy as np

__all__ = ["DataType", "OpType", "Device"]


class DataType(enum.Enum):
    """Tensor element type, numbered as in the ONNX element-type table."""

    Undefine = 0
    Float32 = 1
    UInt8 = 2
    Int8 = 3
    UInt16 = 4
    Int16 = 5
    Int32 = 6
    Int64 = 7
    String = 8
    Bool = 9
    Float16 = 10
    Double = 11
    UInt32 = 12
    UInt64 = 13
    BFloat16 = 16

    @property
    def index(self) -> int:
        return self.value

    @property
    def size(self) -> int:
        """Bytes occupied by one element."""
        return _SIZES[self.value]

    @property
    def cpu_type(self) -> int:
        """Index of the CPU storage type, or -1 when there is none."""
        return _CPU_TYPES[self.value]

    @property
    def storage(self) -> Optional[np.dtype]:
        """The numpy type used to hold elements of this type on the CPU."""
        return _STORAGE.get(self.value)

    def __lt__(self, other: "DataType") -> bool:
        if not isinstance(other, DataType):
            return NotImplemented
        return self.value < other.value

    def __str__(self) -> str:
        return self.name


_SIZES = {
    0: 0,
    1: 4,
    2: 1,
    3: 1,
    4: 2,
    5: 2,
    6: 4,
    7: 8,
    8: 32,
    9: 1,
    10: 2,
    11: 8,
    12: 4,
    13: 8,
    16: 2,
}

_CPU_TYPES = {
    0: -1,
    1: 0,
    2: 2,
    3: 3,
    4: 4,
    5: 5,
    6: 6,
    7: 7,
    8: -1,
    9: 3,
    10: 4,
    11: 9,
    12: 1,
    13: 8,
    16: 4,
}

_STORAGE = {
    0: np.dtype(np.bool_),
    1: np.dtype(np.float32),
    2: np.dtype(np.uint8),
    3: np.dtype(np.int8),
    4: np.dtype(np.uint16),
    5: np.dtype(np.int16),
    6: np.dtype(np.int32),
    7: np.dtype(np.int64),
    8: np.dtype("S1"),
    9: np.dtype(np.int8),
    10: np.dtype(np.uint16),
    11: np.dtype(np.float64),
    12: np.dtype(np.uint32),
    13: np.dtype(np.uint64),
    16: np.dtype(np.uint16),
}


class OpType(enum.IntEnum):
    """Kind of a graph operator."""

    Unknown = 0
    Add = 1
    Cast = 2
    Clip = 3
    Concat = 4
    Div = 5
    Mul = 6
    MatMul = 7
    Relu = 8
    Sub = 9
    Transpose = 10

    def __str__(self) -> str:
        return self.name


class Device(enum.Enum):
    """Device an operator runs on."""

    CPU = 1
"""Graph objects with unique ids, and tensors that view simulated memory."""

from __future__ import annotations

import abc
import itertools
import operator
import weakref
from collections.abc import Callable, Iterable, Sequence
from typing import Any, Optional

import numpy as np

from .errors import TensorGraphError, check, vec_to_string
from .kinds import DataType

__all__ = ["GraphObject", "Tensor"]

_guid_counter = itertools.count(1)
_fuid_counter = itertools.count(1)


class GraphObject(abc.ABC):
    """Base of every graph node; each instance receives a fresh global id."""

    def __init__(self) -> None:
        self._guid = next(_guid_counter)

    @property
    def guid(self) -> int:
        return self._guid

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human-readable description of the object."""

    def print(self) -> None:
        """Write the description to standard output."""
        print(str(self))


def _format_element(value: Any) -> str:
    if isinstance(value, (np.floating, float)):
        return format(float(value), "g")
    if isinstance(value, bytes):
        return value.decode("latin-1")
    if isinstance(value, np.bytes_):
        return bytes(value).decode("latin-1")
    return str(int(value))


class Tensor(GraphObject):
    """A typed, shaped tensor whose data lives in a buffer bound after planning."""

    def __init__(self, shape: Sequence[int], dtype: DataType, runtime: Any) -> None:
        super().__init__()
        self._shape = list(shape)
        self._size = _product(self._shape)
        self.dtype = DataType(dtype)
        self.runtime = runtime
        self._fuid = next(_fuid_counter)
        self._targets: list[weakref.ref] = []
        self._source: Optional[weakref.ref] = None
        self._data: Optional[np.ndarray] = None

    # ------------------------------------------------------------------ shape
    @property
    def shape(self) -> list[int]:
        return list(self._shape)

    @shape.setter
    def shape(self, new_shape: Sequence[int]) -> None:
        self._shape = list(new_shape)
        self._size = _product(self._shape)

    @property
    def size(self) -> int:
        """Number of elements."""
        return self._size

    @property
    def bytes(self) -> int:
        """Bytes needed to hold the elements."""
        return self._size * self.dtype.size

    @property
    def rank(self) -> int:
        return len(self._shape)

    @property
    def fuid(self) -> int:
        return self._fuid

    # ------------------------------------------------------------- relations
    @property
    def targets(self) -> list[Any]:
        """Operators that read this tensor."""
        return [op for op in (ref() for ref in self._targets) if op is not None]

    @property
    def source(self) -> Optional[Any]:
        """The operator that produces this tensor, if any."""
        return self._source() if self._source is not None else None

    def _add_target(self, op: Any) -> None:
        self._targets.append(weakref.ref(op))

    def _set_source(self, op: Optional[Any]) -> None:
        self._source = weakref.ref(op) if op is not None else None

    def _remove_target(self, op: Any) -> None:
        self._targets = [ref for ref in self._targets if ref() is not op]

    # ------------------------------------------------------------------ data
    @property
    def has_data(self) -> bool:
        return self._data is not None

    @property
    def data(self) -> np.ndarray:
        """Flat writable view of the tensor's elements."""
        check(self._data is not None, "Tensor has no data bound")
        return self._data

    def bind(self, buffer: Any, offset: int = 0) -> None:
        """View ``self.size`` elements of ``buffer`` starting at byte ``offset``."""
        storage = self.dtype.storage
        check(storage is not None, f"No storage type for {self.dtype}")
        nbytes = memoryview(buffer).nbytes
        needed = self._size * storage.itemsize
        check(
            offset >= 0 and offset + needed <= nbytes,
            f"Buffer of {nbytes} bytes cannot hold {needed} bytes at offset {offset}",
        )
        self._data = np.frombuffer(
            buffer, dtype=storage, count=self._size, offset=offset
        )

    def set_data(self, generator: Callable[[np.ndarray, int, DataType], None]) -> None:
        """Fill the bound data by calling ``generator(data, size, dtype)``."""
        check(self._data is not None, "Tensor has no data bound")
        generator(self._data, self._size, self.dtype)

    def format_data(self) -> str:
        """Render the elements as nested bracketed rows."""
        values = self.data
        lines = [f"Tensor: {self.guid}\n"]
        if not self._shape:
            lines.append(_format_element(values[0]) + "\n")
            return "".join(lines)
        block_sizes = list(itertools.accumulate(reversed(self._shape), operator.mul))
        block_sizes.reverse()
        column = block_sizes[-1]
        last = self._size - 1
        for i, value in enumerate(values):
            lines.append("[" * sum(1 for block in block_sizes if i % block == 0))
            lines.append(_format_element(value))
            lines.append(
                "]" * sum(1 for block in block_sizes if i % block == block - 1)
            )
            if i != last:
                lines.append(", ")
            if i % column == column - 1:
                lines.append("\n")
        return "".join(lines)

    def print_data(self) -> None:
        """Print the formatted elements."""
        check(self._data is not None, "Tensor has no data bound")
        if not self.runtime.is_cpu():
            raise TensorGraphError("Unimplemented")
        print(self.format_data())

    def equal_data(self, other: Any, relative_error: float = 1e-6) -> bool:
        """Compare elements with another tensor or a sequence of values."""
        mine = self.data
        if isinstance(other, Tensor):
            check(other._data is not None, "Tensor has no data bound")
            check(self.dtype == other.dtype, "Data types differ")
            check(self.runtime.is_cpu(), "Tensor is not on the CPU")
            check(other.runtime.is_cpu(), "Tensor is not on the CPU")
            if self._size != other._size:
                return False
            theirs = other._data
        else:
            theirs = np.asarray(list(_flatten(other)), dtype=mine.dtype)
            check(theirs.size == self._size, "Sizes differ")
        return _equal_values(mine, theirs, relative_error)

    def __str__(self) -> str:
        if self._data is not None:
            pointer = hex(self._data.__array_interface__["data"][0])
        else:
            pointer = "nullptr data"
        text = (
            f"Tensor {self.guid}, Fuid {self._fuid}, shape {vec_to_string(self._shape)}, "
            f"dtype {self.dtype}, {self.runtime}, {pointer}\n"
        )
        source = self.source
        text += f", source {source.guid}" if source is not None else ", source None"
        text += ", targets " + vec_to_string(op.guid for op in self.targets)
        return text


def _product(shape: Iterable[int]) -> int:
    result = 1
    for extent in shape:
        result *= extent
    return result


def _flatten(values: Any) -> Iterable[Any]:
    if isinstance(values, np.ndarray):
        return values.ravel().tolist()
    return values


def _equal_values(a: np.ndarray, b: np.ndarray, relative_error: float) -> bool:
    if not np.issubdtype(a.dtype, np.floating):
        return bool(np.array_equal(a, b))
    x = a.astype(np.float64)
    y = b.astype(np.float64)
    abs_x, abs_y = np.abs(x), np.abs(y)
    diff = np.abs(x - y)
    smaller = np.minimum(abs_x, abs_y)
    larger = np.maximum(abs_x, abs_y)
    with np.errstate(divide="ignore", invalid="ignore"):
        relative = np.where(smaller == 0.0, 0.0, diff / np.where(larger == 0.0, 1.0, larger))
    failing = np.where(smaller == 0.0, diff > relative_error, relative > relative_error)
    bad = np.flatnonzero(failing)
    if bad.size:
        index = int(bad[0])
        print(f"Error on {index}: {x[index]:f} {y[index]:f}")
        return False
    return True
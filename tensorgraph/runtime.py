"""Runtimes: execute a graph's operators and provide raw memory."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from . import cpu_kernels  # noqa: F401  (registers the CPU kernels)
from .errors import check
from .kernel import KernelRegistry
from .kinds import Device

if TYPE_CHECKING:
    from .graph import Graph

__all__ = ["Runtime", "NativeCpuRuntime"]

_WORD = 8


class Runtime(abc.ABC):
    """A device that runs graphs and hands out memory."""

    def __init__(self, device: Device) -> None:
        self.device = Device(device)

    @abc.abstractmethod
    def run(self, graph: "Graph") -> None:
        """Run every operator of ``graph`` with its registered kernel."""

    @abc.abstractmethod
    def alloc(self, size: int) -> Any:
        """Return a zeroed buffer of at least ``size`` bytes."""

    @abc.abstractmethod
    def dealloc(self, buffer: Any) -> None:
        """Give back a buffer obtained from :meth:`alloc`."""

    def is_cpu(self) -> bool:
        return True

    @abc.abstractmethod
    def __str__(self) -> str:
        """Name of the runtime."""


class NativeCpuRuntime(Runtime):
    """Runtime executing kernels on the host with bytearray buffers."""

    _instance: ClassVar[Optional["NativeCpuRuntime"]] = None

    def __init__(self) -> None:
        super().__init__(Device.CPU)
        self._allocated = 0

    @classmethod
    def instance(cls) -> "NativeCpuRuntime":
        """Return the shared CPU runtime."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def allocated(self) -> int:
        """Bytes handed out and not yet given back."""
        return self._allocated

    def run(self, graph: "Graph") -> None:
        registry = KernelRegistry.instance()
        for op in graph.ops:
            kernel = registry.get_kernel((self.device, op.op_type))
            kernel.compute(op, self)

    def alloc(self, size: int) -> bytearray:
        """Zeroed buffer of ``size`` bytes rounded up to a multiple of 8."""
        check(size >= 0, "Allocation size must not be negative")
        buffer = bytearray((size + _WORD - 1) // _WORD * _WORD)
        self._allocated += len(buffer)
        return buffer

    def dealloc(self, buffer: Any) -> None:
        check(isinstance(buffer, bytearray), "Buffer was not allocated by this runtime")
        check(len(buffer) <= self._allocated, "Buffer was not allocated by this runtime")
        self._allocated -= len(buffer)

    def __str__(self) -> str:
        return "CPU Runtime"
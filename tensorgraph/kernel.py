"""Kernel interface and the registry that maps (device, op type) to kernels."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any, Callable, ClassVar, NamedTuple, Optional

from .errors import check
from .kinds import Device
from .operator_utils import get_kernel_attrs_str

if TYPE_CHECKING:
    pass

__all__ = ["Kernel", "KernelRecord", "KernelRegistry", "register_kernel"]


class Kernel(abc.ABC):
    """Computes the outputs of one operator."""

    @abc.abstractmethod
    def compute(self, op: Any, runtime: Any) -> None:
        """Execute ``op`` on ``runtime``."""


class KernelRecord(NamedTuple):
    kernel: Kernel
    name: str
    id: int


def _normalize(key: tuple[Device, int]) -> tuple[Device, int]:
    device, op_type = key
    return Device(device), int(op_type)


class KernelRegistry:
    """Maps ``(device, op_type)`` keys to kernel instances."""

    _instance: ClassVar[Optional["KernelRegistry"]] = None

    def __init__(self) -> None:
        self._kernels: dict[tuple[Device, int], KernelRecord] = {}

    @classmethod
    def instance(cls) -> "KernelRegistry":
        """Return the process-wide registry."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def register(self, key: tuple[Device, int], kernel: Kernel, name: str) -> bool:
        key = _normalize(key)
        check(key not in self._kernels, "Kernel already registered")
        self._kernels[key] = KernelRecord(kernel, name, len(self._kernels) + 1)
        return True

    def get_kernel(self, key: tuple[Device, int]) -> Kernel:
        key = _normalize(key)
        record = self._kernels.get(key)
        check(
            record is not None,
            "Kernel not found for key {" + get_kernel_attrs_str(key) + "}",
        )
        return record.kernel

    def get_kernel_item(self, key: tuple[Device, int]) -> KernelRecord:
        return self._kernels[_normalize(key)]


def register_kernel(
    device: Device, op_type: int, name: str
) -> Callable[[type[Kernel]], type[Kernel]]:
    """Class decorator registering an instance of the kernel in the global registry."""

    def decorator(kernel_class: type[Kernel]) -> type[Kernel]:
        KernelRegistry.instance().register((device, op_type), kernel_class(), name)
        return kernel_class

    return decorator
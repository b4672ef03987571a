"""Offline memory planner: simulate allocations, then allocate the peak once."""

from __future__ import annotations

import bisect
from typing import Any, Optional

from .errors import check

__all__ = ["Allocator"]


class Allocator:
    """Plans tensor offsets in one arena with best-fit reuse of freed blocks.

    ``alloc`` and ``free`` only simulate; ``get_ptr`` performs the single real
    allocation of the peak size, after which the plan is frozen.
    """

    def __init__(self, runtime: Any) -> None:
        self._runtime = runtime
        self._used = 0
        self._peak = 0
        # Matches the widest supported element type (8 bytes).
        self._alignment = 8
        self._ptr: Optional[Any] = None
        self._starts: list[int] = []
        self._sizes: dict[int, int] = {}

    @property
    def used(self) -> int:
        return self._used

    @property
    def peak(self) -> int:
        return self._peak

    @property
    def alignment(self) -> int:
        return self._alignment

    @property
    def free_blocks(self) -> list[tuple[int, int]]:
        """Free ``(offset, size)`` blocks in address order."""
        return [(start, self._sizes[start]) for start in self._starts]

    def _aligned(self, size: int) -> int:
        return ((size - 1) // self._alignment + 1) * self._alignment

    def _add_block(self, start: int, size: int) -> None:
        bisect.insort(self._starts, start)
        self._sizes[start] = size

    def _remove_block(self, start: int) -> int:
        self._starts.pop(bisect.bisect_left(self._starts, start))
        return self._sizes.pop(start)

    def alloc(self, size: int) -> int:
        """Reserve ``size`` bytes and return their offset from the arena start."""
        check(self._ptr is None, "Memory has already been allocated")
        size = self._aligned(size)

        candidates = [(s, a) for a, s in self._sizes.items() if s >= size]
        if candidates:
            block_size, addr = min(candidates)
            self._remove_block(addr)
            if block_size > size:
                self._add_block(addr + size, block_size - size)
            self._used += size
            return addr

        if self._starts:
            last = self._starts[-1]
            last_size = self._sizes[last]
            if last + last_size == self._peak:
                self._remove_block(last)
                self._used += size
                self._peak += size - last_size
                return last

        addr = self._peak
        self._peak += size
        self._used += size
        return addr

    def free(self, addr: int, size: int) -> None:
        """Return the block at ``addr`` of ``size`` bytes, merging with neighbours."""
        check(self._ptr is None, "Memory has already been allocated")
        size = self._aligned(size)
        check(addr >= 0 and addr + size <= self._peak, "Block lies outside the arena")

        index = bisect.bisect_right(self._starts, addr)
        start, total = addr, size
        if index > 0:
            prev = self._starts[index - 1]
            prev_end = prev + self._sizes[prev]
            check(prev_end <= addr, "Block overlaps a free block")
            if prev_end == addr:
                start = prev
                total += self._remove_block(prev)
        if index < len(self._starts):
            nxt = self._starts[index]
            check(addr + size <= nxt, "Block overlaps a free block")
            if nxt == addr + size:
                total += self._remove_block(nxt)
        self._add_block(start, total)
        self._used -= size

    def get_ptr(self) -> Any:
        """Allocate the peak size on the runtime once and return the buffer."""
        if self._ptr is None:
            self._ptr = self._runtime.alloc(self._peak)
            print(f"Allocator really alloc: {self._peak} bytes")
        return self._ptr

    def info(self) -> None:
        print(f"Used memory: {self._used}, peak memory: {self._peak}")

    def close(self) -> None:
        """Give the real allocation back to the runtime."""
        if self._ptr is not None:
            self._runtime.dealloc(self._ptr)
            self._ptr = None

    def __enter__(self) -> "Allocator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
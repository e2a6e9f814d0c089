"""
Single-owner byte buffers.

A Buffer is released exactly once by whoever owns it. Handing a buffer to
someone else is a move (`take()`), after which the old handle is dead.
Code that only reads bytes it does not own works on a plain memoryview.

Every Buffer comes from an Allocator, which counts allocations and releases
so callers can check what a conversion cost and that nothing leaked.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Union

from .errors import AllocationFailure, BufferReleasedError

logger = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]


class Buffer:
    __slots__ = ("_data", "_allocator")

    def __init__(self, data: bytearray, allocator: Optional["Allocator"] = None) -> None:
        self._data: Optional[bytearray] = data
        self._allocator = allocator

    def _checked(self) -> bytearray:
        if self._data is None:
            raise BufferReleasedError("buffer has already been released")
        return self._data

    @property
    def released(self) -> bool:
        return self._data is None

    @property
    def allocator(self) -> Optional["Allocator"]:
        return self._allocator

    @property
    def view(self) -> memoryview:
        return memoryview(self._checked())

    @property
    def size(self) -> int:
        return len(self._checked())

    def __len__(self) -> int:
        return self.size

    def tobytes(self) -> bytes:
        return bytes(self._checked())

    __bytes__ = tobytes

    def take(self) -> "Buffer":
        """Move ownership into a new handle; this one can no longer be used."""
        data = self._checked()
        self._data = None
        return Buffer(data, self._allocator)

    def release(self) -> None:
        data = self._checked()
        self._data = None
        if self._allocator is not None:
            self._allocator._released(len(data))

    def __enter__(self) -> "Buffer":
        return self

    def __exit__(self, *exc_info) -> None:
        if not self.released:
            self.release()

    def __repr__(self) -> str:
        if self.released:
            return "Buffer(<released>)"
        return f"Buffer(size={self.size})"


class Allocator:
    """Counts buffers; shared by concurrent requests, so updates are locked."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.allocations = 0
        self.releases = 0
        self.live_bytes = 0

    @property
    def live(self) -> int:
        with self._lock:
            return self.allocations - self.releases

    def allocate(self, size: int) -> Buffer:
        if size < 0:
            raise ValueError(f"negative buffer size: {size}")
        try:
            data = bytearray(size)
        except MemoryError as exc:
            logger.critical("Failed to allocate the conversion buffer (%d bytes)", size)
            raise AllocationFailure(size) from exc
        with self._lock:
            self.allocations += 1
            self.live_bytes += size
        return Buffer(data, self)

    def copy(self, data: BytesLike) -> Buffer:
        buf = self.allocate(len(data))
        buf.view[:] = data
        return buf

    def _released(self, size: int) -> None:
        with self._lock:
            self.releases += 1
            self.live_bytes -= size


DEFAULT_ALLOCATOR = Allocator()

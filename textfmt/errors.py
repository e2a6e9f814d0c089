from __future__ import annotations

from typing import Optional


class TranscodeError(Exception):
    """Base class for recoverable conversion failures."""


class InvalidEncoding(TranscodeError):
    def __init__(self, message: str, encoding: Optional[str] = None) -> None:
        super().__init__(message)
        self.encoding = encoding


class OversizedInput(TranscodeError):
    def __init__(self, size: int, limit: int, unit_size: int = 2) -> None:
        self.size = size
        self.limit = limit
        self.max_chars = limit // unit_size
        super().__init__(
            f"The file is too big ({size} bytes!) "
            f"Max file size is {limit} bytes ({self.max_chars} characters)"
        )


class AllocationFailure(Exception):
    """The allocator could not provide a buffer. Not meant to be recovered from."""

    def __init__(self, size: int) -> None:
        super().__init__(f"Failed to allocate the conversion buffer ({size} bytes)")
        self.size = size


class BufferReleasedError(RuntimeError):
    pass

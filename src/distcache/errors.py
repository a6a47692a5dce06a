"""Error taxonomy for the cache accessor layer.

Every error raised here reaches the immediate caller unchanged. The
accessor never converts a failure into a cache miss: ``None`` is reserved
for "the store has no entry".
"""

from __future__ import annotations

import asyncio


class CacheError(Exception):
    """Base exception for cache accessor errors."""

    pass


class ValidationError(CacheError):
    """Invalid argument: empty key, missing producer, or a None value to store."""

    pass


class SerializationError(CacheError):
    """A value could not be encoded to bytes."""

    pass


class DeserializationError(CacheError):
    """Stored bytes could not be decoded into the requested type."""

    pass


class StoreError(CacheError):
    """The backing byte store failed (connectivity, timeout, quota)."""

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class CancelledError(asyncio.CancelledError):
    """Raised when a CancellationToken passed to an operation was cancelled.

    Subclasses ``asyncio.CancelledError`` so callers handle token-driven and
    task-driven cancellation the same way.
    """

    pass

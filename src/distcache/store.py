"""Byte store contracts consumed by the accessors.

A store maps string keys to opaque byte payloads. Implementations own
expiration, eviction and the ordering of concurrent writes; they report
every failure as StoreError.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from distcache.cancellation import CancellationToken
    from distcache.options import EntryOptions


@runtime_checkable
class ByteStore(Protocol):
    """Blocking byte store."""

    def get(self, key: str, *, cancel: CancellationToken | None = None) -> bytes | None:
        """Return the stored payload, or None on a miss."""
        ...

    def set(
        self,
        key: str,
        value: bytes,
        options: EntryOptions,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        """Store a payload, replacing any existing entry."""
        ...

    def remove(self, key: str, *, cancel: CancellationToken | None = None) -> None:
        """Delete an entry. Removing a missing key is not an error."""
        ...


@runtime_checkable
class AsyncByteStore(Protocol):
    """Byte store whose operations may suspend the calling task."""

    async def get(
        self, key: str, *, cancel: CancellationToken | None = None
    ) -> bytes | None: ...

    async def set(
        self,
        key: str,
        value: bytes,
        options: EntryOptions,
        *,
        cancel: CancellationToken | None = None,
    ) -> None: ...

    async def remove(self, key: str, *, cancel: CancellationToken | None = None) -> None: ...

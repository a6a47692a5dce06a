"""In-process byte stores.

Dict-backed implementations of ByteStore and AsyncByteStore. They honor
every EntryOptions kind (expired entries are dropped lazily on access)
and are safe to share between threads. Intended for tests and
single-process deployments.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from distcache.cancellation import check_cancelled
from distcache.options import ExpirationKind

if TYPE_CHECKING:
    from distcache.cancellation import CancellationToken
    from distcache.options import EntryOptions


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Entry:
    payload: bytes
    expires_at: datetime | None
    sliding: timedelta | None = None


class MemoryStore:
    """Thread-safe in-memory ByteStore."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def get(self, key: str, *, cancel: CancellationToken | None = None) -> bytes | None:
        check_cancelled(cancel)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at is not None and entry.expires_at <= now:
                del self._entries[key]
                return None
            if entry.sliding is not None:
                entry.expires_at = now + entry.sliding
            return entry.payload

    def set(
        self,
        key: str,
        value: bytes,
        options: EntryOptions,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        check_cancelled(cancel)
        now = self._clock()
        sliding = options.value if options.kind is ExpirationKind.SLIDING else None
        entry = _Entry(
            payload=bytes(value),
            expires_at=options.expires_at(now),
            sliding=sliding,  # type: ignore[arg-type]
        )
        with self._lock:
            self._entries[key] = entry

    def remove(self, key: str, *, cancel: CancellationToken | None = None) -> None:
        check_cancelled(cancel)
        with self._lock:
            self._entries.pop(key, None)

    def __contains__(self, key: object) -> bool:
        # Does not refresh sliding entries
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[call-overload]
            if entry is None:
                return False
            return entry.expires_at is None or entry.expires_at > self._clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class AsyncMemoryStore:
    """AsyncByteStore over a MemoryStore.

    Every operation yields to the event loop once before touching the
    entries, so concurrent tasks interleave the way they would against a
    networked store.
    """

    def __init__(self, backend: MemoryStore | None = None) -> None:
        self.backend = backend if backend is not None else MemoryStore()

    async def get(self, key: str, *, cancel: CancellationToken | None = None) -> bytes | None:
        await asyncio.sleep(0)
        return self.backend.get(key, cancel=cancel)

    async def set(
        self,
        key: str,
        value: bytes,
        options: EntryOptions,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        await asyncio.sleep(0)
        self.backend.set(key, value, options, cancel=cancel)

    async def remove(self, key: str, *, cancel: CancellationToken | None = None) -> None:
        await asyncio.sleep(0)
        self.backend.remove(key, cancel=cancel)

    def __contains__(self, key: object) -> bool:
        return key in self.backend

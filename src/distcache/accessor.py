"""Cache-aside accessors.

Provides typed reads and writes over a byte store plus get-or-populate:
fetch a key, and on a miss compute the value with a caller-supplied
producer, store it and return it.

Example:
    cache = CacheAccessor(MemoryStore())
    user = cache.get_or_populate("user:1", lambda: load_user(1), User)

    acache = AsyncCacheAccessor(AsyncRedisStore(await get_redis()))
    user = await acache.get_or_populate("user:1", fetch_user, User)

Concurrency: accessors hold no lock and no mutable state. Two callers
missing the same key concurrently will both run their producer and both
write; the store decides which write wins (usually the last one). Callers
that need stampede protection must add it around the accessor.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar, Union

from distcache.cancellation import check_cancelled
from distcache.errors import ValidationError
from distcache.options import DEFAULT_ENTRY_OPTIONS
from distcache.serialization import DEFAULT_SERIALIZER

if TYPE_CHECKING:
    from distcache.cancellation import CancellationToken
    from distcache.options import EntryOptions
    from distcache.serialization import Serializer
    from distcache.store import AsyncByteStore, ByteStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Producer = Callable[[], Union[T, None]]
AsyncProducer = Callable[[], Union[Awaitable[Union[T, None]], T, None]]


def _validate_key(key: Any) -> None:
    if not isinstance(key, str) or not key:
        raise ValidationError(f"cache key must be a non-empty string, got {key!r}")


def _validate_value(value: Any) -> None:
    if value is None:
        raise ValidationError("cannot cache None; absent values are never stored")


def _validate_producer(producer: Any) -> None:
    if producer is None or not callable(producer):
        raise ValidationError(f"producer must be callable, got {producer!r}")


class CacheAccessor:
    """Blocking cache-aside operations over a ByteStore."""

    def __init__(self, store: ByteStore, serializer: Serializer = DEFAULT_SERIALIZER) -> None:
        self.store = store
        self.serializer = serializer

    def get(
        self,
        key: str,
        type_: Any = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Any:
        """Read and decode a cached value.

        Returns None on a miss. A payload that fails to decode raises
        DeserializationError; it is never reported as a miss.
        """
        _validate_key(key)
        return self._read(key, type_, cancel)

    def set(
        self,
        key: str,
        value: Any,
        options: EntryOptions | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        """Encode and store a value. Encoding happens before any store call."""
        _validate_key(key)
        _validate_value(value)
        self._write(key, value, options, cancel)

    def get_or_populate(
        self,
        key: str,
        producer: Producer[T],
        type_: Any = None,
        options: EntryOptions | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> T | None:
        """Return the cached value, or produce, store and return it.

        The producer runs at most once and only on a miss. A cached value
        always wins over recomputation. A None result is returned as-is and
        not stored, so the next call runs the producer again.
        """
        _validate_key(key)
        _validate_producer(producer)

        cached = self._read(key, type_, cancel)
        if cached is not None:
            return cached  # type: ignore[no-any-return]

        check_cancelled(cancel)
        value = producer()
        if inspect.isawaitable(value):
            if inspect.iscoroutine(value):
                value.close()
            raise ValidationError(
                "producer returned an awaitable; use AsyncCacheAccessor for async producers"
            )
        if value is None:
            logger.debug("Producer returned None, not caching", extra={"cache_key": key})
            return None

        self._write(key, value, options, cancel)
        logger.debug("Populated cache entry", extra={"cache_key": key})
        return value

    def remove(self, key: str, *, cancel: CancellationToken | None = None) -> None:
        """Delete a cached entry."""
        _validate_key(key)
        check_cancelled(cancel)
        self.store.remove(key, cancel=cancel)

    def _read(self, key: str, type_: Any, cancel: CancellationToken | None) -> Any:
        check_cancelled(cancel)
        payload = self.store.get(key, cancel=cancel)
        if payload is None:
            logger.debug("Cache miss", extra={"cache_key": key})
            return None
        logger.debug("Cache hit", extra={"cache_key": key})
        return self.serializer.decode(payload, type_)

    def _write(
        self,
        key: str,
        value: Any,
        options: EntryOptions | None,
        cancel: CancellationToken | None,
    ) -> None:
        payload = self.serializer.encode(value)
        check_cancelled(cancel)
        self.store.set(
            key,
            payload,
            options if options is not None else DEFAULT_ENTRY_OPTIONS,
            cancel=cancel,
        )


class AsyncCacheAccessor:
    """Cache-aside operations over an AsyncByteStore.

    Within one call the store read, the producer and the store write run
    strictly in that order. Separate calls interleave freely.
    """

    def __init__(
        self, store: AsyncByteStore, serializer: Serializer = DEFAULT_SERIALIZER
    ) -> None:
        self.store = store
        self.serializer = serializer

    async def get(
        self,
        key: str,
        type_: Any = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Any:
        """Read and decode a cached value; None on a miss."""
        _validate_key(key)
        return await self._read(key, type_, cancel)

    async def set(
        self,
        key: str,
        value: Any,
        options: EntryOptions | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        """Encode and store a value."""
        _validate_key(key)
        _validate_value(value)
        await self._write(key, value, options, cancel)

    async def get_or_populate(
        self,
        key: str,
        producer: AsyncProducer[T],
        type_: Any = None,
        options: EntryOptions | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> T | None:
        """Return the cached value, or produce, store and return it.

        ``producer`` may be a plain callable or return an awaitable
        (coroutine function, future); either way it is invoked at most once
        and only after the read has completed.

        If cancellation arrives while the store write is in flight, whether
        the entry was written depends on the store.
        """
        _validate_key(key)
        _validate_producer(producer)

        cached = await self._read(key, type_, cancel)
        if cached is not None:
            return cached  # type: ignore[no-any-return]

        check_cancelled(cancel)
        value = producer()
        if inspect.isawaitable(value):
            value = await value
        if value is None:
            logger.debug("Producer returned None, not caching", extra={"cache_key": key})
            return None

        await self._write(key, value, options, cancel)
        logger.debug("Populated cache entry", extra={"cache_key": key})
        return value  # type: ignore[no-any-return]

    async def remove(self, key: str, *, cancel: CancellationToken | None = None) -> None:
        """Delete a cached entry."""
        _validate_key(key)
        check_cancelled(cancel)
        await self.store.remove(key, cancel=cancel)

    async def _read(self, key: str, type_: Any, cancel: CancellationToken | None) -> Any:
        check_cancelled(cancel)
        payload = await self.store.get(key, cancel=cancel)
        if payload is None:
            logger.debug("Cache miss", extra={"cache_key": key})
            return None
        logger.debug("Cache hit", extra={"cache_key": key})
        return self.serializer.decode(payload, type_)

    async def _write(
        self,
        key: str,
        value: Any,
        options: EntryOptions | None,
        cancel: CancellationToken | None,
    ) -> None:
        payload = self.serializer.encode(value)
        check_cancelled(cancel)
        await self.store.set(
            key,
            payload,
            options if options is not None else DEFAULT_ENTRY_OPTIONS,
            cancel=cancel,
        )

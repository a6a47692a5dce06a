"""Redis-backed byte stores.

Implements ByteStore over redis-py's blocking client and AsyncByteStore
over ``redis.asyncio``. Payloads are stored as raw bytes under namespaced
keys (see distcache.keys). Expiration mapping:

- NONE: plain SET, no TTL
- RELATIVE: SET ... PX <ttl>
- ABSOLUTE: SET ... PXAT <unix ms>
- SLIDING: SET ... PX <window> plus a sidecar key holding the window;
  every hit renews both with PEXPIRE

Redis cannot abort an issued command, so a CancellationToken is only
checked before each round trip.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import redis
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from distcache.cancellation import check_cancelled
from distcache.config import settings
from distcache.errors import StoreError
from distcache.keys import CacheKeys
from distcache.options import ExpirationKind

if TYPE_CHECKING:
    from distcache.cancellation import CancellationToken
    from distcache.options import EntryOptions

# Module-level connection pools
_redis_client: aioredis.Redis | None = None
_sync_redis_client: redis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Get or create the async Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = aioredis.from_url(  # type: ignore[no-untyped-call]
            settings.redis_url,
            encoding="utf-8",
            decode_responses=False,  # We're storing bytes
        )
    return _redis_client


async def close_redis() -> None:
    """Close async Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


def get_sync_redis() -> redis.Redis:
    """Get or create the blocking Redis client."""
    global _sync_redis_client
    if _sync_redis_client is None:
        _sync_redis_client = redis.Redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=False,
        )
    return _sync_redis_client


def close_sync_redis() -> None:
    """Close blocking Redis connections."""
    global _sync_redis_client
    if _sync_redis_client is not None:
        _sync_redis_client.close()
        _sync_redis_client = None


def _set_arguments(options: EntryOptions) -> dict[str, int]:
    """Expiration keyword arguments for SET."""
    if options.kind is ExpirationKind.NONE:
        return {}
    if options.kind is ExpirationKind.ABSOLUTE:
        return {"pxat": int(options.value.timestamp() * 1000)}  # type: ignore[union-attr]
    ttl_ms = options.ttl_ms()
    # PX rejects 0; round sub-millisecond lifetimes up
    return {"px": max(1, ttl_ms or 0)}


def _parse_window(window: Any, key: str) -> int:
    """Sliding window stored in a sidecar key, in milliseconds."""
    try:
        window_ms = int(window)
    except (TypeError, ValueError) as exc:
        raise StoreError(f"Corrupt sliding window for entry: {window!r}", key=key) from exc
    if window_ms <= 0:
        raise StoreError(f"Corrupt sliding window for entry: {window!r}", key=key)
    return window_ms


def _sliding_window_ms(options: EntryOptions) -> int | None:
    if options.kind is not ExpirationKind.SLIDING:
        return None
    return max(1, options.ttl_ms() or 0)


class RedisStore:
    """Blocking ByteStore backed by Redis."""

    def __init__(self, client: redis.Redis, keys: CacheKeys | None = None) -> None:
        self.client = client
        self.keys = keys or CacheKeys()

    def get(self, key: str, *, cancel: CancellationToken | None = None) -> bytes | None:
        check_cancelled(cancel)
        entry_key = self.keys.entry(key)
        sliding_key = self.keys.sliding(key)
        try:
            with self.client.pipeline(transaction=False) as pipe:
                pipe.get(entry_key)
                pipe.get(sliding_key)
                payload, window = pipe.execute()

            if payload is None:
                return None

            if window is not None:
                window_ms = _parse_window(window, key)
                check_cancelled(cancel)
                with self.client.pipeline(transaction=False) as pipe:
                    pipe.pexpire(entry_key, window_ms)
                    pipe.pexpire(sliding_key, window_ms)
                    pipe.execute()
        except RedisError as exc:
            raise StoreError(f"Redis read failed: {exc}", key=key) from exc

        return bytes(payload)

    def set(
        self,
        key: str,
        value: bytes,
        options: EntryOptions,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        check_cancelled(cancel)
        entry_key = self.keys.entry(key)
        sliding_key = self.keys.sliding(key)
        window = _sliding_window_ms(options)
        try:
            with self.client.pipeline() as pipe:
                pipe.set(entry_key, value, **_set_arguments(options))
                if window is None:
                    pipe.delete(sliding_key)
                else:
                    pipe.set(sliding_key, window, px=window)
                pipe.execute()
        except RedisError as exc:
            raise StoreError(f"Redis write failed: {exc}", key=key) from exc

    def remove(self, key: str, *, cancel: CancellationToken | None = None) -> None:
        check_cancelled(cancel)
        try:
            self.client.delete(self.keys.entry(key), self.keys.sliding(key))
        except RedisError as exc:
            raise StoreError(f"Redis delete failed: {exc}", key=key) from exc

    def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            return bool(self.client.ping())
        except RedisError:
            return False


class AsyncRedisStore:
    """AsyncByteStore backed by ``redis.asyncio``."""

    def __init__(self, client: aioredis.Redis, keys: CacheKeys | None = None) -> None:
        self.client = client
        self.keys = keys or CacheKeys()

    async def get(self, key: str, *, cancel: CancellationToken | None = None) -> bytes | None:
        check_cancelled(cancel)
        entry_key = self.keys.entry(key)
        sliding_key = self.keys.sliding(key)
        try:
            async with self.client.pipeline(transaction=False) as pipe:
                pipe.get(entry_key)
                pipe.get(sliding_key)
                payload, window = await pipe.execute()

            if payload is None:
                return None

            if window is not None:
                window_ms = _parse_window(window, key)
                check_cancelled(cancel)
                async with self.client.pipeline(transaction=False) as pipe:
                    pipe.pexpire(entry_key, window_ms)
                    pipe.pexpire(sliding_key, window_ms)
                    await pipe.execute()
        except RedisError as exc:
            raise StoreError(f"Redis read failed: {exc}", key=key) from exc

        return bytes(payload)

    async def set(
        self,
        key: str,
        value: bytes,
        options: EntryOptions,
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        check_cancelled(cancel)
        entry_key = self.keys.entry(key)
        sliding_key = self.keys.sliding(key)
        window = _sliding_window_ms(options)
        try:
            async with self.client.pipeline() as pipe:
                pipe.set(entry_key, value, **_set_arguments(options))
                if window is None:
                    pipe.delete(sliding_key)
                else:
                    pipe.set(sliding_key, window, px=window)
                await pipe.execute()
        except RedisError as exc:
            raise StoreError(f"Redis write failed: {exc}", key=key) from exc

    async def remove(self, key: str, *, cancel: CancellationToken | None = None) -> None:
        check_cancelled(cancel)
        try:
            await self.client.delete(self.keys.entry(key), self.keys.sliding(key))
        except RedisError as exc:
            raise StoreError(f"Redis delete failed: {exc}", key=key) from exc

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            result: Any = await self.client.ping()
            return bool(result)
        except RedisError:
            return False

"""Tests for the asyncio cache accessor."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from unittest.mock import AsyncMock, MagicMock

import pytest

from distcache import (
    DEFAULT_ENTRY_OPTIONS,
    AsyncCacheAccessor,
    AsyncMemoryStore,
    CancellationToken,
    CancelledError,
    DeserializationError,
    SerializationError,
    StoreError,
    ValidationError,
)


@dataclass
class User:
    first: str
    last: str


def mock_store(payload: bytes | None = None) -> AsyncMock:
    """AsyncByteStore double returning ``payload`` on every read."""
    store = AsyncMock()
    store.get = AsyncMock(return_value=payload)
    store.set = AsyncMock()
    store.remove = AsyncMock()
    return store


class TestAsyncGetAndSet:
    """Tests for AsyncCacheAccessor.get and set."""

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, async_memory_store: AsyncMemoryStore) -> None:
        """Reading a key never written returns None."""
        cache = AsyncCacheAccessor(async_memory_store)
        assert await cache.get("missing", User) is None

    @pytest.mark.asyncio
    async def test_set_then_get(self, async_memory_store: AsyncMemoryStore) -> None:
        """Written values come back decoded."""
        cache = AsyncCacheAccessor(async_memory_store)
        await cache.set("u1", User("John", "Snow"))
        assert await cache.get("u1", User) == User("John", "Snow")

    @pytest.mark.asyncio
    async def test_default_options_passed_to_store(self) -> None:
        """Omitted options become the default no-policy instance."""
        store = mock_store()
        await AsyncCacheAccessor(store).set("u1", {"a": 1})
        store.set.assert_awaited_once_with("u1", b'{"a":1}', DEFAULT_ENTRY_OPTIONS, cancel=None)

    @pytest.mark.asyncio
    async def test_validation_happens_before_store_access(self) -> None:
        """Bad keys and None values never reach the store."""
        store = mock_store()
        cache = AsyncCacheAccessor(store)

        with pytest.raises(ValidationError):
            await cache.get(None)  # type: ignore[arg-type]
        with pytest.raises(ValidationError):
            await cache.set("u1", None)
        with pytest.raises(ValidationError):
            await cache.get_or_populate("u1", None)  # type: ignore[arg-type]

        store.get.assert_not_awaited()
        store.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_decode_failure_propagates(self) -> None:
        """Corrupt payloads raise DeserializationError."""
        cache = AsyncCacheAccessor(mock_store(b"not-json"))
        with pytest.raises(DeserializationError):
            await cache.get("u1", User)

    @pytest.mark.asyncio
    async def test_encode_failure_aborts_before_write(self) -> None:
        """Unencodable values never reach the store."""
        store = mock_store()
        with pytest.raises(SerializationError):
            await AsyncCacheAccessor(store).set("u1", {1, object()})
        store.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_error_propagates(self) -> None:
        """Store write failures reach the caller unchanged."""
        store = mock_store()
        store.set.side_effect = StoreError("quota exceeded", key="u1")
        with pytest.raises(StoreError, match="quota exceeded"):
            await AsyncCacheAccessor(store).set("u1", {"a": 1})


class TestAsyncGetOrPopulate:
    """Tests for AsyncCacheAccessor.get_or_populate."""

    @pytest.mark.asyncio
    async def test_coroutine_producer_populates(
        self, async_memory_store: AsyncMemoryStore
    ) -> None:
        """Coroutine producers are awaited and their value stored."""
        cache = AsyncCacheAccessor(async_memory_store)

        async def produce() -> User:
            await asyncio.sleep(0)
            return User("John", "Snow")

        assert await cache.get_or_populate("u1", produce, User) == User("John", "Snow")
        assert await cache.get("u1", User) == User("John", "Snow")

    @pytest.mark.asyncio
    async def test_plain_producer_populates(self, async_memory_store: AsyncMemoryStore) -> None:
        """Immediate producers work on the async accessor too."""
        cache = AsyncCacheAccessor(async_memory_store)
        assert await cache.get_or_populate("u1", lambda: {"a": 1}) == {"a": 1}
        assert "u1" in async_memory_store

    @pytest.mark.asyncio
    async def test_hit_skips_producer(self, async_memory_store: AsyncMemoryStore) -> None:
        """A cached value wins and the producer is not awaited."""
        cache = AsyncCacheAccessor(async_memory_store)
        await cache.set("u1", User("John", "Snow"))
        producer = AsyncMock(return_value=User("Jane", "Doe"))

        assert await cache.get_or_populate("u1", producer, User) == User("John", "Snow")
        producer.assert_not_called()

    @pytest.mark.asyncio
    async def test_producer_awaited_once_across_calls(
        self, async_memory_store: AsyncMemoryStore
    ) -> None:
        """Sequential calls on an empty store run the producer once."""
        cache = AsyncCacheAccessor(async_memory_store)
        producer = AsyncMock(return_value=User("John", "Snow"))

        await cache.get_or_populate("u1", producer, User)
        await cache.get_or_populate("u1", producer, User)

        producer.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_none_result_not_cached(self, async_memory_store: AsyncMemoryStore) -> None:
        """A None result is returned and leaves no entry behind."""
        cache = AsyncCacheAccessor(async_memory_store)
        producer = AsyncMock(return_value=None)

        assert await cache.get_or_populate("u1", producer) is None
        assert "u1" not in async_memory_store

    @pytest.mark.asyncio
    async def test_strict_ordering(self) -> None:
        """Read completes before producing, producing before the write."""
        calls: list[str] = []

        async def read(key: str, cancel: CancellationToken | None = None) -> None:
            await asyncio.sleep(0)
            calls.append("read")
            return None

        async def write(*args: object, **kwargs: object) -> None:
            calls.append("write")

        async def produce() -> dict[str, int]:
            await asyncio.sleep(0)
            calls.append("produce")
            return {"a": 1}

        store = mock_store()
        store.get.side_effect = read
        store.set.side_effect = write

        await AsyncCacheAccessor(store).get_or_populate("k", produce)

        assert calls == ["read", "produce", "write"]

    @pytest.mark.asyncio
    async def test_concurrent_misses_both_produce(
        self, async_memory_store: AsyncMemoryStore
    ) -> None:
        """Concurrent misses on one key each run their producer; last write wins."""
        cache = AsyncCacheAccessor(async_memory_store)
        release = asyncio.Event()
        calls: list[str] = []

        def producer_for(name: str):  # type: ignore[no-untyped-def]
            async def produce() -> dict[str, str]:
                calls.append(name)
                await release.wait()
                return {"by": name}

            return produce

        first = asyncio.create_task(cache.get_or_populate("k", producer_for("a")))
        second = asyncio.create_task(cache.get_or_populate("k", producer_for("b")))
        while len(calls) < 2:
            await asyncio.sleep(0)
        release.set()

        results = await asyncio.gather(first, second)

        assert sorted(calls) == ["a", "b"]
        assert {r["by"] for r in results} == {"a", "b"}
        assert (await cache.get("k"))["by"] in {"a", "b"}

    @pytest.mark.asyncio
    async def test_producer_exception_propagates(self) -> None:
        """Producer failures propagate and nothing is written."""
        store = mock_store()
        producer = AsyncMock(side_effect=TimeoutError("upstream slow"))

        with pytest.raises(TimeoutError):
            await AsyncCacheAccessor(store).get_or_populate("u1", producer)
        store.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remove(self, async_memory_store: AsyncMemoryStore) -> None:
        """Removed entries read as misses."""
        cache = AsyncCacheAccessor(async_memory_store)
        await cache.set("u1", {"a": 1})
        await cache.remove("u1")
        assert await cache.get("u1") is None


class TestAsyncCancellation:
    """Tests for cancellation in the async accessor."""

    @pytest.mark.asyncio
    async def test_task_cancellation_during_producer_skips_write(self) -> None:
        """Cancelling the task while producing raises and writes nothing."""
        store = mock_store()
        started = asyncio.Event()

        async def produce() -> dict[str, int]:
            started.set()
            await asyncio.sleep(3600)
            return {"a": 1}

        task = asyncio.create_task(AsyncCacheAccessor(store).get_or_populate("u1", produce))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        store.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_token_cancel_during_producer_skips_write(self) -> None:
        """A token cancelled while producing prevents the write."""
        store = mock_store()
        token = CancellationToken()

        async def produce() -> dict[str, int]:
            token.cancel()
            return {"a": 1}

        with pytest.raises(CancelledError):
            await AsyncCacheAccessor(store).get_or_populate("u1", produce, cancel=token)
        store.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_token_forwarded_to_store(self) -> None:
        """The token reaches both store calls."""
        store = mock_store()
        token = CancellationToken()

        producer = MagicMock(return_value=1)
        await AsyncCacheAccessor(store).get_or_populate("u1", producer, cancel=token)

        assert store.get.await_args.kwargs["cancel"] is token
        assert store.set.await_args.kwargs["cancel"] is token

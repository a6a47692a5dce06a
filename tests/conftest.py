"""Global pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from distcache import AsyncMemoryStore, MemoryStore


@pytest.fixture
def memory_store() -> Iterator[MemoryStore]:
    """Empty in-memory store."""
    store = MemoryStore()
    yield store
    store.clear()


@pytest.fixture
def async_memory_store(memory_store: MemoryStore) -> AsyncMemoryStore:
    """Async view over the same empty in-memory store."""
    return AsyncMemoryStore(memory_store)

"""Cache-aside accessors for byte stores.

Provides typed get/set over any key/value byte store plus
get-or-populate:
- Values are serialized to compact JSON (orjson) and decoded back into
  dataclasses, pydantic models or plain JSON structures
- On a miss a caller-supplied producer computes the value, which is
  stored and returned; a None result is never cached
- Blocking and asyncio accessors with identical contracts
- In-memory and Redis store adapters
"""

from distcache.accessor import AsyncCacheAccessor, CacheAccessor
from distcache.cancellation import CancellationToken
from distcache.errors import (
    CacheError,
    CancelledError,
    DeserializationError,
    SerializationError,
    StoreError,
    ValidationError,
)
from distcache.memory import AsyncMemoryStore, MemoryStore
from distcache.options import DEFAULT_ENTRY_OPTIONS, EntryOptions, ExpirationKind
from distcache.serialization import DEFAULT_SERIALIZER, JsonSerializer, Serializer
from distcache.store import AsyncByteStore, ByteStore

__all__ = [
    # Accessors
    "CacheAccessor",
    "AsyncCacheAccessor",
    # Stores
    "ByteStore",
    "AsyncByteStore",
    "MemoryStore",
    "AsyncMemoryStore",
    # Options and cancellation
    "EntryOptions",
    "ExpirationKind",
    "DEFAULT_ENTRY_OPTIONS",
    "CancellationToken",
    # Serialization
    "Serializer",
    "JsonSerializer",
    "DEFAULT_SERIALIZER",
    # Errors
    "CacheError",
    "ValidationError",
    "SerializationError",
    "DeserializationError",
    "StoreError",
    "CancelledError",
]

"""Per-entry store hints.

EntryOptions is opaque to the accessor: it is handed to the store as-is
and only store adapters interpret it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum


class ExpirationKind(str, Enum):
    """How an entry expires."""

    NONE = "none"
    ABSOLUTE = "absolute"  # at a fixed point in time
    RELATIVE = "relative"  # a fixed duration after the write
    SLIDING = "sliding"  # a duration after the last access


@dataclass(frozen=True)
class EntryOptions:
    """Expiration policy for one cache entry.

    Use the constructors rather than building kind/value pairs by hand:

        EntryOptions.relative(timedelta(minutes=5))
        EntryOptions.sliding(timedelta(seconds=30))
        EntryOptions.absolute(datetime(2030, 1, 1, tzinfo=timezone.utc))
    """

    kind: ExpirationKind = ExpirationKind.NONE
    value: datetime | timedelta | None = None

    def __post_init__(self) -> None:
        if self.kind is ExpirationKind.NONE:
            if self.value is not None:
                raise ValueError("no-expiration options cannot carry a value")
        elif self.kind is ExpirationKind.ABSOLUTE:
            if not isinstance(self.value, datetime):
                raise ValueError("absolute expiration requires a datetime")
            if self.value.tzinfo is None:
                raise ValueError("absolute expiration must be timezone-aware")
        else:
            if not isinstance(self.value, timedelta):
                raise ValueError(f"{self.kind.value} expiration requires a timedelta")
            if self.value <= timedelta(0):
                raise ValueError(f"{self.kind.value} expiration must be positive")

    @classmethod
    def absolute(cls, at: datetime) -> EntryOptions:
        return cls(ExpirationKind.ABSOLUTE, at)

    @classmethod
    def relative(cls, ttl: timedelta) -> EntryOptions:
        return cls(ExpirationKind.RELATIVE, ttl)

    @classmethod
    def sliding(cls, window: timedelta) -> EntryOptions:
        return cls(ExpirationKind.SLIDING, window)

    def expires_at(self, now: datetime) -> datetime | None:
        """Deadline of an entry written (or last read, for sliding) at ``now``."""
        if self.kind is ExpirationKind.NONE:
            return None
        if self.kind is ExpirationKind.ABSOLUTE:
            assert isinstance(self.value, datetime)
            return self.value
        assert isinstance(self.value, timedelta)
        return now + self.value

    def ttl_ms(self, now: datetime | None = None) -> int | None:
        """Remaining lifetime in milliseconds, or None for no expiration."""
        if self.kind is ExpirationKind.NONE:
            return None
        if self.kind is ExpirationKind.ABSOLUTE:
            assert isinstance(self.value, datetime)
            now = now or datetime.now(timezone.utc)
            return int((self.value - now).total_seconds() * 1000)
        assert isinstance(self.value, timedelta)
        return int(self.value.total_seconds() * 1000)


DEFAULT_ENTRY_OPTIONS = EntryOptions()

"""Pass-through cancellation handle.

A token is created by the caller, handed to an accessor operation and
forwarded to every store call of that operation. Stores that can abort
an in-flight request consult it; the accessor itself checks it before each
store call and before invoking a producer.
"""

from __future__ import annotations

import threading

from distcache.errors import CancelledError


class CancellationToken:
    """Thread-safe, one-way cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation. Idempotent; the first reason wins."""
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if cancellation was requested."""
        if self._event.is_set():
            raise CancelledError(self.reason or "operation cancelled")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or timeout; returns the cancelled state."""
        return self._event.wait(timeout)


def check_cancelled(token: CancellationToken | None) -> None:
    """Raise CancelledError when a token is present and cancelled."""
    if token is not None:
        token.raise_if_cancelled()

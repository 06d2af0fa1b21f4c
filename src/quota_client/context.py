"""Cancellation and deadline signal for blocking client calls.

Usage example:
    import threading

    from quota_client.context import RequestContext

    ctx = RequestContext(timeout_seconds=10)
    threading.Timer(2.0, ctx.cancel).start()
    ctx.sleep(5)  # raises RequestCancelledError after ~2s
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from .exceptions import DeadlineExceededError, RequestCancelledError


class RequestContext:
    """Thread-safe cancellation token with an optional deadline.

    `sleep()` wakes as soon as `cancel()` is called from any thread or the
    deadline passes, so every suspension point that sleeps through a context
    returns promptly.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._cancelled = threading.Event()
        self.timeout_seconds = timeout_seconds
        self.deadline: float | None = None
        if timeout_seconds is not None:
            self.deadline = clock() + max(0.0, timeout_seconds)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None when there is no deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def expired(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    def check(self) -> None:
        """Raise if the context is cancelled or past its deadline."""
        if self._cancelled.is_set():
            raise RequestCancelledError()
        if self.expired():
            raise DeadlineExceededError(self.timeout_seconds)

    def sleep(self, seconds: float) -> None:
        """Sleep for `seconds`, raising early on cancellation or deadline."""
        self.check()
        if seconds <= 0:
            return
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            if self._cancelled.wait(remaining):
                raise RequestCancelledError()
            raise DeadlineExceededError(self.timeout_seconds)
        if self._cancelled.wait(seconds):
            raise RequestCancelledError()

    def bound_timeout(self, seconds: float) -> float:
        """Clamp a network timeout so it never outlives the deadline."""
        remaining = self.remaining()
        if remaining is None:
            return seconds
        return max(0.001, min(seconds, remaining))

"""Dual-window rate limiting for outbound requests.

Usage example:
    from quota_client.infrastructure.rate_limit import DualWindowRateLimiter

    limiter = DualWindowRateLimiter(minute_capacity=30, day_capacity=1000)
    limiter.wait()  # blocks through minute exhaustion, raises on day exhaustion
    if not limiter.try_acquire():
        ...
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import override

from ..context import RequestContext
from ..exceptions import (
    BlackoutActiveError,
    DailyQuotaExceededError,
    MinuteQuotaExceededError,
    QuotaError,
)
from ..observability import get_logger
from ..protocols import RateLimiter as RateLimiterProtocol
from ..types import QuotaDecision, RateLimitStats

logger = get_logger("quota_client.infrastructure.rate_limit")

DEFAULT_REQUESTS_PER_MINUTE = 30
DEFAULT_REQUESTS_PER_DAY = 1000
DEFAULT_MAX_BLACKOUT_SECONDS = 300.0

# Floor for re-check sleeps so float rounding at a window edge cannot spin.
_MIN_WAIT_SECONDS = 0.001


class NegativeCapacityError(ValueError):
    """Raised when a limiter is configured with a negative capacity."""

    def __init__(self, name: str, value: int) -> None:
        super().__init__(f"{name} must be zero or positive, got {value}.")


def _lock_factory() -> threading.Lock:
    return threading.Lock()


@dataclass
class DualWindowRateLimiter(RateLimiterProtocol):
    """Rate limiter with independent minute and day quotas plus a server blackout.

    Each granted permit consumes one token from both windows. A window refills
    to capacity once its length has elapsed since it last started; the new
    window starts at that moment rather than on a fixed grid.

    Minute exhaustion is waited out by `wait()`. Day exhaustion fails fast,
    because the wait would be hours.

    Local counts are an optimistic approximation of the server's view.
    `sync_from_authoritative()` overwrites them whenever the server reports
    its counters, and the most recent sync wins over any local decrement
    made before it.
    """

    minute_capacity: int = DEFAULT_REQUESTS_PER_MINUTE
    day_capacity: int = DEFAULT_REQUESTS_PER_DAY
    max_blackout_seconds: float = DEFAULT_MAX_BLACKOUT_SECONDS
    minute_window_seconds: float = 60.0
    day_window_seconds: float = 24 * 60 * 60.0
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    minute_tokens: int = field(default=0, init=False)
    minute_window_start: float = field(default=0.0, init=False)
    day_tokens: int = field(default=0, init=False)
    day_window_start: float = field(default=0.0, init=False)
    blocked_until: float = field(default=0.0, init=False)
    _lock: threading.Lock = field(
        default_factory=_lock_factory, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if self.minute_capacity < 0:
            raise NegativeCapacityError("minute_capacity", self.minute_capacity)
        if self.day_capacity < 0:
            raise NegativeCapacityError("day_capacity", self.day_capacity)
        now = self.clock()
        self.minute_tokens = self.minute_capacity
        self.minute_window_start = now
        self.day_tokens = self.day_capacity
        self.day_window_start = now

    # -------------------------------------------------------------------------
    # Acquisition
    # -------------------------------------------------------------------------

    @override
    def wait(self, ctx: RequestContext | None = None) -> None:
        """Block until a permit is granted or the context is cancelled.

        Raises:
            DailyQuotaExceededError: The day window is exhausted.
            MinuteQuotaExceededError: The minute capacity is zero.
            RequestCancelledError: The context was cancelled or timed out while waiting.
        """
        ctx = ctx or RequestContext()
        while True:
            ctx.check()
            with self._lock:
                now = self.clock()
                if now < self.blocked_until:
                    delay = self.blocked_until - now
                    reason = "server blackout"
                else:
                    self._reset_expired_windows(now)
                    if self.day_tokens <= 0:
                        raise DailyQuotaExceededError(self.day_capacity, self._day_reset_in(now))
                    if self.minute_tokens > 0:
                        self._consume()
                        return
                    if self.minute_capacity <= 0:
                        raise MinuteQuotaExceededError(0, self._minute_reset_in(now))
                    delay = self._minute_reset_in(now)
                    reason = "minute quota"
            logger.debug("Waiting %.2fs for %s", delay, reason)
            ctx.sleep(max(delay, _MIN_WAIT_SECONDS))

    def try_acquire(self) -> QuotaDecision:
        """Take a permit if one is available right now; never sleeps."""
        with self._lock:
            denial = self._acquire_nowait(self.clock())
        if denial is None:
            return QuotaDecision(granted=True)
        return QuotaDecision(granted=False, denied_by=denial.scope)

    def allow(self) -> None:
        """Take a permit or raise a `QuotaError` describing the denying scope.

        The error carries the scope, its capacity, and the seconds until it
        resets, for callers that want diagnostics before a network call.
        """
        with self._lock:
            denial = self._acquire_nowait(self.clock())
        if denial is not None:
            raise denial

    # -------------------------------------------------------------------------
    # Server feedback
    # -------------------------------------------------------------------------

    @override
    def update_from_server_signal(self, retry_after_seconds: int) -> None:
        """Extend the blackout to `now + retry_after`, capped; never shortens it."""
        if retry_after_seconds <= 0:
            return
        seconds = min(float(retry_after_seconds), self.max_blackout_seconds)
        with self._lock:
            candidate = self.clock() + seconds
            if candidate <= self.blocked_until:
                return
            self.blocked_until = candidate
        logger.info("Server requested backoff; blocking requests for %.0fs", seconds)

    @override
    def sync_from_authoritative(
        self,
        *,
        minute_remaining: int | None = None,
        minute_limit: int | None = None,
        day_remaining: int | None = None,
        day_limit: int | None = None,
    ) -> None:
        """Overwrite local capacities and token counts with server-reported values."""
        with self._lock:
            self._reset_expired_windows(self.clock())
            if minute_limit is not None and minute_limit >= 0:
                self.minute_capacity = minute_limit
                self.minute_tokens = min(self.minute_tokens, minute_limit)
            if minute_remaining is not None:
                self.minute_tokens = _clamp(minute_remaining, self.minute_capacity)
            if day_limit is not None and day_limit >= 0:
                self.day_capacity = day_limit
                self.day_tokens = min(self.day_tokens, day_limit)
            if day_remaining is not None:
                self.day_tokens = _clamp(day_remaining, self.day_capacity)

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------

    @override
    def stats(self) -> RateLimitStats:
        """Return a snapshot; windows that have lapsed are reported as full."""
        with self._lock:
            now = self.clock()
            minute_lapsed = now - self.minute_window_start >= self.minute_window_seconds
            day_lapsed = now - self.day_window_start >= self.day_window_seconds
            return RateLimitStats(
                minute_limit=self.minute_capacity,
                minute_remaining=self.minute_capacity if minute_lapsed else self.minute_tokens,
                minute_resets_in_seconds=self.minute_window_seconds
                if minute_lapsed
                else self._minute_reset_in(now),
                day_limit=self.day_capacity,
                day_remaining=self.day_capacity if day_lapsed else self.day_tokens,
                day_resets_in_seconds=self.day_window_seconds
                if day_lapsed
                else self._day_reset_in(now),
                blocked_until=self.blocked_until,
                blocked_for_seconds=max(0.0, self.blocked_until - now),
            )

    def remaining_minute(self) -> int:
        return self.stats().minute_remaining

    def remaining_day(self) -> int:
        return self.stats().day_remaining

    # -------------------------------------------------------------------------
    # Internals (caller holds the lock)
    # -------------------------------------------------------------------------

    def _acquire_nowait(self, now: float) -> QuotaError | None:
        if now < self.blocked_until:
            return BlackoutActiveError(self.blocked_until - now)
        self._reset_expired_windows(now)
        if self.day_tokens <= 0:
            return DailyQuotaExceededError(self.day_capacity, self._day_reset_in(now))
        if self.minute_tokens <= 0:
            return MinuteQuotaExceededError(self.minute_capacity, self._minute_reset_in(now))
        self._consume()
        return None

    def _reset_expired_windows(self, now: float) -> None:
        if now - self.minute_window_start >= self.minute_window_seconds:
            self.minute_tokens = self.minute_capacity
            self.minute_window_start = now
        if now - self.day_window_start >= self.day_window_seconds:
            self.day_tokens = self.day_capacity
            self.day_window_start = now

    def _consume(self) -> None:
        self.minute_tokens -= 1
        self.day_tokens -= 1

    def _minute_reset_in(self, now: float) -> float:
        return max(0.0, self.minute_window_start + self.minute_window_seconds - now)

    def _day_reset_in(self, now: float) -> float:
        return max(0.0, self.day_window_start + self.day_window_seconds - now)


def _clamp(value: int, capacity: int) -> int:
    return max(0, min(value, capacity))

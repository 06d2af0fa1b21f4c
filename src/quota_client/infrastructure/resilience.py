"""Retry classification and backoff for transient failures.

Usage example:
    from quota_client.infrastructure.resilience import RetryPolicy

    policy = RetryPolicy(max_retries=3, initial_backoff_seconds=0.5)
    if policy.should_retry(error, status_code):
        delay = policy.compute_backoff(attempt)
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Self, override

import requests

from ..exceptions import (
    ApiDomainError,
    DailyQuotaExceededError,
    HttpStatusError,
    InvalidResponseError,
    RequestCancelledError,
    TransportError,
)
from ..protocols import RetryPolicy as RetryPolicyProtocol

RETRYABLE_STATUSES: tuple[int, ...] = (429, 500, 502, 503, 504)


def _default_rng() -> random.Random:
    return random.Random()


@dataclass(frozen=True)
class RetryPolicy(RetryPolicyProtocol):
    """Exponential backoff with symmetric jitter.

    Pure configuration: safe to share between threads. Only the request
    executor loops on it; the policy itself never sleeps.
    """

    max_retries: int = 3
    initial_backoff_seconds: float = 0.5
    max_backoff_seconds: float = 30.0
    multiplier: float = 2.0
    jitter_factor: float = 0.1
    retry_statuses: tuple[int, ...] = RETRYABLE_STATUSES
    retry_exceptions: tuple[type[Exception], ...] = (requests.Timeout, requests.ConnectionError)
    rng: random.Random = field(default_factory=_default_rng, repr=False, compare=False)

    @classmethod
    def no_retry(cls) -> Self:
        """Return a policy that makes exactly one attempt."""
        return cls(max_retries=0)

    @override
    def should_retry(self, error: Exception | None, status_code: int | None = None) -> bool:
        """Decide whether a failed attempt is worth repeating.

        Timeouts and connection failures are retried, as are the statuses in
        `retry_statuses`. Cancellation, daily quota exhaustion, domain errors,
        invalid payloads and any other status are terminal.
        """
        if isinstance(
            error,
            RequestCancelledError | DailyQuotaExceededError | ApiDomainError | InvalidResponseError,
        ):
            return False
        if isinstance(error, HttpStatusError):
            return error.status_code in self.retry_statuses
        if isinstance(error, TransportError):
            return error.retryable
        if error is not None and isinstance(error, self.retry_exceptions):
            return True
        if status_code is not None:
            return status_code in self.retry_statuses
        return False

    @override
    def compute_backoff(self, attempt: int) -> float:
        """Return `initial * multiplier**attempt` with jitter, clamped to `[0, max]`."""
        delay = self.initial_backoff_seconds * (self.multiplier ** max(0, attempt))
        if self.jitter_factor > 0:
            delay += delay * self.jitter_factor * self.rng.uniform(-1.0, 1.0)
        return max(0.0, min(delay, self.max_backoff_seconds))


def parse_retry_after(value: str | None) -> int | None:
    """Parse a Retry-After value (delta seconds or HTTP date) into seconds.

    Returns None for missing, unparseable, or non-positive values: those are
    treated as "no hint" rather than an error.
    """
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        seconds = int(value)
        return seconds if seconds > 0 else None
    try:
        dt = parsedate_to_datetime(value)
    except (IndexError, OverflowError, TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    seconds = int((dt - datetime.now(UTC)).total_seconds())
    return seconds if seconds > 0 else None

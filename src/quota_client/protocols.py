"""Protocol definitions for dependency injection.

These protocols define the seams the request executor depends on, so a client
can be assembled from injected implementations and unit tested with fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .types import RateLimitStats, TransportRequest, TransportResponse

if TYPE_CHECKING:
    from .context import RequestContext


@runtime_checkable
class Transport(Protocol):
    """Performs exactly one HTTP-shaped attempt."""

    def send(self, request: TransportRequest, *, timeout_seconds: float) -> TransportResponse:
        """Send a request and return the raw response.

        Raises:
            TransportError: When no HTTP status was received.
        """
        ...


@runtime_checkable
class Cache(Protocol):
    """Best-effort byte cache with per-entry TTL."""

    def get(self, key: str) -> bytes | None:
        """Return the cached payload, or None if absent or expired."""
        ...

    def set(self, key: str, value: bytes, ttl_seconds: float | None = None) -> None:
        """Store a payload; a missing or zero TTL means the cache default."""
        ...

    def delete(self, key: str) -> None:
        """Remove a single entry."""
        ...

    def clear(self) -> None:
        """Remove every entry."""
        ...


@runtime_checkable
class RateLimiter(Protocol):
    """Admits outbound attempts against local quotas."""

    def wait(self, ctx: RequestContext | None = None) -> None:
        """Block until a permit is granted.

        Raises:
            DailyQuotaExceededError: When the day window is exhausted.
            RequestCancelledError: When the context is cancelled while waiting.
        """
        ...

    def update_from_server_signal(self, retry_after_seconds: int) -> None:
        """Extend the blackout from a server Retry-After hint."""
        ...

    def sync_from_authoritative(
        self,
        *,
        minute_remaining: int | None = None,
        minute_limit: int | None = None,
        day_remaining: int | None = None,
        day_limit: int | None = None,
    ) -> None:
        """Overwrite local counters with server-reported values."""
        ...

    def stats(self) -> RateLimitStats:
        """Return a read-only snapshot."""
        ...


@runtime_checkable
class RetryPolicy(Protocol):
    """Classifies failures and computes backoff delays."""

    max_retries: int

    def should_retry(self, error: Exception | None, status_code: int | None = None) -> bool:
        """Return True if the failure is worth another attempt."""
        ...

    def compute_backoff(self, attempt: int) -> float:
        """Return the delay in seconds before retry number `attempt + 1`."""
        ...


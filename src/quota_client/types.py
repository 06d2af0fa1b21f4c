"""Typed data contracts shared by the limiter, cache, transport, and executor."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum


class QuotaScope(StrEnum):
    """Which local quota denied a permit."""

    MINUTE = "minute"
    DAY = "day"
    BLACKOUT = "blackout"


class CacheClass(StrEnum):
    """TTL class of an operation; `NONE` bypasses the cache entirely."""

    NONE = "none"
    SEARCH = "search"
    DETAILS = "details"
    REFERENCE = "reference"


def _empty_query() -> dict[str, str]:
    return {}


@dataclass(frozen=True)
class Operation:
    """A logical remote call.

    Mutating operations must use `CacheClass.NONE` so they never read from or
    write to the cache.
    """

    name: str
    method: str
    path: str
    cache_class: CacheClass = CacheClass.NONE

    @property
    def cacheable(self) -> bool:
        return self.cache_class is not CacheClass.NONE


@dataclass(frozen=True)
class TransportRequest:
    """A single HTTP-shaped attempt, before authentication is attached."""

    method: str
    path: str
    query: Mapping[str, str] = field(default_factory=_empty_query)
    body: bytes | None = None


@dataclass(frozen=True)
class TransportResponse:
    """Raw outcome of one attempt. Header lookups must be case-insensitive."""

    status_code: int
    headers: Mapping[str, str]
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class QuotaSnapshot:
    """Authoritative quota counters reported by the server; absent values are None."""

    minute_remaining: int | None = None
    minute_limit: int | None = None
    day_remaining: int | None = None
    day_limit: int | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.minute_remaining is None
            and self.minute_limit is None
            and self.day_remaining is None
            and self.day_limit is None
        )


@dataclass(frozen=True)
class QuotaDecision:
    """Result of a non-blocking acquire; truthy when a permit was granted."""

    granted: bool
    denied_by: QuotaScope | None = None

    def __bool__(self) -> bool:
        return self.granted


@dataclass(frozen=True)
class RateLimitStats:
    """Read-only view of limiter state."""

    minute_limit: int
    minute_remaining: int
    minute_resets_in_seconds: float
    day_limit: int
    day_remaining: int
    day_resets_in_seconds: float
    blocked_until: float
    blocked_for_seconds: float

    @property
    def blocked(self) -> bool:
        return self.blocked_for_seconds > 0


@dataclass(frozen=True)
class ApiErrorDetail:
    """One entry of the error list the remote API embeds in a 2xx payload."""

    message: str
    code: str = ""
    error_id: int | None = None
    property_name: str = ""

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


@dataclass(frozen=True)
class CacheConfig:
    """TTL per cache class. Search results go stale faster than reference data."""

    enabled: bool = True
    search_ttl_seconds: float = 5 * 60.0
    details_ttl_seconds: float = 10 * 60.0
    reference_ttl_seconds: float = 24 * 60 * 60.0

    @classmethod
    def disabled(cls) -> CacheConfig:
        return cls(enabled=False)

    def ttl_for(self, cache_class: CacheClass) -> float | None:
        """Return the TTL for a class, or None when the call must bypass the cache."""
        if not self.enabled:
            return None
        match cache_class:
            case CacheClass.SEARCH:
                return self.search_ttl_seconds
            case CacheClass.DETAILS:
                return self.details_ttl_seconds
            case CacheClass.REFERENCE:
                return self.reference_ttl_seconds
            case CacheClass.NONE:
                return None

"""Concrete infrastructure implementations and shared helpers."""

from .cache import MemoryCache, cache_key_for
from .http import (
    DEFAULT_QUOTA_HEADERS,
    QuotaHeaderNames,
    RequestsTransport,
    parse_quota_headers,
    parse_retry_after_header,
)
from .rate_limit import DualWindowRateLimiter
from .resilience import RetryPolicy, parse_retry_after

__all__ = [
    "DEFAULT_QUOTA_HEADERS",
    "DualWindowRateLimiter",
    "MemoryCache",
    "QuotaHeaderNames",
    "RequestsTransport",
    "RetryPolicy",
    "cache_key_for",
    "parse_quota_headers",
    "parse_retry_after",
    "parse_retry_after_header",
]

"""Client facade owning one rate limiter, one cache and one executor.

Usage example:
    from quota_client.client import ApiClient
    from quota_client.context import RequestContext
    from quota_client.infrastructure import RequestsTransport
    from quota_client.types import CacheClass, Operation

    manufacturers = Operation(
        "search.manufacturers", "GET", "/search/manufacturerlist", CacheClass.REFERENCE
    )
    with ApiClient(transport=RequestsTransport(api_key="secret")) as client:
        data = client.execute(manufacturers, ctx=RequestContext(timeout_seconds=20))
        print(client.rate_limit_stats().minute_remaining)
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from types import TracebackType
from typing import Self

from .application.executor import RequestExecutor
from .context import RequestContext
from .infrastructure.cache import MemoryCache
from .infrastructure.http import (
    DEFAULT_QUOTA_HEADERS,
    DEFAULT_TIMEOUT_SECONDS,
    QuotaHeaderNames,
    RequestsTransport,
)
from .infrastructure.rate_limit import DualWindowRateLimiter
from .infrastructure.resilience import RetryPolicy as RetryPolicyImpl
from .protocols import Cache, RateLimiter, RetryPolicy, Transport
from .types import CacheConfig, Operation, RateLimitStats


class ApiClient:
    """Thread-safe entry point for calling a rate-limited, quota-constrained API.

    All concurrent calls made through one client share its rate limiter and
    cache. When no cache is injected and caching is enabled, the client
    creates a `MemoryCache` and stops its sweeper on `close()`; injected
    caches are left for their owner to close. With `owns_transport=True` the
    client also closes a `RequestsTransport` session.
    """

    def __init__(
        self,
        *,
        transport: Transport,
        rate_limiter: RateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
        cache: Cache | None = None,
        cache_config: CacheConfig | None = None,
        quota_headers: QuotaHeaderNames = DEFAULT_QUOTA_HEADERS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        cache_sweep_interval_seconds: float = 60.0,
        owns_transport: bool = False,
    ) -> None:
        self.transport = transport
        self._owns_transport = owns_transport
        self.cache_config = cache_config or CacheConfig()
        self.rate_limiter = rate_limiter or DualWindowRateLimiter()
        self._owned_cache: MemoryCache | None = None
        if cache is None and self.cache_config.enabled:
            self._owned_cache = MemoryCache(
                default_ttl_seconds=self.cache_config.details_ttl_seconds,
                sweep_interval_seconds=cache_sweep_interval_seconds,
            )
            cache = self._owned_cache
        self.cache = cache
        self._executor = RequestExecutor(
            transport=transport,
            rate_limiter=self.rate_limiter,
            retry_policy=retry_policy or RetryPolicyImpl(),
            cache=cache,
            cache_config=self.cache_config,
            quota_headers=quota_headers,
            timeout_seconds=timeout_seconds,
        )
        self._close_lock = threading.Lock()
        self._closed = False

    def execute(
        self,
        operation: Operation,
        payload: object | None = None,
        *,
        query: Mapping[str, str] | None = None,
        ctx: RequestContext | None = None,
    ) -> dict[str, object]:
        """Execute one logical call; see `RequestExecutor.execute`."""
        return self._executor.execute(operation, payload, query=query, ctx=ctx)

    def rate_limit_stats(self) -> RateLimitStats:
        return self.rate_limiter.stats()

    def clear_cache(self) -> None:
        if self.cache is not None:
            self.cache.clear()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop background work owned by the client. Safe to call more than once."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        if self._owned_cache is not None:
            self._owned_cache.close()
        if self._owns_transport and isinstance(self.transport, RequestsTransport):
            self.transport.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

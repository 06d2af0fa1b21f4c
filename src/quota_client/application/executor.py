"""Request execution: cache, rate limiter, transport and retry policy composed.

Usage example:
    from quota_client.application.executor import RequestExecutor
    from quota_client.infrastructure import (
        DualWindowRateLimiter,
        MemoryCache,
        RequestsTransport,
        RetryPolicy,
    )
    from quota_client.types import CacheClass, Operation

    executor = RequestExecutor(
        transport=RequestsTransport(api_key="secret"),
        rate_limiter=DualWindowRateLimiter(),
        retry_policy=RetryPolicy(),
        cache=MemoryCache(),
    )
    search = Operation("search.keyword", "POST", "/search/keyword", CacheClass.SEARCH)
    result = executor.execute(search, {"SearchByKeywordRequest": {"keyword": "STM32"}})
"""

from __future__ import annotations

import json
from collections.abc import Mapping

import requests

from ..context import RequestContext
from ..exceptions import (
    ApiDomainError,
    AuthenticationError,
    HttpStatusError,
    InvalidResponseError,
    NotFoundError,
    QuotaClientError,
    RequestCancelledError,
    ServerError,
    ServerRateLimitError,
    TransportError,
)
from ..infrastructure.cache import cache_key_for
from ..infrastructure.http import (
    DEFAULT_QUOTA_HEADERS,
    DEFAULT_TIMEOUT_SECONDS,
    QuotaHeaderNames,
    parse_quota_headers,
    parse_retry_after_header,
    response_details,
)
from ..infrastructure.validation import (
    DEFAULT_ERRORS_FIELD,
    decode_json_object,
    parse_api_errors,
)
from ..observability import get_logger
from ..protocols import Cache, RateLimiter, RetryPolicy, Transport
from ..types import CacheConfig, Operation, TransportRequest, TransportResponse

logger = get_logger("quota_client.application.executor")


class RequestExecutor:
    """Executes one logical call end to end.

    Cacheable operations are served from the cache when possible, consuming
    no quota. Otherwise each attempt acquires a rate-limiter permit, performs
    one transport call, feeds the server's quota headers back into the
    limiter, and either returns the decoded payload or classifies the failure:

    - cancellation and deadlines are terminal and never retried
    - 429/500/502/503/504 and transient network failures are retried with backoff
    - any Retry-After hint extends the limiter's blackout before the next attempt
    - other HTTP errors, invalid payloads and embedded API errors are terminal

    The executor is the only component that retries.
    """

    def __init__(
        self,
        *,
        transport: Transport,
        rate_limiter: RateLimiter,
        retry_policy: RetryPolicy,
        cache: Cache | None = None,
        cache_config: CacheConfig | None = None,
        quota_headers: QuotaHeaderNames = DEFAULT_QUOTA_HEADERS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        errors_field: str = DEFAULT_ERRORS_FIELD,
    ) -> None:
        self.transport = transport
        self.rate_limiter = rate_limiter
        self.retry_policy = retry_policy
        self.cache = cache
        self.cache_config = cache_config or CacheConfig()
        self.quota_headers = quota_headers
        self.timeout_seconds = timeout_seconds
        self.errors_field = errors_field

    def execute(
        self,
        operation: Operation,
        payload: object | None = None,
        *,
        query: Mapping[str, str] | None = None,
        ctx: RequestContext | None = None,
    ) -> dict[str, object]:
        """Run a logical call and return its decoded JSON object.

        Args:
            operation: What to call and how long its results may be cached.
            payload: JSON-serialisable request body, or None for no body.
            query: Extra query parameters.
            ctx: Cancellation/deadline for every wait in the call.

        Raises:
            QuotaClientError: A terminal failure; see `quota_client.exceptions`.
        """
        ctx = ctx or RequestContext()
        query_params = dict(query or {})

        ttl = self.cache_config.ttl_for(operation.cache_class)
        cache_key: str | None = None
        if ttl is not None and self.cache is not None:
            cache_key = cache_key_for(
                operation.name,
                {
                    "method": operation.method,
                    "path": operation.path,
                    "query": query_params,
                    "payload": payload,
                },
            )
            cached = self._read_cache(cache_key, operation)
            if cached is not None:
                return cached

        request = TransportRequest(
            method=operation.method,
            path=operation.path,
            query=query_params,
            body=None if payload is None else json.dumps(payload).encode("utf-8"),
        )
        data, raw_body = self._execute_with_retry(operation, request, ctx)

        if cache_key is not None and self.cache is not None:
            self.cache.set(cache_key, raw_body, ttl)
        return data

    def _read_cache(self, key: str, operation: Operation) -> dict[str, object] | None:
        assert self.cache is not None
        raw = self.cache.get(key)
        if raw is None:
            return None
        try:
            data = decode_json_object(raw, endpoint=operation.path)
        except InvalidResponseError:
            self.cache.delete(key)
            return None
        logger.debug("Cache hit for %s", operation.name)
        return data

    def _execute_with_retry(
        self,
        operation: Operation,
        request: TransportRequest,
        ctx: RequestContext,
    ) -> tuple[dict[str, object], bytes]:
        max_attempts = max(0, self.retry_policy.max_retries) + 1
        attempt = 0  # attempts consumed so far
        while True:
            try:
                return self._attempt_once(request, ctx)
            except RequestCancelledError:
                raise
            except QuotaClientError as exc:
                attempt += 1
                retry_after = exc.retry_after if isinstance(exc, HttpStatusError) else None
                if retry_after:
                    self.rate_limiter.update_from_server_signal(retry_after)
                if not self.retry_policy.should_retry(exc) or attempt >= max_attempts:
                    if attempt > 1:
                        logger.warning(
                            "%s failed after %d attempts: %s", operation.name, attempt, exc
                        )
                    raise
                delay = self.retry_policy.compute_backoff(attempt - 1)
                logger.warning(
                    "%s attempt %d/%d failed (%s); retrying in %.2fs",
                    operation.name,
                    attempt,
                    max_attempts,
                    exc,
                    delay,
                )
                ctx.sleep(delay)

    def _attempt_once(
        self, request: TransportRequest, ctx: RequestContext
    ) -> tuple[dict[str, object], bytes]:
        self.rate_limiter.wait(ctx)
        ctx.check()
        try:
            response = self.transport.send(
                request, timeout_seconds=ctx.bound_timeout(self.timeout_seconds)
            )
        except QuotaClientError:
            # A timeout caused by the caller's deadline is a cancellation, not a network fault.
            ctx.check()
            raise
        except requests.RequestException as exc:
            ctx.check()
            raise TransportError(
                f"Request to {request.path} failed: {exc}",
                retryable=self.retry_policy.should_retry(exc),
            ) from exc

        snapshot = parse_quota_headers(response.headers, self.quota_headers)
        if not snapshot.is_empty:
            self.rate_limiter.sync_from_authoritative(
                minute_remaining=snapshot.minute_remaining,
                minute_limit=snapshot.minute_limit,
                day_remaining=snapshot.day_remaining,
                day_limit=snapshot.day_limit,
            )

        if not response.ok:
            raise self._status_error(request, response)

        data = decode_json_object(response.body, endpoint=request.path)
        errors = parse_api_errors(data, self.errors_field)
        if errors:
            raise ApiDomainError(errors, endpoint=request.path)
        return data, response.body

    def _status_error(
        self, request: TransportRequest, response: TransportResponse
    ) -> HttpStatusError:
        status = response.status_code
        error_type: type[HttpStatusError] = HttpStatusError
        if status in (401, 403):
            error_type = AuthenticationError
        elif status == 404:
            error_type = NotFoundError
        elif status == 429:
            error_type = ServerRateLimitError
        elif status >= 500:
            error_type = ServerError
        return error_type(
            status,
            endpoint=request.path,
            details=response_details(response.body),
            retry_after=parse_retry_after_header(response.headers, self.quota_headers),
            retryable=self.retry_policy.should_retry(None, status),
        )

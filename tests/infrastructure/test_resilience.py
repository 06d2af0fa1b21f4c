"""Tests for retry classification and backoff."""

import random
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime

import pytest
import requests

from quota_client.exceptions import (
    ApiDomainError,
    AuthenticationError,
    DailyQuotaExceededError,
    DeadlineExceededError,
    HttpStatusError,
    InvalidResponseError,
    RequestCancelledError,
    ServerError,
    ServerRateLimitError,
    TransportError,
)
from quota_client.infrastructure.resilience import RetryPolicy, parse_retry_after
from quota_client.types import ApiErrorDetail


class TestShouldRetry:
    """Which failures are worth another attempt."""

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_retryable_statuses(self, status: int) -> None:
        assert RetryPolicy().should_retry(None, status) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422, 501])
    def test_terminal_statuses(self, status: int) -> None:
        assert RetryPolicy().should_retry(None, status) is False

    def test_http_status_errors_use_their_status(self) -> None:
        policy = RetryPolicy()

        assert policy.should_retry(ServerRateLimitError(429, endpoint="/x")) is True
        assert policy.should_retry(ServerError(503, endpoint="/x")) is True
        assert policy.should_retry(AuthenticationError(401, endpoint="/x")) is False
        assert policy.should_retry(HttpStatusError(418, endpoint="/x")) is False

    def test_transport_errors_use_their_flag(self) -> None:
        policy = RetryPolicy()

        assert policy.should_retry(TransportError("timed out", retryable=True)) is True
        assert policy.should_retry(TransportError("bad url", retryable=False)) is False

    def test_requests_network_errors_are_retryable(self) -> None:
        policy = RetryPolicy()

        assert policy.should_retry(requests.Timeout()) is True
        assert policy.should_retry(requests.ConnectionError()) is True
        assert policy.should_retry(ValueError("boom")) is False

    def test_terminal_client_errors(self) -> None:
        policy = RetryPolicy()

        assert policy.should_retry(RequestCancelledError()) is False
        assert policy.should_retry(DeadlineExceededError(1.0)) is False
        assert policy.should_retry(DailyQuotaExceededError(1000, 3600)) is False
        assert policy.should_retry(InvalidResponseError("/x")) is False
        assert policy.should_retry(ApiDomainError([ApiErrorDetail("bad")])) is False

    def test_custom_retry_statuses(self) -> None:
        policy = RetryPolicy(retry_statuses=(503,))

        assert policy.should_retry(None, 503) is True
        assert policy.should_retry(None, 500) is False

    def test_nothing_to_classify(self) -> None:
        assert RetryPolicy().should_retry(None) is False


class TestComputeBackoff:
    """Exponential delays with symmetric jitter."""

    def test_exponential_growth_without_jitter(self) -> None:
        policy = RetryPolicy(initial_backoff_seconds=0.5, multiplier=2.0, jitter_factor=0.0)

        delays = [policy.compute_backoff(attempt) for attempt in range(4)]

        assert delays == [0.5, 1.0, 2.0, 4.0]

    def test_delay_is_capped(self) -> None:
        policy = RetryPolicy(
            initial_backoff_seconds=0.5, max_backoff_seconds=30.0, jitter_factor=0.0
        )

        assert policy.compute_backoff(20) == 30.0

    def test_jitter_stays_within_bounds(self) -> None:
        policy = RetryPolicy(
            initial_backoff_seconds=1.0, jitter_factor=0.1, rng=random.Random(1234)
        )

        for _ in range(200):
            assert 0.9 <= policy.compute_backoff(0) <= 1.1

    def test_jitter_never_exceeds_cap(self) -> None:
        policy = RetryPolicy(
            initial_backoff_seconds=10.0,
            max_backoff_seconds=10.0,
            jitter_factor=0.5,
            rng=random.Random(7),
        )

        for attempt in range(5):
            assert 0.0 <= policy.compute_backoff(attempt) <= 10.0

    def test_negative_attempt_is_treated_as_first(self) -> None:
        policy = RetryPolicy(initial_backoff_seconds=0.5, jitter_factor=0.0)

        assert policy.compute_backoff(-3) == 0.5

    def test_no_retry_policy(self) -> None:
        assert RetryPolicy.no_retry().max_retries == 0


class TestParseRetryAfter:
    """Retry-After accepts delta seconds or an HTTP date."""

    def test_delta_seconds(self) -> None:
        assert parse_retry_after("30") == 30
        assert parse_retry_after(" 5 ") == 5

    def test_http_date(self) -> None:
        future = datetime.now(UTC) + timedelta(seconds=120)

        parsed = parse_retry_after(format_datetime(future, usegmt=True))

        assert parsed is not None
        assert 110 <= parsed <= 120

    @pytest.mark.parametrize("value", [None, "", "0", "-5", "soon", "Wed, 99 Foo 2020"])
    def test_missing_or_invalid_values_mean_no_hint(self, value: str | None) -> None:
        assert parse_retry_after(value) is None

    def test_past_http_date_means_no_hint(self) -> None:
        past = datetime.now(UTC) - timedelta(seconds=60)

        assert parse_retry_after(format_datetime(past, usegmt=True)) is None

"""Custom exceptions for quota_client.

Every terminal failure surfaced by the client derives from `QuotaClientError`
and carries a `retryable` flag, so callers can branch on the category
(quota, transport, protocol, domain, cancellation) without string matching.
"""

from __future__ import annotations

from collections.abc import Sequence

from .types import ApiErrorDetail, QuotaScope


class QuotaClientError(Exception):
    """Base exception for all client errors."""

    retryable: bool = False


# =============================================================================
# Quota errors (raised by the local rate limiter)
# =============================================================================


class QuotaError(QuotaClientError):
    """Raised when a local quota denies a permit."""

    def __init__(self, scope: QuotaScope, limit: int, reset_in_seconds: float) -> None:
        self.scope = scope
        self.limit = limit
        self.reset_in_seconds = max(0.0, reset_in_seconds)
        super().__init__(
            f"{scope.value} rate limit exceeded "
            f"(limit: {limit}, resets in {self.reset_in_seconds:.1f}s)"
        )


class MinuteQuotaExceededError(QuotaError):
    """Raised when the per-minute quota is used up. Waiting clears it."""

    retryable = True

    def __init__(self, limit: int, reset_in_seconds: float) -> None:
        super().__init__(QuotaScope.MINUTE, limit, reset_in_seconds)


class DailyQuotaExceededError(QuotaError):
    """Raised when the per-day quota is used up.

    This is terminal for the caller: the wait would be hours.
    """

    def __init__(self, limit: int, reset_in_seconds: float) -> None:
        super().__init__(QuotaScope.DAY, limit, reset_in_seconds)


class BlackoutActiveError(QuotaError):
    """Raised while a server-declared cooldown is in force."""

    retryable = True

    def __init__(self, reset_in_seconds: float) -> None:
        super().__init__(QuotaScope.BLACKOUT, 0, reset_in_seconds)


# =============================================================================
# Transport and protocol errors
# =============================================================================


class TransportError(QuotaClientError):
    """Raised when an attempt fails before an HTTP status is received."""

    def __init__(self, message: str, *, retryable: bool) -> None:
        self.retryable = retryable
        super().__init__(message)


class HttpStatusError(QuotaClientError):
    """Raised for a non-2xx HTTP response."""

    def __init__(
        self,
        status_code: int,
        *,
        endpoint: str,
        details: str = "",
        retry_after: int | None = None,
        retryable: bool = False,
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        self.details = details
        self.retry_after = retry_after
        self.retryable = retryable
        message = f"HTTP {status_code} from {endpoint}"
        if details:
            message = f"{message} ({details})"
        super().__init__(message)


class AuthenticationError(HttpStatusError):
    """Raised for 401/403 responses: the API key is missing, invalid, or blocked."""


class NotFoundError(HttpStatusError):
    """Raised for 404 responses."""


class ServerRateLimitError(HttpStatusError):
    """Raised for 429 responses; `retry_after` holds the server hint if any."""


class ServerError(HttpStatusError):
    """Raised for 5xx responses."""


class InvalidResponseError(QuotaClientError):
    """Raised when a 2xx response body is not a JSON object."""

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint
        super().__init__(f"Expected a JSON object in the response from {endpoint}.")


class ApiDomainError(QuotaClientError):
    """Raised when a 2xx payload carries the remote API's own error list.

    These indicate an invalid request, not a transient condition.
    """

    def __init__(self, errors: Sequence[ApiErrorDetail], *, endpoint: str = "") -> None:
        self.errors = tuple(errors)
        self.endpoint = endpoint
        if not self.errors:
            message = "Unknown API error"
        elif len(self.errors) == 1:
            message = f"API error: {self.errors[0]}"
        else:
            message = (
                f"{len(self.errors)} API errors: {self.errors[0]} "
                f"(and {len(self.errors) - 1} more)"
            )
        super().__init__(message)


# =============================================================================
# Cancellation
# =============================================================================


class RequestCancelledError(QuotaClientError):
    """Raised when the caller cancels a request context."""

    def __init__(self, message: str = "Request cancelled") -> None:
        super().__init__(message)


class DeadlineExceededError(RequestCancelledError):
    """Raised when a request context's deadline passes."""

    def __init__(self, timeout_seconds: float | None = None) -> None:
        if timeout_seconds is None:
            super().__init__("Request deadline exceeded")
        else:
            super().__init__(f"Request deadline of {timeout_seconds:g}s exceeded")


# =============================================================================
# Configuration
# =============================================================================


class MissingApiKeyError(QuotaClientError):
    """Raised when a client is built without an API key."""

    def __init__(self) -> None:
        super().__init__("API key is required. Set API_KEY in your environment or .env file.")


class ConfigFileNotFoundError(QuotaClientError):
    """Raised when a config file path does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Config file not found: {path}")


class ConfigFileParseError(QuotaClientError):
    """Raised when a config file is not valid TOML."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Config file {path} is not valid TOML: {reason}")


class ConfigFileValidationError(QuotaClientError):
    """Raised when a config file fails schema validation."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Config file {path} is invalid: {reason}")

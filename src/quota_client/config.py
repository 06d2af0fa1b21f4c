"""Centralised, injectable configuration for quota_client."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Self

from dotenv import load_dotenv

from .config_file import ClientConfigFile
from .infrastructure.http import DEFAULT_BASE_URL
from .infrastructure.resilience import RetryPolicy
from .types import CacheConfig


class NonNegativeIntegerEnvVarError(ValueError):
    """Raised when an environment variable must be a non-negative integer."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a non-negative integer.")


class PositiveNumberEnvVarError(ValueError):
    """Raised when an environment variable must be a positive number."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a positive number.")


class NumberOutOfRangeEnvVarError(ValueError):
    """Raised when an environment variable must be a number within a range."""

    def __init__(self, env_name: str, minimum: float, maximum: float | None) -> None:
        upper = "" if maximum is None else f" and at most {maximum:g}"
        super().__init__(f"{env_name} must be a number of at least {minimum:g}{upper}.")


class BooleanEnvVarError(ValueError):
    """Raised when an environment variable must be a supported boolean."""

    def __init__(self, env_name: str) -> None:
        super().__init__(f"{env_name} must be a boolean value (true/false, 1/0, yes/no, on/off).")


@dataclass(frozen=True)
class ClientConfig:
    """Immutable configuration for building an `ApiClient`.

    Load from environment with `ClientConfig.from_env()` or construct directly for testing.
    """

    # Remote API
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = 30.0

    # Quotas
    requests_per_minute: int = 30
    requests_per_day: int = 1000
    max_blackout_seconds: float = 300.0

    # Retries
    max_retries: int = 3
    initial_backoff_seconds: float = 0.5
    max_backoff_seconds: float = 30.0
    backoff_multiplier: float = 2.0
    backoff_jitter: float = 0.1

    # Cache
    cache_enabled: bool = True
    cache_search_ttl_seconds: float = 5 * 60.0
    cache_details_ttl_seconds: float = 10 * 60.0
    cache_reference_ttl_seconds: float = 24 * 60 * 60.0
    cache_sweep_interval_seconds: float = 60.0

    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Self:
        """Load configuration from environment variables.

        Args:
            dotenv_path: Optional path to .env file. If None, uses default .env discovery.

        Returns:
            ClientConfig instance populated from environment.
        """
        load_dotenv(dotenv_path)

        return cls(
            api_key=os.getenv("API_KEY", "").strip(),
            base_url=os.getenv("API_BASE_URL", DEFAULT_BASE_URL).strip() or DEFAULT_BASE_URL,
            timeout_seconds=_parse_positive_float(
                os.getenv("API_TIMEOUT_SECONDS", "30"), env_name="API_TIMEOUT_SECONDS"
            ),
            requests_per_minute=_parse_non_negative_int(
                os.getenv("API_REQUESTS_PER_MINUTE", "30"), env_name="API_REQUESTS_PER_MINUTE"
            ),
            requests_per_day=_parse_non_negative_int(
                os.getenv("API_REQUESTS_PER_DAY", "1000"), env_name="API_REQUESTS_PER_DAY"
            ),
            max_blackout_seconds=_parse_positive_float(
                os.getenv("API_MAX_BLACKOUT_SECONDS", "300"), env_name="API_MAX_BLACKOUT_SECONDS"
            ),
            max_retries=_parse_non_negative_int(
                os.getenv("API_MAX_RETRIES", "3"), env_name="API_MAX_RETRIES"
            ),
            initial_backoff_seconds=_parse_bounded_float(
                os.getenv("API_INITIAL_BACKOFF_SECONDS", "0.5"),
                env_name="API_INITIAL_BACKOFF_SECONDS",
                minimum=0.0,
            ),
            max_backoff_seconds=_parse_positive_float(
                os.getenv("API_MAX_BACKOFF_SECONDS", "30"), env_name="API_MAX_BACKOFF_SECONDS"
            ),
            backoff_multiplier=_parse_bounded_float(
                os.getenv("API_BACKOFF_MULTIPLIER", "2.0"),
                env_name="API_BACKOFF_MULTIPLIER",
                minimum=1.0,
            ),
            backoff_jitter=_parse_bounded_float(
                os.getenv("API_BACKOFF_JITTER", "0.1"),
                env_name="API_BACKOFF_JITTER",
                minimum=0.0,
                maximum=1.0,
            ),
            cache_enabled=_parse_optional_bool(
                os.getenv("API_CACHE_ENABLED", ""), env_name="API_CACHE_ENABLED"
            )
            is not False,
            cache_search_ttl_seconds=_parse_positive_float(
                os.getenv("API_CACHE_SEARCH_TTL_SECONDS", "300"),
                env_name="API_CACHE_SEARCH_TTL_SECONDS",
            ),
            cache_details_ttl_seconds=_parse_positive_float(
                os.getenv("API_CACHE_DETAILS_TTL_SECONDS", "600"),
                env_name="API_CACHE_DETAILS_TTL_SECONDS",
            ),
            cache_reference_ttl_seconds=_parse_positive_float(
                os.getenv("API_CACHE_REFERENCE_TTL_SECONDS", "86400"),
                env_name="API_CACHE_REFERENCE_TTL_SECONDS",
            ),
            cache_sweep_interval_seconds=_parse_positive_float(
                os.getenv("API_CACHE_SWEEP_INTERVAL_SECONDS", "60"),
                env_name="API_CACHE_SWEEP_INTERVAL_SECONDS",
            ),
            log_level=os.getenv("API_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )

    def with_file_overrides(self, file_config: ClientConfigFile) -> Self:
        """Return a new config with config-file values overriding env/default values."""
        overrides = {
            name: value
            for name, value in file_config.as_overrides().items()
            if value is not None
        }
        return replace(self, **overrides)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            initial_backoff_seconds=self.initial_backoff_seconds,
            max_backoff_seconds=self.max_backoff_seconds,
            multiplier=self.backoff_multiplier,
            jitter_factor=self.backoff_jitter,
        )

    def cache_config(self) -> CacheConfig:
        return CacheConfig(
            enabled=self.cache_enabled,
            search_ttl_seconds=self.cache_search_ttl_seconds,
            details_ttl_seconds=self.cache_details_ttl_seconds,
            reference_ttl_seconds=self.cache_reference_ttl_seconds,
        )


def _parse_non_negative_int(value: str, *, env_name: str) -> int:
    """Parse a non-negative integer from an environment variable."""
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise NonNegativeIntegerEnvVarError(env_name) from exc
    if parsed < 0:
        raise NonNegativeIntegerEnvVarError(env_name)
    return parsed


def _parse_positive_float(value: str, *, env_name: str) -> float:
    """Parse a positive number from an environment variable."""
    try:
        parsed = float(value.strip())
    except ValueError as exc:
        raise PositiveNumberEnvVarError(env_name) from exc
    if parsed <= 0:
        raise PositiveNumberEnvVarError(env_name)
    return parsed


def _parse_bounded_float(
    value: str, *, env_name: str, minimum: float, maximum: float | None = None
) -> float:
    """Parse a number within `[minimum, maximum]` from an environment variable."""
    try:
        parsed = float(value.strip())
    except ValueError as exc:
        raise NumberOutOfRangeEnvVarError(env_name, minimum, maximum) from exc
    if parsed < minimum or (maximum is not None and parsed > maximum):
        raise NumberOutOfRangeEnvVarError(env_name, minimum, maximum)
    return parsed


def _parse_optional_bool(value: str, *, env_name: str) -> bool | None:
    """Parse an optional boolean from an environment variable."""
    text = value.strip().lower()
    if not text:
        return None
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    raise BooleanEnvVarError(env_name)

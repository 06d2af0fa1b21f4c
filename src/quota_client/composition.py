"""Composition root for wiring a production `ApiClient`."""

from __future__ import annotations

from pathlib import Path

import requests

from .client import ApiClient
from .config import ClientConfig
from .config_file import load_client_config_file
from .exceptions import MissingApiKeyError
from .infrastructure import DualWindowRateLimiter, RequestsTransport
from .observability import get_logger, set_log_level

logger = get_logger("quota_client.composition")


def load_config(
    *, dotenv_path: str | None = None, config_path: str | Path | None = None
) -> ClientConfig:
    """Load config from the environment, then apply an optional TOML file on top."""
    config = ClientConfig.from_env(dotenv_path)
    if config_path is not None:
        config = config.with_file_overrides(load_client_config_file(Path(config_path)))
    return config


def build_client(
    config: ClientConfig,
    *,
    session: requests.Session | None = None,
) -> ApiClient:
    """Build a client with concrete transport, limiter, retry policy and cache.

    Args:
        config: Client configuration; must carry an API key.
        session: Optional requests session, e.g. one with custom adapters.

    Raises:
        MissingApiKeyError: When `config.api_key` is empty.
    """
    if not config.api_key:
        raise MissingApiKeyError()

    set_log_level(config.log_level)
    transport = RequestsTransport(
        api_key=config.api_key,
        base_url=config.base_url,
        session=session,
    )
    rate_limiter = DualWindowRateLimiter(
        minute_capacity=config.requests_per_minute,
        day_capacity=config.requests_per_day,
        max_blackout_seconds=config.max_blackout_seconds,
    )
    logger.info(
        "Client for %s: %d req/min, %d req/day, %d retries, cache %s",
        config.base_url,
        config.requests_per_minute,
        config.requests_per_day,
        config.max_retries,
        "on" if config.cache_enabled else "off",
    )
    return ApiClient(
        transport=transport,
        rate_limiter=rate_limiter,
        retry_policy=config.retry_policy(),
        cache_config=config.cache_config(),
        timeout_seconds=config.timeout_seconds,
        cache_sweep_interval_seconds=config.cache_sweep_interval_seconds,
        owns_transport=True,
    )

"""Tests for ClientConfig behaviour."""

from pathlib import Path

import pytest

from quota_client.config import (
    BooleanEnvVarError,
    ClientConfig,
    NonNegativeIntegerEnvVarError,
    NumberOutOfRangeEnvVarError,
    PositiveNumberEnvVarError,
)
from quota_client.config_file import ClientConfigFile
from quota_client.infrastructure.http import DEFAULT_BASE_URL
from quota_client.types import CacheClass

_ENV_VARS = (
    "API_KEY",
    "API_BASE_URL",
    "API_TIMEOUT_SECONDS",
    "API_REQUESTS_PER_MINUTE",
    "API_REQUESTS_PER_DAY",
    "API_MAX_BLACKOUT_SECONDS",
    "API_MAX_RETRIES",
    "API_INITIAL_BACKOFF_SECONDS",
    "API_MAX_BACKOFF_SECONDS",
    "API_BACKOFF_MULTIPLIER",
    "API_BACKOFF_JITTER",
    "API_CACHE_ENABLED",
    "API_CACHE_SEARCH_TTL_SECONDS",
    "API_CACHE_DETAILS_TTL_SECONDS",
    "API_CACHE_REFERENCE_TTL_SECONDS",
    "API_CACHE_SWEEP_INTERVAL_SECONDS",
    "API_LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> str:
    """Clear client env vars and return a dotenv path that does not exist."""
    for name in _ENV_VARS:
        # setenv first so values loaded from a dotenv file are undone after the test
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return str(tmp_path / "missing.env")


def test_from_env_defaults(clean_env: str) -> None:
    config = ClientConfig.from_env(clean_env)

    assert config == ClientConfig()
    assert config.api_key == ""
    assert config.base_url == DEFAULT_BASE_URL
    assert config.requests_per_minute == 30
    assert config.requests_per_day == 1000
    assert config.max_blackout_seconds == 300.0
    assert config.cache_enabled is True


def test_from_env_reads_values(clean_env: str, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("API_KEY", "  secret  ")
    monkeypatch.setenv("API_BASE_URL", "https://api.example.com/v1")
    monkeypatch.setenv("API_REQUESTS_PER_MINUTE", "10")
    monkeypatch.setenv("API_REQUESTS_PER_DAY", "200")
    monkeypatch.setenv("API_MAX_RETRIES", "0")
    monkeypatch.setenv("API_BACKOFF_JITTER", "0.25")
    monkeypatch.setenv("API_CACHE_ENABLED", "off")
    monkeypatch.setenv("API_CACHE_SEARCH_TTL_SECONDS", "60")
    monkeypatch.setenv("API_LOG_LEVEL", "debug")

    config = ClientConfig.from_env(clean_env)

    assert config.api_key == "secret"
    assert config.base_url == "https://api.example.com/v1"
    assert config.requests_per_minute == 10
    assert config.requests_per_day == 200
    assert config.max_retries == 0
    assert config.backoff_jitter == 0.25
    assert config.cache_enabled is False
    assert config.cache_search_ttl_seconds == 60.0
    assert config.log_level == "DEBUG"


def test_from_env_reads_dotenv_file(clean_env: str, tmp_path: Path) -> None:
    dotenv = tmp_path / ".env"
    dotenv.write_text("API_KEY=from-file\nAPI_REQUESTS_PER_MINUTE=5\n", encoding="utf-8")

    config = ClientConfig.from_env(str(dotenv))

    assert config.api_key == "from-file"
    assert config.requests_per_minute == 5


@pytest.mark.parametrize("value", ["-1", "ten", "1.5"])
def test_invalid_integer_env_var(
    clean_env: str, monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    monkeypatch.setenv("API_REQUESTS_PER_DAY", value)

    with pytest.raises(NonNegativeIntegerEnvVarError, match="API_REQUESTS_PER_DAY"):
        ClientConfig.from_env(clean_env)


@pytest.mark.parametrize("value", ["0", "-2", "soon"])
def test_invalid_positive_number_env_var(
    clean_env: str, monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    monkeypatch.setenv("API_TIMEOUT_SECONDS", value)

    with pytest.raises(PositiveNumberEnvVarError, match="API_TIMEOUT_SECONDS"):
        ClientConfig.from_env(clean_env)


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("API_INITIAL_BACKOFF_SECONDS", "-1"),
        ("API_INITIAL_BACKOFF_SECONDS", "half"),
        ("API_BACKOFF_MULTIPLIER", "0.5"),
        ("API_BACKOFF_JITTER", "1.5"),
        ("API_BACKOFF_JITTER", "-0.1"),
    ],
)
def test_backoff_env_vars_out_of_range(
    clean_env: str, monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(NumberOutOfRangeEnvVarError, match=name):
        ClientConfig.from_env(clean_env)


@pytest.mark.parametrize("value", ["0", "abc"])
def test_invalid_max_backoff_env_var(
    clean_env: str, monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    monkeypatch.setenv("API_MAX_BACKOFF_SECONDS", value)

    with pytest.raises(PositiveNumberEnvVarError, match="API_MAX_BACKOFF_SECONDS"):
        ClientConfig.from_env(clean_env)


def test_backoff_env_vars_accept_range_edges(
    clean_env: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("API_INITIAL_BACKOFF_SECONDS", "0")
    monkeypatch.setenv("API_BACKOFF_MULTIPLIER", "1")
    monkeypatch.setenv("API_BACKOFF_JITTER", "1")

    config = ClientConfig.from_env(clean_env)

    assert config.initial_backoff_seconds == 0.0
    assert config.backoff_multiplier == 1.0
    assert config.backoff_jitter == 1.0


def test_invalid_boolean_env_var(clean_env: str, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("API_CACHE_ENABLED", "maybe")

    with pytest.raises(BooleanEnvVarError, match="API_CACHE_ENABLED"):
        ClientConfig.from_env(clean_env)


def test_with_file_overrides_only_replaces_set_values() -> None:
    base = ClientConfig(api_key="key", requests_per_minute=30, max_retries=3)

    updated = base.with_file_overrides(
        ClientConfigFile(requests_per_minute=12, cache_enabled=False)
    )

    assert updated.requests_per_minute == 12
    assert updated.cache_enabled is False
    assert updated.api_key == "key"
    assert updated.max_retries == 3
    assert base.requests_per_minute == 30


def test_retry_policy_from_config() -> None:
    config = ClientConfig(
        max_retries=5,
        initial_backoff_seconds=1.0,
        max_backoff_seconds=10.0,
        backoff_multiplier=3.0,
        backoff_jitter=0.0,
    )

    policy = config.retry_policy()

    assert policy.max_retries == 5
    assert [policy.compute_backoff(n) for n in range(4)] == [1.0, 3.0, 9.0, 10.0]


def test_cache_config_from_config() -> None:
    config = ClientConfig(cache_search_ttl_seconds=1.0, cache_reference_ttl_seconds=2.0)

    cache_config = config.cache_config()

    assert cache_config.ttl_for(CacheClass.SEARCH) == 1.0
    assert cache_config.ttl_for(CacheClass.DETAILS) == 600.0
    assert cache_config.ttl_for(CacheClass.REFERENCE) == 2.0
    assert cache_config.ttl_for(CacheClass.NONE) is None
    assert ClientConfig(cache_enabled=False).cache_config().ttl_for(CacheClass.SEARCH) is None

"""Typed parsing and validation for client config files.

Example file:

    schema_version = 1

    [client]
    base_url = "https://api.mouser.com/api/v2"
    requests_per_minute = 30
    requests_per_day = 1000
    cache_search_ttl_seconds = 300

Secrets are not accepted here; the API key is only read from the environment.
"""

from __future__ import annotations

import tomllib
from dataclasses import asdict, dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .exceptions import ConfigFileNotFoundError, ConfigFileParseError, ConfigFileValidationError

_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class ClientConfigFile:
    """Validated client config values loaded from a TOML file."""

    base_url: str | None = None
    timeout_seconds: float | None = None
    requests_per_minute: int | None = None
    requests_per_day: int | None = None
    max_blackout_seconds: float | None = None
    max_retries: int | None = None
    initial_backoff_seconds: float | None = None
    max_backoff_seconds: float | None = None
    backoff_multiplier: float | None = None
    backoff_jitter: float | None = None
    cache_enabled: bool | None = None
    cache_search_ttl_seconds: float | None = None
    cache_details_ttl_seconds: float | None = None
    cache_reference_ttl_seconds: float | None = None
    cache_sweep_interval_seconds: float | None = None
    log_level: str | None = None

    def as_overrides(self) -> dict[str, object]:
        return asdict(self)


class _ClientSectionModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str | None = None
    timeout_seconds: float | None = None
    requests_per_minute: int | None = None
    requests_per_day: int | None = None
    max_blackout_seconds: float | None = None
    max_retries: int | None = None
    initial_backoff_seconds: float | None = None
    max_backoff_seconds: float | None = None
    backoff_multiplier: float | None = None
    backoff_jitter: float | None = None
    cache_enabled: bool | None = None
    cache_search_ttl_seconds: float | None = None
    cache_details_ttl_seconds: float | None = None
    cache_reference_ttl_seconds: float | None = None
    cache_sweep_interval_seconds: float | None = None
    log_level: str | None = None

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        text = value.strip().rstrip("/")
        if not text.startswith(("http://", "https://")):
            raise ValueError
        return text

    @field_validator("requests_per_minute", "requests_per_day", "max_retries")
    @classmethod
    def _validate_non_negative_int(cls, value: int | None) -> int | None:
        if value is None:
            return None
        if value < 0:
            raise ValueError
        return value

    @field_validator(
        "timeout_seconds",
        "max_blackout_seconds",
        "max_backoff_seconds",
        "cache_search_ttl_seconds",
        "cache_details_ttl_seconds",
        "cache_reference_ttl_seconds",
        "cache_sweep_interval_seconds",
    )
    @classmethod
    def _validate_positive_seconds(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value <= 0:
            raise ValueError
        return value

    @field_validator("initial_backoff_seconds")
    @classmethod
    def _validate_initial_backoff(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value < 0:
            raise ValueError
        return value

    @field_validator("backoff_multiplier")
    @classmethod
    def _validate_multiplier(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value < 1.0:
            raise ValueError
        return value

    @field_validator("backoff_jitter")
    @classmethod
    def _validate_jitter(cls, value: float | None) -> float | None:
        if value is None:
            return None
        if value < 0.0 or value > 1.0:
            raise ValueError
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str | None) -> str | None:
        if value is None:
            return None
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError
        return level


class _ConfigFileModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: int
    client: _ClientSectionModel

    @field_validator("schema_version")
    @classmethod
    def _validate_schema_version(cls, value: int) -> int:
        if value != _SCHEMA_VERSION:
            raise ValueError
        return value


def _format_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ("<root>",)))
    message = str(first.get("msg", "invalid value"))
    return f"{location}: {message}"


def load_client_config_file(path: Path) -> ClientConfigFile:
    """Load and validate a client TOML config file."""
    if not path.is_file():
        raise ConfigFileNotFoundError(str(path))

    try:
        payload: object = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileParseError(str(path), str(exc)) from exc

    try:
        model = _ConfigFileModel.model_validate(payload)
    except ValidationError as exc:
        raise ConfigFileValidationError(str(path), _format_validation_error(exc)) from exc

    return ClientConfigFile(**model.client.model_dump())

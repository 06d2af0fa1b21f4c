"""Pydantic-based validation helpers for inbound response payloads."""

from __future__ import annotations

from typing import TypedDict

from pydantic import TypeAdapter, ValidationError

from ..exceptions import InvalidResponseError
from ..types import ApiErrorDetail

DEFAULT_ERRORS_FIELD = "Errors"


class IncomingDataError(ValueError):
    """Raised when inbound data fails validation."""


class ApiErrorInput(TypedDict, total=False):
    Id: int | None
    Code: str | None
    Message: str | None
    PropertyName: str | None


def validate_as[SchemaT](schema: type[SchemaT], payload: object) -> SchemaT:
    try:
        return TypeAdapter(schema).validate_python(payload)
    except ValidationError as exc:
        message = f"Invalid payload for {schema}."
        raise IncomingDataError(message) from exc


def validate_json_as[SchemaT](schema: type[SchemaT], payload: str | bytes | bytearray) -> SchemaT:
    try:
        return TypeAdapter(schema).validate_json(payload)
    except ValidationError as exc:
        message = f"Invalid JSON payload for {schema}."
        raise IncomingDataError(message) from exc


def decode_json_object(body: bytes, *, endpoint: str) -> dict[str, object]:
    """Decode a response body that must be a JSON object."""
    try:
        return validate_json_as(dict[str, object], body)
    except IncomingDataError as exc:
        raise InvalidResponseError(endpoint) from exc


def _as_str(value: object) -> str:
    return value if isinstance(value, str) else ""


def parse_api_errors(
    payload: dict[str, object], errors_field: str = DEFAULT_ERRORS_FIELD
) -> list[ApiErrorDetail]:
    """Extract the remote API's embedded error list from a decoded payload.

    Entries that are not objects are kept as bare messages so no reported
    error is silently dropped.
    """
    raw_errors = payload.get(errors_field)
    if not raw_errors:
        return []
    try:
        items = validate_as(list[object], raw_errors)
    except IncomingDataError:
        return [ApiErrorDetail(message=str(raw_errors))]

    details: list[ApiErrorDetail] = []
    for item in items:
        try:
            entry = validate_as(ApiErrorInput, item)
        except IncomingDataError:
            details.append(ApiErrorDetail(message=str(item)))
            continue
        details.append(
            ApiErrorDetail(
                message=_as_str(entry.get("Message")) or "Unknown API error",
                code=_as_str(entry.get("Code")),
                error_id=entry.get("Id"),
                property_name=_as_str(entry.get("PropertyName")),
            )
        )
    return details

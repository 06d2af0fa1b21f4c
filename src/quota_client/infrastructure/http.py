"""HTTP transport and response-header parsing.

Usage example:
    import requests

    from quota_client.infrastructure.http import RequestsTransport
    from quota_client.types import TransportRequest

    transport = RequestsTransport(
        base_url="https://api.example.com/api/v2",
        api_key="secret",
        session=requests.Session(),
    )
    response = transport.send(
        TransportRequest("POST", "/search/keyword", body=b"{}"), timeout_seconds=30
    )
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import override

import requests
from requests.structures import CaseInsensitiveDict

from ..exceptions import TransportError
from ..observability import get_logger
from ..protocols import Transport
from ..types import QuotaSnapshot, TransportRequest, TransportResponse
from .resilience import parse_retry_after

logger = get_logger("quota_client.infrastructure.http")

DEFAULT_BASE_URL = "https://api.mouser.com/api/v2"
DEFAULT_TIMEOUT_SECONDS = 30.0

# Setup failures that no retry can fix.
_FATAL_REQUEST_ERRORS: tuple[type[requests.RequestException], ...] = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidHeader,
)


@dataclass(frozen=True)
class QuotaHeaderNames:
    """Names of the response headers that report authoritative quota counters."""

    minute_remaining: str = "X-RateLimit-Remaining-Minute"
    minute_limit: str = "X-RateLimit-Limit-Minute"
    day_remaining: str = "X-RateLimit-Remaining-Day"
    day_limit: str = "X-RateLimit-Limit-Day"
    retry_after: str = "Retry-After"


DEFAULT_QUOTA_HEADERS = QuotaHeaderNames()


def _header_int(headers: Mapping[str, str], name: str) -> int | None:
    value = headers.get(name)
    if value is None:
        return None
    text = str(value).strip()
    try:
        parsed = int(text)
    except ValueError:
        return None
    return parsed if parsed >= 0 else None


def parse_quota_headers(
    headers: Mapping[str, str] | None,
    names: QuotaHeaderNames = DEFAULT_QUOTA_HEADERS,
) -> QuotaSnapshot:
    """Read authoritative quota counters; missing or malformed values are None."""
    if not headers:
        return QuotaSnapshot()
    headers = CaseInsensitiveDict(headers)
    return QuotaSnapshot(
        minute_remaining=_header_int(headers, names.minute_remaining),
        minute_limit=_header_int(headers, names.minute_limit),
        day_remaining=_header_int(headers, names.day_remaining),
        day_limit=_header_int(headers, names.day_limit),
    )


def parse_retry_after_header(
    headers: Mapping[str, str] | None,
    names: QuotaHeaderNames = DEFAULT_QUOTA_HEADERS,
) -> int | None:
    """Parse the Retry-After header into seconds, if a usable hint is present."""
    if not headers:
        return None
    headers = CaseInsensitiveDict(headers)
    return parse_retry_after(headers.get(names.retry_after))


def response_details(body: bytes, limit: int = 300) -> str:
    """Return a compact, single-line excerpt of a response body for error messages."""
    text = body.decode("utf-8", errors="replace")
    text = " ".join(text.split())
    if len(text) > limit:
        text = text[:limit] + "..."
    return text


class RequestsTransport(Transport):
    """Requests-backed transport that attaches the API key to every attempt.

    Timeouts and connection failures surface as retryable `TransportError`s;
    malformed URLs and other setup failures as terminal ones.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        session: requests.Session | None = None,
        api_key_param: str = "apiKey",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key_param = api_key_param
        self._api_key = api_key
        self._session = session or requests.Session()

    @override
    def send(self, request: TransportRequest, *, timeout_seconds: float) -> TransportResponse:
        url = f"{self.base_url}/{request.path.lstrip('/')}"
        params = dict(request.query)
        params[self.api_key_param] = self._api_key
        headers = {"Accept": "application/json"}
        if request.body is not None:
            headers["Content-Type"] = "application/json"

        try:
            r = self._session.request(
                request.method,
                url,
                params=params,
                data=request.body,
                headers=headers,
                timeout=timeout_seconds,
            )
        except requests.Timeout as exc:
            raise TransportError(f"Request to {request.path} timed out", retryable=True) from exc
        except requests.ConnectionError as exc:
            raise TransportError(
                f"Connection failed for {request.path}: {exc}", retryable=True
            ) from exc
        except _FATAL_REQUEST_ERRORS as exc:
            raise TransportError(
                f"Invalid request for {request.path}: {exc}", retryable=False
            ) from exc
        except requests.RequestException as exc:
            raise TransportError(
                f"Request failed for {request.path}: {exc}", retryable=False
            ) from exc

        logger.debug("%s %s -> %s", request.method, request.path, r.status_code)
        return TransportResponse(status_code=r.status_code, headers=r.headers, body=r.content)

    def close(self) -> None:
        self._session.close()

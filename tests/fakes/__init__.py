"""Exports for test fakes."""

from .clock import FakeClock
from .resilience import FakeRateLimiter
from .transport import FakeTransport, json_response

__all__ = [
    "FakeClock",
    "FakeRateLimiter",
    "FakeTransport",
    "json_response",
]

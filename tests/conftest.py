"""Shared pytest fixtures.

All tests are network-isolated: socket connections are blocked by default.
"""

from __future__ import annotations

import socket
from collections.abc import Iterator

import pytest

from quota_client.infrastructure.rate_limit import DualWindowRateLimiter
from quota_client.infrastructure.resilience import RetryPolicy
from tests.fakes import FakeClock, FakeTransport
from tests.support.errors import NetworkIsolationError

# =============================================================================
# Network Isolation - Block all socket connections in tests
# =============================================================================


def _blocked_socket_connect(self: socket.socket, *args: object, **kwargs: object) -> None:
    raise NetworkIsolationError(str(args))


@pytest.fixture(autouse=True)
def block_network_access(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Block all network access in tests.

    Tests that need HTTP should use FakeTransport or a MagicMock session.
    """
    monkeypatch.setattr(socket.socket, "connect", _blocked_socket_connect)
    yield


# =============================================================================
# Common collaborators
# =============================================================================


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def limiter(fake_clock: FakeClock) -> DualWindowRateLimiter:
    """A limiter on a fake clock with roomy quotas."""
    return DualWindowRateLimiter(minute_capacity=30, day_capacity=1000, clock=fake_clock)


@pytest.fixture
def fast_retry_policy() -> RetryPolicy:
    """Retry policy with millisecond backoff so retry tests stay quick."""
    return RetryPolicy(
        max_retries=3,
        initial_backoff_seconds=0.001,
        max_backoff_seconds=0.01,
        jitter_factor=0.0,
    )

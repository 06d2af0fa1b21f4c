"""In-memory TTL cache for API response payloads.

Usage example:
    from quota_client.infrastructure.cache import MemoryCache, cache_key_for

    with MemoryCache(default_ttl_seconds=600) as cache:
        key = cache_key_for("search", {"keyword": "STM32"})
        cache.set(key, b'{"Parts": []}', ttl_seconds=300)
        payload = cache.get(key)
"""

from __future__ import annotations

import hashlib
import json
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from types import TracebackType
from typing import Self, override

from ..observability import get_logger
from ..protocols import Cache

logger = get_logger("quota_client.infrastructure.cache")

DEFAULT_TTL_SECONDS = 10 * 60.0
DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


@dataclass(frozen=True)
class _CacheEntry:
    value: bytes
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class MemoryCache(Cache):
    """Thread-safe in-memory cache with lazy expiry and a background sweeper.

    Expired entries are dropped when read, and a daemon thread purges the
    rest every `sweep_interval_seconds` so keys that are never read again do
    not accumulate. Call `close()` (or use the cache as a context manager) to
    stop the sweeper; closing twice is harmless.
    """

    def __init__(
        self,
        *,
        default_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        start_sweeper: bool = True,
    ) -> None:
        self.default_ttl_seconds = default_ttl_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._close_lock = threading.Lock()
        self._closed = False
        self._sweeper: threading.Thread | None = None
        if start_sweeper:
            self._sweeper = threading.Thread(
                target=self._sweep_loop, name="quota-client-cache-sweeper", daemon=True
            )
            self._sweeper.start()

    @override
    def get(self, key: str) -> bytes | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return entry.value

    @override
    def set(self, key: str, value: bytes, ttl_seconds: float | None = None) -> None:
        """Store a payload. A TTL of None or zero means the default TTL."""
        if not ttl_seconds or ttl_seconds < 0:
            ttl_seconds = self.default_ttl_seconds
        with self._lock:
            self._entries[key] = _CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)

    @override
    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    @override
    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        """Number of stored entries, including expired ones not yet purged."""
        with self._lock:
            return len(self._entries)

    def purge_expired(self) -> int:
        """Remove every expired entry and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop the background sweeper. Safe to call more than once."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._stop.set()
        sweeper = self._sweeper
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join(timeout=5.0)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.sweep_interval_seconds):
            removed = self.purge_expired()
            if removed:
                logger.debug("Cache sweep removed %d expired entries", removed)


def cache_key_for(operation: str, params: object) -> str:
    """Derive a deterministic cache key from an operation name and its parameters.

    The parameters are serialised canonically (sorted keys, compact
    separators) and hashed, so keys stay short however large the request is.
    """
    canonical = json.dumps(
        params, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"{operation}:{digest[:32]}"

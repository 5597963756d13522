# src/donotghostme/services/sliding_window.py
"""In-process fixed-window counters for public read endpoints.

Counters are keyed by ``(scope, identifier)`` so that exhausting one endpoint
never affects another endpoint for the same caller. The store is bounded;
when it is full, expired windows are swept before a new caller is refused.

The store is single-instance scoped. Each worker process enforces its own
counters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock

from donotghostme.core.errors import (
    PublicRateLimitError,
    RateLimitCapacityError,
    RateLimitReason,
)
from donotghostme.core.security import IpHasher, get_ip_hasher, is_missing_ip, parse_ip
from donotghostme.core.settings import settings
from donotghostme.db.time import now_ms

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 20
DEFAULT_WINDOW_MS = 60_000
DEFAULT_MIN_SWEEP_INTERVAL_MS = 5_000


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single counter check."""

    allowed: bool
    count: int
    limit: int
    remaining: int
    reset_at: int


@dataclass
class _WindowEntry:
    window_start: int
    window_ms: int
    count: int

    def expired(self, now: int) -> bool:
        return now - self.window_start >= self.window_ms


class SlidingWindowStore:
    """Capacity-bounded map of request windows guarded by a single lock."""

    def __init__(
        self,
        max_store_size: int = 10_000,
        min_sweep_interval_ms: int = DEFAULT_MIN_SWEEP_INTERVAL_MS,
    ) -> None:
        if max_store_size < 1:
            raise ValueError("max_store_size must be positive")
        self._max_store_size = max_store_size
        self._min_sweep_interval_ms = min_sweep_interval_ms
        self._entries: dict[tuple[str, str], _WindowEntry] = {}
        self._lock = Lock()
        self._last_sweep_at = 0

    @property
    def max_store_size(self) -> int:
        return self._max_store_size

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def check(
        self,
        scope: str,
        identifier: str,
        max_requests: int,
        window_ms: int,
        now: int,
    ) -> RateLimitResult:
        """Count one request and report whether it fits in the current window.

        Args:
            scope: Feature scope such as ``"health"`` or ``"company-search"``.
            identifier: Hashed caller identifier.
            max_requests: Requests allowed per window.
            window_ms: Window length in milliseconds.
            now: Current time in epoch milliseconds.

        Returns:
            The counter state after this request was counted.

        Raises:
            PublicRateLimitError: If the scope or identifier is blank.
            RateLimitCapacityError: If a new caller cannot be tracked.
        """
        if not scope or not scope.strip():
            raise PublicRateLimitError("Rate limit scope is required", RateLimitReason.INVALID_SCOPE)
        if not identifier or not identifier.strip():
            raise PublicRateLimitError("Client identifier is required", RateLimitReason.MISSING_IP)
        if max_requests < 1 or window_ms < 1:
            raise ValueError("max_requests and window_ms must be positive")

        key = (scope, identifier)
        with self._lock:
            if now - self._last_sweep_at >= max(window_ms, self._min_sweep_interval_ms):
                self._sweep(now)

            entry = self._entries.get(key)
            if entry is None or entry.expired(now):
                if entry is None and len(self._entries) >= self._max_store_size:
                    removed = self._sweep(now)
                    if len(self._entries) >= self._max_store_size:
                        logger.warning(
                            "Sliding window store is full",
                            extra={"scope": scope, "size": len(self._entries), "swept": removed},
                        )
                        raise RateLimitCapacityError()
                entry = _WindowEntry(window_start=now, window_ms=window_ms, count=0)
                self._entries[key] = entry

            entry.count += 1
            allowed = entry.count <= max_requests
            return RateLimitResult(
                allowed=allowed,
                count=entry.count,
                limit=max_requests,
                remaining=max(0, max_requests - entry.count),
                reset_at=entry.window_start + entry.window_ms,
            )

    def reset(self, scope: str, identifier: str) -> None:
        """Forget the window for a single caller in one scope."""
        with self._lock:
            self._entries.pop((scope, identifier), None)

    def clear(self) -> None:
        """Forget every tracked window."""
        with self._lock:
            self._entries.clear()
            self._last_sweep_at = 0

    def _sweep(self, now: int) -> int:
        # Caller must hold self._lock.
        expired = [key for key, entry in self._entries.items() if entry.expired(now)]
        for key in expired:
            del self._entries[key]
        self._last_sweep_at = now
        return len(expired)


class PublicRateLimiter:
    """Fail-closed limiter for public endpoints keyed by hashed client address."""

    def __init__(self, store: SlidingWindowStore, hasher: IpHasher) -> None:
        self._store = store
        self._hasher = hasher

    def enforce(
        self,
        ip: str | None,
        scope: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
        now: int | None = None,
    ) -> RateLimitResult:
        """Count a request from ``ip`` against ``scope`` or raise when denied.

        Raises:
            PublicRateLimitError: For missing or invalid addresses and when the
                window is exhausted.
            RateLimitCapacityError: When the store cannot admit a new caller.
        """
        if ip is None or is_missing_ip(ip):
            logger.warning("Public request without client address", extra={"scope": scope})
            raise PublicRateLimitError(
                "We could not determine your IP address.",
                RateLimitReason.MISSING_IP,
            )
        if parse_ip(ip) is None:
            logger.warning("Public request with invalid client address", extra={"scope": scope})
            raise PublicRateLimitError("Invalid client address.", RateLimitReason.INVALID_IP)

        ip_hash = self._hasher.hash(ip)
        current = now_ms() if now is None else now
        result = self._store.check(scope, ip_hash, max_requests, window_ms, current)
        if not result.allowed:
            logger.warning(
                "Public rate limit exceeded",
                extra={"scope": scope, "ip_hash": ip_hash, "count": result.count},
            )
            raise PublicRateLimitError(
                "Too many requests. Please try again later.",
                RateLimitReason.WINDOW_EXCEEDED,
                retry_after_seconds=max(1, -(-(result.reset_at - current) // 1000)),
            )
        return result


_STORE_LOCK = Lock()
_STORE: SlidingWindowStore | None = None


def get_sliding_window_store() -> SlidingWindowStore:
    """Return the process-wide store, creating it on first use."""
    global _STORE
    with _STORE_LOCK:
        if _STORE is None:
            _STORE = SlidingWindowStore(max_store_size=settings.public_max_store_size)
        return _STORE


def reset_sliding_window_store() -> None:
    """Drop the process-wide store so the next caller builds a fresh one."""
    global _STORE
    with _STORE_LOCK:
        _STORE = None


def get_public_rate_limiter() -> PublicRateLimiter:
    """Return a limiter bound to the process-wide store and hasher."""
    return PublicRateLimiter(get_sliding_window_store(), get_ip_hasher())

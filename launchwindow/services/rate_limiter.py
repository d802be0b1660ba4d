"""Keyed sliding-window rate limiter.

Bounds calls to the launch manifest per resource key (one key per launch,
plus one for the directory). Never blocks: a denied acquisition means
"skip this cycle", callers treat it as a scheduling signal, not an error.

State is in-memory only and starts empty on restart; the provider's quota
resets on its own schedule.
"""

import logging
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from launchwindow.config import RATE_MAX_CALLS, RATE_WINDOW
from launchwindow.utilities.time import utc_now

logger = logging.getLogger(__name__)


@dataclass
class RateLimitStats:
    """Statistics about rate limiting for the admin surface."""

    granted: int = 0
    denied: int = 0
    last_denied_key: str | None = None
    last_denied_at: datetime | None = None

    def to_dict(self) -> dict:
        """Convert to dict for API responses."""
        return {
            "granted": self.granted,
            "denied": self.denied,
            "last_denied_key": self.last_denied_key,
            "last_denied_at": self.last_denied_at.isoformat() if self.last_denied_at else None,
        }


class RateLimiter:
    """Sliding window limiter, one window per key.

    Thread-safe: all window mutation happens under a single lock, and
    acquire() does check-and-record atomically so overlapping requests
    for the same key can't both take the last slot.

    Usage:
        limiter = RateLimiter(max_calls=5, window=timedelta(minutes=60))
        if limiter.acquire(launch_id):
            fetch_launch(launch_id)
        else:
            # Defer to next eligible window
            ...
    """

    def __init__(
        self,
        max_calls: int = RATE_MAX_CALLS,
        window: timedelta = RATE_WINDOW,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._max_calls = max_calls
        self._window = window
        self._clock = clock
        self._calls: dict[str, deque[datetime]] = {}
        self._lock = threading.Lock()
        self._stats = RateLimitStats()

    @property
    def stats(self) -> RateLimitStats:
        return self._stats

    def _prune_key(self, key: str, now: datetime) -> deque[datetime] | None:
        """Drop expired timestamps for key. Caller holds the lock."""
        calls = self._calls.get(key)
        if calls is None:
            return None
        cutoff = now - self._window
        while calls and calls[0] < cutoff:
            calls.popleft()
        if not calls:
            # Keep the map bounded to keys with live calls
            del self._calls[key]
            return None
        return calls

    def try_acquire(self, key: str, now: datetime | None = None) -> bool:
        """True if a call for key would be allowed right now.

        Does not record the call; pair with record(), or use acquire().
        """
        now = now or self._clock()
        with self._lock:
            calls = self._prune_key(key, now)
            return calls is None or len(calls) < self._max_calls

    def record(self, key: str, now: datetime | None = None) -> None:
        """Record a call for key."""
        now = now or self._clock()
        with self._lock:
            self._prune_key(key, now)
            self._calls.setdefault(key, deque()).append(now)

    def acquire(self, key: str, now: datetime | None = None) -> bool:
        """Check and record in one step. False if the window is full."""
        now = now or self._clock()
        with self._lock:
            calls = self._prune_key(key, now)
            if calls is not None and len(calls) >= self._max_calls:
                self._stats.denied += 1
                self._stats.last_denied_key = key
                self._stats.last_denied_at = now
                logger.info(
                    f"[RATE] Denied call for {key}: {len(calls)}/{self._max_calls} "
                    f"in last {int(self._window.total_seconds() // 60)} min"
                )
                return False
            self._calls.setdefault(key, deque()).append(now)
            self._stats.granted += 1
            return True

    def remaining(self, key: str, now: datetime | None = None) -> int:
        """Calls still available for key in the current window."""
        now = now or self._clock()
        with self._lock:
            calls = self._prune_key(key, now)
            return self._max_calls - (len(calls) if calls else 0)

    def prune(self, now: datetime | None = None) -> int:
        """Drop expired state for every key. Returns keys still tracked."""
        now = now or self._clock()
        with self._lock:
            for key in list(self._calls):
                self._prune_key(key, now)
            return len(self._calls)

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._calls)

    def reset(self) -> None:
        """Forget all windows and statistics."""
        with self._lock:
            self._calls.clear()
            self._stats = RateLimitStats()

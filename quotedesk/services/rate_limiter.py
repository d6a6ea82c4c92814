"""
In-process sliding-window limiter for legacy quote submissions.

One instance lives on the app for the life of the process. It is an
optimisation in front of the persistent per-IP count done by the legacy
quote service, never the only enforcement point: its state is lost on
restart and is not shared between instances.
"""

import math
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict

import structlog

logger = structlog.get_logger()


class SubmissionRateLimiter:
    def __init__(
        self,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
        max_tracked_keys: int = 10_000,
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._max_tracked_keys = max_tracked_keys
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, hits: Deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def try_consume(self, key: str) -> bool:
        """Record a hit for ``key`` if it is under the limit."""
        with self._lock:
            now = self._clock()
            hits = self._hits.get(key)
            if hits is None:
                if len(self._hits) >= self._max_tracked_keys:
                    self._cleanup_locked(now)
                hits = self._hits[key] = deque(maxlen=self.limit)
            self._prune(hits, now)
            if len(hits) >= self.limit:
                return False
            hits.append(now)
            return True

    def retry_after(self, key: str) -> int:
        """Seconds until ``key`` frees a slot; 0 when one is free now."""
        with self._lock:
            now = self._clock()
            hits = self._hits.get(key)
            if not hits:
                return 0
            self._prune(hits, now)
            if len(hits) < self.limit:
                return 0
            return max(1, math.ceil(hits[0] + self.window_seconds - now))

    def release(self, key: str) -> None:
        """Give back the most recent hit, e.g. when the write was rolled back."""
        with self._lock:
            hits = self._hits.get(key)
            if hits:
                hits.pop()

    def cleanup(self) -> int:
        with self._lock:
            return self._cleanup_locked(self._clock())

    def _cleanup_locked(self, now: float) -> int:
        stale = []
        for key, hits in self._hits.items():
            self._prune(hits, now)
            if not hits:
                stale.append(key)
        for key in stale:
            del self._hits[key]
        if stale:
            logger.debug("rate_limiter_cleanup", removed=len(stale))
        return len(stale)

    def tracked_keys(self) -> int:
        return len(self._hits)

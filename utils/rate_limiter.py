"""
Per-caller request limiting over a sliding time window.
"""
import threading
import time
from typing import Callable

from utils.errors import RateLimitError
from utils.logger import setup_logger

logger = setup_logger(__name__)


class RateLimiter:
    """
    Sliding-window limiter keyed by caller identifier (session id, client ip, ...).

    Constructed once and injected where needed; every instance keeps its own
    buckets.
    """

    def __init__(self, max_requests: int = 100, window_s: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_s = window_s
        self._clock = clock
        self._buckets: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, times: list[float], now: float) -> None:
        cutoff = now - self.window_s
        i = 0
        for t in times:
            if t > cutoff:
                break
            i += 1
        if i:
            del times[:i]

    def check(self, identifier: str) -> bool:
        """Record a request; return True if allowed, False if rate-limited."""
        with self._lock:
            now = self._clock()
            times = self._buckets.setdefault(identifier, [])
            self._prune(times, now)
            if len(times) >= self.max_requests:
                logger.warning(
                    f"Rate limit exceeded for {identifier} "
                    f"({len(times)}/{self.max_requests} in {self.window_s:.0f}s)"
                )
                return False
            times.append(now)
            return True

    def acquire(self, identifier: str) -> None:
        """
        Record a request or raise.

        Raises:
            RateLimitError: If the caller already used its budget for the window
        """
        if not self.check(identifier):
            with self._lock:
                times = self._buckets.get(identifier) or [self._clock()]
                reset_at = times[0] + self.window_s
            raise RateLimitError(identifier, reset_at)

    def remaining(self, identifier: str) -> int:
        with self._lock:
            times = self._buckets.get(identifier)
            if not times:
                return self.max_requests
            self._prune(times, self._clock())
            return max(0, self.max_requests - len(times))

    def cleanup(self) -> int:
        """Drop identifiers with no requests left in the window. Returns how many were dropped."""
        with self._lock:
            now = self._clock()
            stale = []
            for key, times in self._buckets.items():
                self._prune(times, now)
                if not times:
                    stale.append(key)
            for key in stale:
                del self._buckets[key]
            return len(stale)

    def stats(self) -> dict:
        with self._lock:
            return {
                'total_tracked': len(self._buckets),
                'window_s': self.window_s,
                'max_requests': self.max_requests,
            }

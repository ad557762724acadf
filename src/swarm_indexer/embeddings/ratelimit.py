"""Token-bucket rate limiter shared by all indexing workers."""

import logging
import threading
import time
from collections.abc import Callable

from swarm_indexer.errors import RateLimitWaitCancelled

logger = logging.getLogger(__name__)


class TokenBucket:
    """Token bucket that blocks callers until a token is available.

    Tokens accumulate at ``rate`` per second up to ``burst``. Each ``wait()``
    reserves one token under the lock and then sleeps outside it, so
    concurrent callers are queued fairly without holding the lock while
    sleeping.
    """

    def __init__(
        self,
        rate: float,
        burst: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        if burst < 1:
            raise ValueError(f"burst must be at least 1, got {burst}")
        self.rate = rate
        self.burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last = clock()
        self._lock = threading.Lock()

    @classmethod
    def per_minute(cls, requests_per_minute: int) -> "TokenBucket":
        """Build a bucket from a requests-per-minute budget (burst of 1)."""
        if requests_per_minute <= 0:
            raise ValueError(f"requests_per_minute must be positive, got {requests_per_minute}")
        return cls(rate=requests_per_minute / 60.0, burst=1)

    def _reserve(self) -> float:
        with self._lock:
            now = self._clock()
            elapsed = max(0.0, now - self._last)
            self._last = now
            self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
            self._tokens -= 1.0
            if self._tokens >= 0:
                return 0.0
            return -self._tokens / self.rate

    def _release(self) -> None:
        with self._lock:
            self._tokens = min(float(self.burst), self._tokens + 1.0)

    def wait(self, cancel: threading.Event | None = None) -> None:
        """Block until a token is available.

        Args:
            cancel: Optional event; setting it aborts the wait

        Raises:
            RateLimitWaitCancelled: If ``cancel`` is set before a token
                becomes available. The reserved token is returned.
        """
        if cancel is not None and cancel.is_set():
            raise RateLimitWaitCancelled("cancelled before acquiring a rate-limit token")

        delay = self._reserve()
        if delay <= 0:
            return

        logger.debug(f"Rate limiter: waiting {delay:.2f}s for a token")
        if cancel is None:
            time.sleep(delay)
            return
        if cancel.wait(delay):
            self._release()
            raise RateLimitWaitCancelled("cancelled while waiting for a rate-limit token")

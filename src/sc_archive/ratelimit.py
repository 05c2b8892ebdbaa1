"""
Client-side request admission under a fixed requests-per-window budget.

One limiter instance may be shared by several crawls when the budget is global
to the remote API; slot reservation is guarded by a lock so concurrent callers
never over-admit. Waiting happens outside the lock.
"""
from __future__ import annotations

import bisect
import logging
import threading
import time
from typing import Callable

from .errors import ConfigError, RateLimitExceeded

logger = logging.getLogger(__name__)

ClockFn = Callable[[], float]
SleepFn = Callable[[float], None]


class RateLimiter:
    """
    Sliding-window limiter: at most ``max_requests`` admissions in any
    ``window_seconds`` span.

    ``admit()`` blocks until the caller may send its request and returns the
    time waited. A wait longer than ``max_wait_seconds`` raises
    RateLimitExceeded instead of sleeping.
    """

    def __init__(
        self,
        max_requests: int = 1,
        window_seconds: float = 2.0,
        *,
        max_wait_seconds: float = 60.0,
        clock: ClockFn = time.monotonic,
        sleep: SleepFn = time.sleep,
    ):
        if max_requests <= 0:
            raise ConfigError("max_requests must be > 0.")
        if window_seconds <= 0:
            raise ConfigError("window_seconds must be > 0.")
        if max_wait_seconds < 0:
            raise ConfigError("max_wait_seconds must be >= 0.")

        self._max_requests = max_requests
        self._window_seconds = float(window_seconds)
        self._max_wait_seconds = float(max_wait_seconds)
        self._clock = clock
        self._sleep = sleep

        self._lock = threading.Lock()
        # Sorted admission times, including reservations in the future.
        self._admissions: list[float] = []

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def admit(self) -> float:
        """
        Block until a request is permitted. Returns seconds waited.

        Raises:
            RateLimitExceeded: If the wait would exceed max_wait_seconds
        """
        with self._lock:
            now = self._clock()
            self._evict(now)

            if len(self._admissions) < self._max_requests:
                bisect.insort(self._admissions, now)
                wait_time = 0.0
            else:
                wait_time = self._admissions[0] + self._window_seconds - now
                if wait_time > self._max_wait_seconds:
                    raise RateLimitExceeded(
                        f"Rate limit wait would be {wait_time:.1f}s, "
                        f"exceeding ceiling of {self._max_wait_seconds:.1f}s"
                    )
                # Reserve the slot by taking over the oldest admission's place
                self._admissions.pop(0)
                bisect.insort(self._admissions, now + wait_time)

        if wait_time > 0:
            logger.debug(f"Rate limit: waiting {wait_time:.3f}s before next request")
            self._sleep(wait_time)
        return wait_time

    def _evict(self, now: float) -> None:
        horizon = now - self._window_seconds
        while self._admissions and self._admissions[0] <= horizon:
            self._admissions.pop(0)

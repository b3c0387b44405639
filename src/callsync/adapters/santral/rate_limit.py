"""Request ceiling for the Santral API."""
from __future__ import annotations

import threading
import time
from collections.abc import Callable


class RateLimitExceeded(RuntimeError):
    def __init__(self, retry_after: float) -> None:
        super().__init__(f"Rate limit exceeded; retry in {retry_after:.0f} seconds.")
        self.retry_after = retry_after


class RateLimiter:
    """Counts requests inside a one-minute window and refuses those over the ceiling.

    Unlike a blocking limiter this never sleeps; callers decide whether to try later.
    """

    WINDOW_SECONDS = 60.0

    def __init__(
        self,
        requests_per_minute: int | None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._limit = int(requests_per_minute) if requests_per_minute else 0
        self._clock = clock
        self._lock = threading.Lock()
        self._window_started = 0.0
        self._count = 0

    def acquire(self) -> None:
        if self._limit <= 0:
            return
        with self._lock:
            now = self._clock()
            if self._count == 0 or now - self._window_started >= self.WINDOW_SECONDS:
                self._window_started = now
                self._count = 0
            if self._count >= self._limit:
                raise RateLimitExceeded(self.WINDOW_SECONDS - (now - self._window_started))
            self._count += 1

    @property
    def remaining(self) -> int | None:
        if self._limit <= 0:
            return None
        return max(self._limit - self._count, 0)

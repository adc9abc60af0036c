"""
Rolling-window rate limiter.

Tracks request timestamps per limiter instance over a sliding window. When
the ceiling is reached ``acquire`` raises RateLimited immediately instead of
blocking, so callers fall through to the next provider.
"""

import time
from collections import deque
from threading import Lock
from typing import Callable, Deque

from config.constants import RATE_LIMIT_WINDOW_SECONDS
from data_acquisition.providers.errors import RateLimited


class RollingWindowRateLimiter:
    """Allow at most ``max_requests`` per ``window_seconds``."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        name: str = "provider"
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.name = name
        self._clock = clock
        self._stamps: Deque[float] = deque()
        self._lock = Lock()

    def _evict(self, now: float) -> None:
        while self._stamps and now - self._stamps[0] >= self.window_seconds:
            self._stamps.popleft()

    def try_acquire(self) -> bool:
        with self._lock:
            now = self._clock()
            self._evict(now)
            if len(self._stamps) >= self.max_requests:
                return False
            self._stamps.append(now)
            return True

    def acquire(self) -> None:
        if not self.try_acquire():
            raise RateLimited(
                f"{self.name}: {self.max_requests} requests per {self.window_seconds:.0f}s exceeded"
            )

    def remaining(self) -> int:
        with self._lock:
            self._evict(self._clock())
            return self.max_requests - len(self._stamps)

    def reset(self) -> None:
        with self._lock:
            self._stamps.clear()

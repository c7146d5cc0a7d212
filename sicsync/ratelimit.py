"""
Sliding-window limiter shared by every registry lookup in a process.

Companies House allows 600 calls per 5 minutes per key. The candidate
selector already caps a run at 600 items; this limiter keeps concurrent
workers from bursting past the ceiling inside one window.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable

REGISTRY_MAX_CALLS = 600
REGISTRY_WINDOW_SECONDS = 300.0


class SlidingWindowRateLimiter:
    """
    Allows at most ``max_calls`` acquisitions in any ``period`` seconds.
    """

    def __init__(
        self,
        max_calls: int = REGISTRY_MAX_CALLS,
        period: float = REGISTRY_WINDOW_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")
        if period <= 0:
            raise ValueError("period must be positive")
        self.max_calls = max_calls
        self.period = period
        self._clock = clock
        self._sleep = sleep
        self._calls: deque[float] = deque()
        self._lock = threading.Lock()

    def acquire(self) -> float:
        """
        Block until a call slot is free, then take it.

        Returns the number of seconds spent waiting.
        """
        waited = 0.0
        with self._lock:
            while True:
                now = self._clock()
                while self._calls and now - self._calls[0] >= self.period:
                    self._calls.popleft()
                if len(self._calls) < self.max_calls:
                    self._calls.append(now)
                    return waited
                wait_seconds = self.period - (now - self._calls[0])
                self._sleep(wait_seconds)
                waited += wait_seconds

    @property
    def in_window(self) -> int:
        """Calls counted in the current window."""
        with self._lock:
            now = self._clock()
            return sum(1 for t in self._calls if now - t < self.period)

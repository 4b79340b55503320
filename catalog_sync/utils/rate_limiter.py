"""
Sliding-window limiter for upstream catalog API calls
"""
import asyncio
import logging
import time
from collections import deque
from typing import Callable, Deque, Optional

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0


class RateLimiter:
    """
    Caps upstream calls at `requests_per_minute` over a rolling 60 s window.
    Concurrent callers queue on a lock so bursts from parallel facet fetches
    cannot overshoot the cap.
    """

    def __init__(self, requests_per_minute: int, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            requests_per_minute: Calls allowed per rolling minute (0 disables limiting)
            clock: Monotonic time source, injectable for tests
        """
        self.requests_per_minute = requests_per_minute
        self.request_times: Deque[float] = deque()
        self.last_request_time: Optional[float] = None
        self._clock = clock
        self._lock = asyncio.Lock()

    def _expire(self, now: float) -> None:
        while self.request_times and now - self.request_times[0] > WINDOW_SECONDS:
            self.request_times.popleft()

    def delay_needed(self) -> float:
        """Seconds until the window has room for one more call"""
        if not self.requests_per_minute:
            return 0.0
        now = self._clock()
        self._expire(now)
        if len(self.request_times) < self.requests_per_minute:
            return 0.0
        return max(WINDOW_SECONDS - (now - self.request_times[0]) + 0.1, 0.0)

    async def wait_if_needed(self) -> None:
        """Await before each upstream call; records the call once allowed"""
        if not self.requests_per_minute:
            return

        async with self._lock:
            delay = self.delay_needed()
            if delay > 0:
                logger.debug("Catalog API rate limit reached; sleeping %.2fs", delay)
                await asyncio.sleep(delay)
                self._expire(self._clock())

            now = self._clock()
            self.request_times.append(now)
            self.last_request_time = now

    def get_stats(self) -> dict:
        self._expire(self._clock())
        return {
            "requests_in_last_minute": len(self.request_times),
            "limit": self.requests_per_minute,
            "last_request_time": self.last_request_time,
        }

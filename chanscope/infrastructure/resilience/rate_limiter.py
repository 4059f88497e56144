"""Client-side request pacing.

Keeps outgoing upstream calls under a sliding-window budget so that a large
membership fan-out does not trip the server's 429 handling in the first
place. Optional: the RetryPolicy works without it.
"""

import time
import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Deque

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 30
DEFAULT_TIME_WINDOW_SECONDS = 60


class RateLimiter:
    """Simple sliding window rate limiter."""

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        time_window: float = DEFAULT_TIME_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initializes the rate limiter.

        Args:
            max_requests: Maximum number of requests allowed in the time window.
            time_window: The time window in seconds.
            clock: Monotonic time source.
            sleep: Coroutine used to wait; injectable for tests.
        """
        if max_requests <= 0:
            raise ValueError(f"max_requests must be positive, got {max_requests}")
        self.max_requests = max_requests
        self.time_window = time_window
        self._clock = clock
        self._sleep = sleep
        self.timestamps: Deque[float] = deque()
        self._lock = asyncio.Lock()
        logger.info(f"RateLimiter initialized: {max_requests} requests / {time_window} seconds")

    def _cleanup_timestamps(self, now: float) -> None:
        """Removes timestamps older than the time window."""
        while self.timestamps and now - self.timestamps[0] >= self.time_window:
            self.timestamps.popleft()

    async def get_wait_time(self) -> float:
        """Estimates the time needed before the next request can be made."""
        async with self._lock:
            now = self._clock()
            self._cleanup_timestamps(now)
            if len(self.timestamps) < self.max_requests:
                return 0.0
            return max(0.0, self.timestamps[0] + self.time_window - now)

    async def wait_for_permission(self) -> None:
        """Waits until a request is permitted, then records it."""
        while True:
            async with self._lock:
                now = self._clock()
                self._cleanup_timestamps(now)
                if len(self.timestamps) < self.max_requests:
                    self.timestamps.append(now)
                    return
                wait_time = max(0.0, self.timestamps[0] + self.time_window - now)

            logger.debug(f"Rate limit reached. Waiting for {wait_time:.2f} seconds.")
            await self._sleep(wait_time)

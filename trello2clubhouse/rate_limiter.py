"""Token bucket rate limiter shared by the HTTP clients."""

from __future__ import annotations

import time
from typing import Any, Callable


class RateLimiter:
    """Token bucket rate limiter for API requests

    Each client owns one bucket sized to the API it talks to. The migration
    runs on a single thread, so the bucket keeps no lock.
    """

    def __init__(
        self,
        requests_per_second: float,
        burst_allowance: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            requests_per_second: Sustained rate (tokens added per second)
            burst_allowance: Bucket capacity, i.e. how many calls may go out back to back
            clock: Monotonic time source, injectable for tests
        """
        self.rate = requests_per_second
        self.burst_allowance = burst_allowance
        self.tokens = float(burst_allowance)
        self._clock = clock
        self.last_update = clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self.last_update
        self.tokens = min(float(self.burst_allowance), self.tokens + elapsed * self.rate)
        self.last_update = now

    def acquire(self, timeout: float = 5.0) -> bool:
        """Take one token, sleeping until one is available.

        Returns:
            True when a token was taken, False if ``timeout`` seconds passed first
        """
        deadline = self._clock() + timeout

        while True:
            self._refill()
            if self.tokens >= 1.0:
                self.tokens -= 1.0
                return True

            remaining = deadline - self._clock()
            if remaining <= 0:
                return False

            if self.rate > 0:
                wait = (1.0 - self.tokens) / self.rate
            else:
                wait = remaining
            time.sleep(min(wait, remaining, 0.05))

    def get_status(self) -> dict[str, Any]:
        """Current bucket state, for debug logging"""
        self._refill()
        return {
            "available_tokens": self.tokens,
            "max_tokens": self.burst_allowance,
            "rate_per_second": self.rate,
        }

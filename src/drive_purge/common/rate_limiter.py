"""Token bucket rate limiter shared by Drive API calls."""

import time
from threading import Lock
from typing import Optional


class TokenBucketRateLimiter:
    """Thread-safe token bucket rate limiter.

    A rate of zero or less disables limiting entirely.
    """

    def __init__(self, rate: float, capacity: Optional[float] = None) -> None:
        """Initialize rate limiter.

        Args:
            rate: Tokens added per second (requests/second)
            capacity: Bucket capacity (defaults to rate)
        """
        self.rate = rate
        self.capacity = capacity or max(rate, 1.0)
        self.tokens = self.capacity
        self.last_update = time.monotonic()
        self.lock = Lock()

    @property
    def unlimited(self) -> bool:
        return self.rate <= 0

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last_update
        self.tokens = min(self.capacity, self.tokens + elapsed * self.rate)
        self.last_update = now

    def acquire(self, tokens: int = 1, blocking: bool = True) -> bool:
        """Acquire tokens, optionally blocking until available.

        The lock is released while sleeping so that other worker threads can
        refill and consume in the meantime.

        Args:
            tokens: Number of tokens to acquire
            blocking: If True, wait for tokens; if False, return immediately

        Returns:
            True if tokens acquired, False if not available and non-blocking
        """
        if self.unlimited:
            return True

        while True:
            with self.lock:
                self._refill()
                if self.tokens >= tokens:
                    self.tokens -= tokens
                    return True
                wait = (tokens - self.tokens) / self.rate

            if not blocking:
                return False
            time.sleep(wait)

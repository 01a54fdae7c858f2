import asyncio
import logging
import math
import time
from typing import Callable, Optional

from .exceptions import FinnhubError
from .models import RateLimitConfig, TokenBucketStats

logger = logging.getLogger(__name__)


class TokenBucket:
    """
    Token bucket rate limiter shared by every handle of a client.

    Holds up to ``capacity`` tokens and earns ``refill_rate`` tokens per
    second. Refill is lazy: it is reconciled with the clock on every access,
    so an idle bucket needs no background timer.

    Waiters are not served in arrival order. A caller that arrives while
    another one sleeps may take the freshly earned token first.
    """

    def __init__(
        self,
        capacity: int,
        refill_rate: int,
        clock: Optional[Callable[[], float]] = None,
    ):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        if refill_rate < 1:
            raise ValueError(f"refill_rate must be at least 1, got {refill_rate}")

        self._capacity = capacity
        self._refill_rate = refill_rate
        self._clock = clock or time.monotonic
        self._tokens = capacity
        self._last_refill = self._clock()
        self._lock = asyncio.Lock()

        # Statistics
        self.total_acquired: int = 0
        self.total_wait_time: float = 0
        self.max_wait_time: float = 0
        self.rate_limit_hits: int = 0
        self.waiting: int = 0

    @classmethod
    def from_config(
        cls,
        config: RateLimitConfig,
        clock: Optional[Callable[[], float]] = None,
    ) -> "TokenBucket":
        """Create a bucket sized for the given rate limit strategy"""
        return cls(config.bucket_size, config.tokens_per_second, clock=clock)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def refill_rate(self) -> int:
        return self._refill_rate

    def __repr__(self) -> str:
        return (
            f"TokenBucket(capacity={self._capacity}, refill_rate={self._refill_rate}, "
            f"tokens={self._tokens})"
        )

    def _refill(self) -> None:
        """Add the whole tokens earned since the last refill. Caller holds the lock."""
        now = self._clock()
        elapsed = now - self._last_refill
        to_add = math.floor(elapsed * self._refill_rate)
        if to_add <= 0:
            return

        self._tokens = min(self._capacity, self._tokens + to_add)
        if self._tokens == self._capacity:
            self._last_refill = now
        else:
            # Carry the partially earned token over to the next refill
            self._last_refill += to_add / self._refill_rate

    def _take(self) -> bool:
        """Refill, then consume one token if there is one. Caller holds the lock."""
        self._refill()
        if self._tokens > 0:
            self._tokens -= 1
            self.total_acquired += 1
            return True
        return False

    async def try_acquire(self) -> None:
        """
        Take a token without waiting.

        Raises:
            FinnhubError: RATE_LIMIT_EXCEEDED when the bucket is empty
        """
        async with self._lock:
            if self._take():
                return
            self.rate_limit_hits += 1

        retry_after = math.ceil(1 / self._refill_rate)
        logger.debug(f"Token bucket empty, suggesting retry after {retry_after}s")
        raise FinnhubError.rate_limit_exceeded(retry_after)

    async def acquire(self) -> None:
        """
        Take a token, waiting as long as necessary.

        Check under the lock, sleep for one refill interval with the lock
        released, then check again. Cancelling a waiter never consumes a
        token because the decrement only happens inside the check.
        """
        wait_interval = 1 / self._refill_rate
        waited = 0.0
        sleeping = False

        try:
            while True:
                async with self._lock:
                    if self._take():
                        break

                if not sleeping:
                    sleeping = True
                    self.waiting += 1
                    logger.debug(f"Token bucket empty, waiting in steps of {wait_interval:.3f} seconds")
                await asyncio.sleep(wait_interval)
                waited += wait_interval
        finally:
            if sleeping:
                self.waiting -= 1

        if waited > 0:
            self.total_wait_time += waited
            self.max_wait_time = max(self.max_wait_time, waited)

    async def available_tokens(self) -> int:
        """Return the current token count after refilling, without consuming"""
        async with self._lock:
            self._refill()
            return self._tokens

    def _peek_tokens(self) -> int:
        """Token count a refill would produce now, leaving the bucket untouched"""
        earned = math.floor((self._clock() - self._last_refill) * self._refill_rate)
        return min(self._capacity, self._tokens + max(earned, 0))

    def get_stats(self) -> TokenBucketStats:
        """
        Get a statistics snapshot.

        ``available_tokens`` includes tokens earned since the last access,
        so an idle bucket reports as full. The bucket itself is not modified.
        """
        return TokenBucketStats(
            capacity=self._capacity,
            refill_rate=self._refill_rate,
            available_tokens=self._peek_tokens(),
            total_acquired=self.total_acquired,
            total_wait_time=self.total_wait_time,
            max_wait_time=self.max_wait_time,
            rate_limit_hits=self.rate_limit_hits,
            waiting=self.waiting,
        )

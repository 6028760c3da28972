"""In-process token bucket limiting outbound Table API requests."""

from __future__ import annotations

import asyncio
import time

from cmdbwalk.utils.logging import get_logger

logger = get_logger(__name__)


class TokenBucketRateLimiter:
    """Token bucket shared by every request one client issues.

    ServiceNow enforces per-user rate limit rules; keeping a client-side
    budget avoids tripping them during wide depth-5 walks.
    """

    def __init__(self, rate: float, capacity: int) -> None:
        if rate <= 0 or capacity < 1:
            raise ValueError("rate must be > 0 and capacity >= 1")
        self._rate = rate  # tokens per second
        self._capacity = capacity
        self._tokens = float(capacity)
        self._last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    async def acquire(self) -> float:
        """Consume one token, sleeping until the bucket refills if it is empty.

        Returns the seconds spent waiting (0.0 when a token was on hand).
        """
        async with self._lock:
            waited = 0.0
            self._refill()
            while self._tokens < 1.0:
                wait = (1.0 - self._tokens) / self._rate
                await asyncio.sleep(wait)
                waited += wait
                self._refill()
            self._tokens -= 1.0
            return waited

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._last_refill = now

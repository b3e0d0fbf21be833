"""
In-memory rate limiter.

Sliding window per key. State lives in the process, so limits are per
instance when the API runs with several workers.
"""

import asyncio
import logging
import math
import time
from collections import defaultdict
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Allows ``limit`` requests per ``period_s`` seconds per key.

    Usage:
        limiter = RateLimiter(limit=10, period_s=60)
        retry_after = await limiter.check_and_increment(f"plans-from-catalog:{user_id}")
        if retry_after is not None:
            ...  # reject, retry in `retry_after` seconds
    """

    def __init__(
        self,
        limit: int = 10,
        period_s: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.period_s = period_s
        self._clock = clock
        self.requests: dict[str, list[float]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def check_and_increment(self, key: str) -> Optional[int]:
        """
        Record a request for ``key`` if allowed.

        Returns None if the request is allowed, otherwise the number of
        whole seconds until the oldest request leaves the window.
        """
        async with self._lock:
            now = self._clock()

            # Clean timestamps outside the window
            cutoff = now - self.period_s
            self.requests[key] = [ts for ts in self.requests[key] if ts > cutoff]

            if len(self.requests[key]) >= self.limit:
                oldest = self.requests[key][0]
                retry_after = max(1, math.ceil(oldest + self.period_s - now))
                logger.warning(
                    f"Rate limit hit: {len(self.requests[key])}/{self.limit} "
                    f"requests in {self.period_s}s for {key}"
                )
                return retry_after

            self.requests[key].append(now)
            return None

    def reset(self) -> None:
        self.requests.clear()

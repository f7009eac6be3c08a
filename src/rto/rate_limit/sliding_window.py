"""In-memory sliding-window rate limiter.

Keeps the timestamps of accepted requests per actor. A request is allowed when
fewer than ``limit`` requests were accepted in the last ``window_seconds``;
rejected requests are not counted.
"""

import math
import threading
import time
from collections import defaultdict, deque
from collections.abc import Callable

from rto.rate_limit.port import RateLimitDecision, RateLimiter


class SlidingWindowRateLimiter(RateLimiter):
    def __init__(
        self,
        limit: int = 10,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def check_limit(self, actor_key: str) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            hits = self._hits[actor_key]
            while hits and hits[0] <= now - self.window_seconds:
                hits.popleft()

            if len(hits) >= self.limit:
                retry_after = max(1, math.ceil(hits[0] + self.window_seconds - now))
                return RateLimitDecision(allowed=False, retry_after=retry_after, remaining=0)

            hits.append(now)
            return RateLimitDecision(allowed=True, remaining=self.limit - len(hits))

    def reset(self, actor_key: str | None = None) -> None:
        with self._lock:
            if actor_key is None:
                self._hits.clear()
            else:
                self._hits.pop(actor_key, None)

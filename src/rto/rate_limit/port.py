"""Rate limiter port — per-actor throttling of RTO triggers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int | None = None  # seconds until the next request would be allowed
    remaining: int | None = None


class RateLimiter(ABC):
    @abstractmethod
    def check_limit(self, actor_key: str) -> RateLimitDecision:
        """Count one request for ``actor_key`` and decide whether it may proceed."""
        ...

"""Per-provider request budgets.

Each provider gets a fixed one-minute bucket. The bucket resets lazily the
first time it is checked after its window has passed.

``check_budget`` and ``consume`` are separate calls, so two searches racing
on the same provider can both pass the check before either consumes. The
limits only exist to stay clear of provider throttling, so an occasional
overshoot of one or two requests is acceptable.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .errors import RateLimitExceeded

logger = logging.getLogger("eventfinder.rate_limit")

WINDOW_SECONDS = 60.0


@dataclass
class Bucket:
    requests_per_minute: int
    current_count: int = 0
    reset_time: float = 0.0


class RateLimiter:
    def __init__(self, limits: Dict[str, int], clock: Callable[[], float] = time.monotonic,
                 window: float = WINDOW_SECONDS):
        self.clock = clock
        self.window = window
        self.buckets: Dict[str, Bucket] = {
            name: Bucket(requests_per_minute=limit) for name, limit in limits.items()
        }

    def _bucket(self, provider: str) -> Optional[Bucket]:
        return self.buckets.get(provider)

    def check_budget(self, provider: str) -> bool:
        """True if the provider may make another request in this window.

        Providers without a configured limit are never throttled.
        """
        bucket = self._bucket(provider)
        if bucket is None:
            return True
        now = self.clock()
        if now > bucket.reset_time:
            bucket.current_count = 0
            bucket.reset_time = now + self.window
        return bucket.current_count < bucket.requests_per_minute

    def consume(self, provider: str) -> None:
        bucket = self._bucket(provider)
        if bucket is not None:
            bucket.current_count += 1

    def acquire(self, provider: str) -> None:
        """Check then consume; raise RateLimitExceeded when out of budget."""
        if not self.check_budget(provider):
            bucket = self.buckets[provider]
            logger.warning(
                f"Rate limit reached for {provider} "
                f"({bucket.current_count}/{bucket.requests_per_minute} this minute)"
            )
            raise RateLimitExceeded(provider, bucket.reset_time)
        self.consume(provider)

    def remaining(self, provider: str) -> Optional[int]:
        bucket = self._bucket(provider)
        if bucket is None:
            return None
        if self.clock() > bucket.reset_time:
            return bucket.requests_per_minute
        return max(0, bucket.requests_per_minute - bucket.current_count)

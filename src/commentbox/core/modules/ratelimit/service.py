"""In-process fixed-window rate limiting.

Counters live in this process only; multiple workers each keep their own.
"""

import time
from collections.abc import Callable
from enum import StrEnum
from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from commentbox.config import RateLimit
from commentbox.core.core import Service
from commentbox.errors import RateLimitError

logger = structlog.get_logger(__name__)

MAX_TRACKED_CLIENTS = 10_000


class RateLimitBucket(StrEnum):
    GENERAL = "general"
    AUTH = "auth"
    COMMENT_CREATE = "comment_create"
    VOTE = "vote"
    MODIFY = "modify"


# Buckets where successful requests are given back, so only failures use up the budget
FAILED_ONLY_BUCKETS = frozenset({RateLimitBucket.COMMENT_CREATE, RateLimitBucket.VOTE})


class FixedWindowCounter:
    """Counts hits per key within fixed windows of `window_seconds`."""

    def __init__(self, limit: RateLimit, clock: Callable[[], float] = time.monotonic) -> None:
        self._limit = limit
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}  # key -> (window start, hits)

    def __len__(self) -> int:
        return len(self._windows)

    def hit(self, key: str) -> bool:
        """Record a hit and return False if it exceeds the limit."""
        current = self._clock()
        start, hits = self._windows.get(key, (current, 0))
        if current - start >= self._limit.window_seconds:
            start, hits = current, 0
        hits += 1
        self._windows[key] = (start, hits)
        return hits <= self._limit.requests

    def release(self, key: str) -> None:
        """Take back one hit recorded in the current window."""
        window = self._windows.get(key)
        if window is not None and window[1] > 0:
            self._windows[key] = (window[0], window[1] - 1)

    def prune(self) -> None:
        """Forget keys whose window has ended."""
        current = self._clock()
        self._windows = {
            key: window for key, window in self._windows.items() if current - window[0] < self._limit.window_seconds
        }


class RateLimitService(Service):
    """Per-client request budgets for each bucket."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._counters: dict[RateLimitBucket, FixedWindowCounter] = {}

    async def on_start(self) -> None:
        config = self.core.config
        self._counters = {
            RateLimitBucket.GENERAL: FixedWindowCounter(config.rate_limit_general),
            RateLimitBucket.AUTH: FixedWindowCounter(config.rate_limit_auth),
            RateLimitBucket.COMMENT_CREATE: FixedWindowCounter(config.rate_limit_comment_create),
            RateLimitBucket.VOTE: FixedWindowCounter(config.rate_limit_vote),
            RateLimitBucket.MODIFY: FixedWindowCounter(config.rate_limit_modify),
        }

    def hit(self, bucket: RateLimitBucket, client: str) -> None:
        """Count a request from `client` against `bucket`.

        Raises:
            RateLimitError: If the client has used up the bucket's budget for the current window.
        """
        if not self.core.config.rate_limit_enabled:
            return
        counter = self._counters.get(bucket)
        if counter is None:
            return
        if not counter.hit(client):
            logger.warning("rate_limited", bucket=bucket, client=client)
            raise RateLimitError
        if len(counter) > MAX_TRACKED_CLIENTS:
            counter.prune()

    def release(self, bucket: RateLimitBucket, client: str) -> None:
        """Give back the hit of a request that succeeded, for buckets that only count failures."""
        if not self.core.config.rate_limit_enabled or bucket not in FAILED_ONLY_BUCKETS:
            return
        counter = self._counters.get(bucket)
        if counter is not None:
            counter.release(client)

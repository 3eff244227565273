"""Fixed-window rate limiting on top of Redis counters."""

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.core.exceptions import RateLimitExceededError


if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RateWindow:
    """At most ``limit`` hits per ``seconds``-long window."""

    limit: int
    seconds: int


class RateLimiter:
    """Counts hits per (scope, subject) in fixed time windows.

    Without a Redis client every hit is allowed, so the API keeps working
    when Redis is down.
    """

    KEY_PREFIX = "ratelimit"

    def __init__(self, redis: "Redis | None" = None):
        self.redis = redis

    @property
    def enabled(self) -> bool:
        return self.redis is not None

    def _key(self, scope: str, subject: UUID | str, window: RateWindow, now: float) -> str:
        bucket = int(now) // window.seconds
        return f"{self.KEY_PREFIX}:{scope}:{subject}:{window.seconds}:{bucket}"

    async def hit(
        self,
        scope: str,
        subject: UUID | str,
        windows: list[RateWindow],
    ) -> None:
        """Record one hit and fail if any window is over its limit.

        Raises:
            RateLimitExceededError: If a window count exceeds its limit.
        """
        if not self.redis or not windows:
            return

        now = time.time()
        pipe = self.redis.pipeline()
        for window in windows:
            key = self._key(scope, subject, window, now)
            pipe.incr(key)
            pipe.expire(key, window.seconds)
        results = await pipe.execute()

        # results alternate: incr count, expire flag
        for window, count in zip(windows, results[::2], strict=True):
            if int(count) > window.limit:
                logger.info(
                    "rate_limit_exceeded",
                    scope=scope,
                    subject=str(subject),
                    window_seconds=window.seconds,
                    limit=window.limit,
                )
                raise RateLimitExceededError

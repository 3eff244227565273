"""Tests for Redis fixed-window rate limiting."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learnhub.core.exceptions import RateLimitExceededError
from learnhub.core.rate_limit import RateLimiter, RateWindow


@pytest.fixture
def mock_redis() -> Mock:
    """Redis client whose pipeline reports the given counts."""
    redis = Mock()
    pipeline = Mock()
    pipeline.incr = Mock()
    pipeline.expire = Mock()
    pipeline.execute = AsyncMock(return_value=[1, True])
    redis.pipeline = Mock(return_value=pipeline)
    return redis


class TestRateLimiter:
    """Test window counting and the no-Redis fallback."""

    @pytest.mark.asyncio
    async def test_disabled_without_redis(self) -> None:
        limiter = RateLimiter(None)
        assert limiter.enabled is False
        # Any number of hits is allowed
        for _ in range(100):
            await limiter.hit("posts", uuid4(), [RateWindow(1, 60)])

    @pytest.mark.asyncio
    async def test_under_limit_passes(self, mock_redis: Mock) -> None:
        limiter = RateLimiter(mock_redis)
        await limiter.hit("posts", uuid4(), [RateWindow(5, 60)])

        pipeline = mock_redis.pipeline.return_value
        pipeline.incr.assert_called_once()
        pipeline.expire.assert_called_once()
        key = pipeline.incr.call_args[0][0]
        assert key.startswith("ratelimit:posts:")

    @pytest.mark.asyncio
    async def test_over_limit_raises(self, mock_redis: Mock) -> None:
        mock_redis.pipeline.return_value.execute = AsyncMock(return_value=[6, True])
        limiter = RateLimiter(mock_redis)

        with pytest.raises(RateLimitExceededError) as exc_info:
            await limiter.hit("posts", uuid4(), [RateWindow(5, 60)])
        assert exc_info.value.code == "rate_limit_exceeded"

    @pytest.mark.asyncio
    async def test_any_window_over_limit_raises(self, mock_redis: Mock) -> None:
        """The minute window is fine but the hour window is exhausted."""
        mock_redis.pipeline.return_value.execute = AsyncMock(
            return_value=[3, True, 61, True]
        )
        limiter = RateLimiter(mock_redis)

        with pytest.raises(RateLimitExceededError):
            await limiter.hit(
                "posts", uuid4(), [RateWindow(5, 60), RateWindow(60, 3600)]
            )

    @pytest.mark.asyncio
    async def test_no_windows_skips_redis(self, mock_redis: Mock) -> None:
        await RateLimiter(mock_redis).hit("comments", uuid4(), [])
        mock_redis.pipeline.assert_not_called()

    def test_keys_are_bucketed_by_window(self) -> None:
        limiter = RateLimiter(None)
        subject = uuid4()
        window = RateWindow(5, 60)
        assert limiter._key("posts", subject, window, 120.0) == limiter._key(
            "posts", subject, window, 179.0
        )
        assert limiter._key("posts", subject, window, 120.0) != limiter._key(
            "posts", subject, window, 180.0
        )

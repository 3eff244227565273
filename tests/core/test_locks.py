"""Tests for per-aggregate write serialization."""

import asyncio
from uuid import uuid4

import pytest

from learnhub.core.locks import AggregateLocks


class TestAggregateLocks:
    """Test lock identity and mutual exclusion."""

    def test_same_aggregate_shares_lock(self, locks: AggregateLocks) -> None:
        aggregate_id = uuid4()
        first = locks.lock_for("course", aggregate_id)
        second = locks.lock_for("course", aggregate_id)
        assert first is second

    def test_kinds_are_separate(self, locks: AggregateLocks) -> None:
        aggregate_id = uuid4()
        course_lock = locks.lock_for("course", aggregate_id)
        community_lock = locks.lock_for("community", aggregate_id)
        assert course_lock is not community_lock

    @pytest.mark.asyncio
    async def test_hold_serializes_same_aggregate(self, locks: AggregateLocks) -> None:
        """Two blocks on one aggregate never overlap."""
        aggregate_id = uuid4()
        inside = 0
        peak = 0

        async def critical() -> None:
            nonlocal inside, peak
            async with locks.hold("course", aggregate_id):
                inside += 1
                peak = max(peak, inside)
                await asyncio.sleep(0.01)
                inside -= 1

        await asyncio.gather(*(critical() for _ in range(5)))
        assert peak == 1

    @pytest.mark.asyncio
    async def test_different_aggregates_run_concurrently(
        self, locks: AggregateLocks
    ) -> None:
        inside = 0
        peak = 0

        async def critical(aggregate_id: object) -> None:
            nonlocal inside, peak
            async with locks.hold("course", str(aggregate_id)):
                inside += 1
                peak = max(peak, inside)
                await asyncio.sleep(0.01)
                inside -= 1

        await asyncio.gather(critical(uuid4()), critical(uuid4()))
        assert peak == 2

    @pytest.mark.asyncio
    async def test_released_locks_are_dropped(self, locks: AggregateLocks) -> None:
        async with locks.hold("post", uuid4()):
            assert len(locks) == 1
        assert len(locks) == 0

"""Per-aggregate write serialization.

Every mutation of a course's enrollments/content or a community's membership
list runs while holding the lock for that aggregate, so two concurrent
requests cannot both observe "not enrolled" and both insert.

The registry is constructed in the application lifespan and handed to each
service; it is never shared through module state.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID
from weakref import WeakValueDictionary

import structlog


logger = structlog.get_logger(__name__)


class AggregateLocks:
    """Registry of ``asyncio.Lock`` objects keyed by aggregate kind and id.

    Locks are held weakly: once no coroutine holds or waits on a lock it is
    garbage collected, so the registry does not grow with the number of
    aggregates ever touched.
    """

    def __init__(self) -> None:
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    @staticmethod
    def _key(kind: str, aggregate_id: UUID | str) -> str:
        return f"{kind}:{aggregate_id}"

    def lock_for(self, kind: str, aggregate_id: UUID | str) -> asyncio.Lock:
        """Return the lock guarding one aggregate, creating it on first use."""
        key = self._key(kind, aggregate_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, kind: str, aggregate_id: UUID | str) -> AsyncIterator[None]:
        """Hold the aggregate lock for the duration of the block."""
        lock = self.lock_for(kind, aggregate_id)
        if lock.locked():
            logger.debug("aggregate_lock_contended", kind=kind, aggregate_id=aggregate_id)
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)

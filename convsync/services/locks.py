"""Per-agent single-flight locks for sync runs."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from convsync.errors import SyncInProgressError

logger = logging.getLogger(__name__)


class AgentSyncLocks:
    """
    One asyncio.Lock per agent, shared by the API routes and the scheduler.

    A second run for an agent whose lock is held is rejected rather than
    queued. Only covers a single process; multi-instance deployments need a
    database advisory lock instead.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def is_running(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the agent's lock for one run, or raise SyncInProgressError."""
        lock = self._lock_for(key)
        if lock.locked():
            raise SyncInProgressError(
                "A sync is already running for this agent.", details={"agent_id": key}
            )
        async with lock:
            yield


sync_locks = AgentSyncLocks()

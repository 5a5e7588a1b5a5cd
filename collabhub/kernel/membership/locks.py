"""
Per-project mutual exclusion for roster writers.
"""

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class ProjectLocks:
    """
    One ``asyncio.Lock`` per project, created on demand and dropped once no
    coroutine holds or waits for it.

    Writers on the same project run one at a time; writers on different
    projects never contend. The instance is process-owned: create it once at
    startup and share it with every registry.
    """

    def __init__(self) -> None:
        self._locks: Dict[uuid.UUID, asyncio.Lock] = {}
        self._users: Dict[uuid.UUID, int] = {}

    @asynccontextmanager
    async def hold(self, project_id: uuid.UUID) -> AsyncIterator[None]:
        lock = self._locks.get(project_id)
        if lock is None:
            lock = self._locks[project_id] = asyncio.Lock()
        self._users[project_id] = self._users.get(project_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[project_id] -= 1
            if self._users[project_id] == 0:
                del self._users[project_id]
                del self._locks[project_id]

    def is_locked(self, project_id: uuid.UUID) -> bool:
        lock = self._locks.get(project_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)

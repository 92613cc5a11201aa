"""Per-keyword single-flight locks.

A keyword's aggregates are written by one scan at a time. Within a process,
scans of the same keyword wait on an ``asyncio.Lock``; across processes the
``version_id`` column on KeywordTracking rejects stale writes.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class KeywordLocks:
    def __init__(self) -> None:
        # Locks are bound to the loop that waits on them; Celery tasks run
        # each invocation on a fresh loop, so locks are kept per loop.
        self._locks: dict[asyncio.AbstractEventLoop, dict[int, list]] = {}

    @asynccontextmanager
    async def hold(self, keyword_id: int) -> AsyncIterator[None]:
        loop = asyncio.get_running_loop()
        locks = self._locks.setdefault(loop, {})
        entry = locks.get(keyword_id)
        if entry is None:
            entry = locks[keyword_id] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                locks.pop(keyword_id, None)
                if not locks:
                    self._locks.pop(loop, None)

    def is_locked(self, keyword_id: int) -> bool:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False
        entry = self._locks.get(loop, {}).get(keyword_id)
        return bool(entry and entry[0].locked())


keyword_locks = KeywordLocks()

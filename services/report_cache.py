from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Hashable

UTC = timezone.utc


class KeyedLocks:
    """
    One asyncio.Lock per report key, so check-cache/compute/persist for a key
    never interleaves with another request for the same key. Entries are dropped
    once nobody holds or waits on them.
    """

    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


default_locks = KeyedLocks()


async def touch(doc):
    """Cache hit: refresh updated_at only."""
    doc.updated_at = datetime.now(tz=UTC)
    await doc.save(update_fields=["updated_at"])
    return doc

# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Per-entity exclusive locks for lifecycle transitions."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID


class EntityLocks:
    """One asyncio.Lock per (entity kind, id), dropped once no task uses it."""

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._users: dict[tuple[str, str], int] = {}

    @asynccontextmanager
    async def hold(self, kind: str, entity_id: UUID | str) -> AsyncIterator[None]:
        """Hold the entity's lock for the duration of the block."""
        key = (kind, str(entity_id))
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

    def is_held(self, kind: str, entity_id: UUID | str) -> bool:
        lock = self._locks.get((kind, str(entity_id)))
        return bool(lock and lock.locked())

    def tracked_count(self) -> int:
        return len(self._locks)

"""Registry of users currently waiting for a partner."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Protocol

from ..logging_config import get_logger
from ..models import RegistryEntry
from ..storage import IStorage

logger = get_logger(__name__)


class IUnpairedRegistry(Protocol):
    """Shared set of waiting user IDs with join timestamps."""

    async def add(self, user_id: str) -> None:
        """Upsert user_id with the current timestamp."""
        ...

    async def remove(self, user_id: str) -> None:
        """Remove user_id; removing a non-member is a no-op."""
        ...

    async def list(self) -> list[str]:
        """Point-in-time copy of the waiting user IDs."""
        ...


class UnpairedRegistry:
    """Lock-protected registry, optionally written through to Storage.

    Every add/remove is serialized by a single lock, so concurrent updates to
    the same user ID are never lost. list() returns a copy: callers must expect
    it to go stale as soon as other sessions mutate the registry.
    """

    def __init__(self, storage: IStorage | None = None):
        self._storage = storage
        self._entries: dict[str, datetime] = {}
        self._lock = asyncio.Lock()

    async def load(self) -> None:
        """Restore entries from Storage."""
        if not self._storage:
            return

        entries = await self._storage.get_unpaired()
        async with self._lock:
            self._entries = {entry.user_id: entry.joined_at for entry in entries}
        logger.info("Registry restored with %s waiting users", len(entries))

    async def add(self, user_id: str) -> None:
        """Upsert user_id with the current timestamp."""
        async with self._lock:
            joined_at = datetime.now(timezone.utc)
            self._entries[user_id] = joined_at
            if self._storage:
                await self._storage.save_unpaired(user_id, joined_at)
        logger.debug("Registry add", extra={"user_id": user_id})

    async def remove(self, user_id: str) -> None:
        """Remove user_id; removing a non-member is a no-op."""
        async with self._lock:
            if self._entries.pop(user_id, None) is None:
                return
            if self._storage:
                await self._storage.delete_unpaired(user_id)
        logger.debug("Registry remove", extra={"user_id": user_id})

    async def list(self) -> list[str]:
        """Point-in-time copy of the waiting user IDs."""
        return list(self._entries)

    async def entries(self) -> list[RegistryEntry]:
        """Point-in-time copy of the entries with join timestamps."""
        return [
            RegistryEntry(user_id=user_id, joined_at=joined_at)
            for user_id, joined_at in self._entries.items()
        ]

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def clear(self) -> None:
        """Drop every entry (in memory only; Storage is cleared separately)."""
        async with self._lock:
            self._entries.clear()

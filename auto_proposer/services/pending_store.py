"""In-memory pending-work store.

Keeps the ids of work items that have been accepted but not yet included in
a proposal. Nothing is persisted; a restart starts from an empty store.
"""

import asyncio
import logging
from typing import FrozenSet, Iterable

from .interfaces import WorkItemId

logger = logging.getLogger(__name__)


class InMemoryPendingStore:
    """Pending-work source backed by a set guarded by an asyncio lock."""

    def __init__(self) -> None:
        self._pending: set = set()
        self._processed: set = set()
        self._lock = asyncio.Lock()

    async def add(self, *item_ids: WorkItemId) -> int:
        """Add items to the pending set.

        Items already pending or already processed are ignored.

        Returns:
            Number of items that became pending
        """
        async with self._lock:
            added = 0
            for item_id in item_ids:
                if item_id in self._pending or item_id in self._processed:
                    continue
                self._pending.add(item_id)
                added += 1
            if added:
                logger.debug(f"Added {added} pending items ({len(self._pending)} total)")
            return added

    async def mark_processed(self, item_ids: Iterable[WorkItemId]) -> int:
        """Move items from pending to processed.

        Returns:
            Number of items that were pending
        """
        async with self._lock:
            moved = 0
            for item_id in item_ids:
                if item_id in self._pending:
                    self._pending.discard(item_id)
                    self._processed.add(item_id)
                    moved += 1
            return moved

    async def discard(self, item_ids: Iterable[WorkItemId]) -> int:
        """Drop pending items without marking them processed."""
        async with self._lock:
            before = len(self._pending)
            self._pending.difference_update(item_ids)
            return before - len(self._pending)

    async def read_pending_ids(self) -> FrozenSet[WorkItemId]:
        async with self._lock:
            return frozenset(self._pending)

    async def read_processed_ids(self) -> FrozenSet[WorkItemId]:
        async with self._lock:
            return frozenset(self._processed)

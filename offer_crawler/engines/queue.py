from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Deque, Dict, Optional, Set

from ..pipeline.payload import WorkItem

logger = logging.getLogger(__name__)


class RequestQueue:
    """
    In-memory FIFO of work items, deduplicated by unique key.

    A unique key is accepted once per queue lifetime. ``add`` returns once the item is stored,
    so a dispatch that awaited its enqueues never races the next ``fetch_next``.
    """

    def __init__(self) -> None:
        self._pending: Deque[WorkItem] = deque()
        self._in_progress: Dict[str, WorkItem] = {}
        self._seen: Set[str] = set()
        self._handled = 0
        self._lock = asyncio.Lock()

    async def add(self, item: WorkItem) -> bool:
        async with self._lock:
            if item.unique_key in self._seen:
                logger.debug("Duplicate work item ignored: %s", item.unique_key)
                return False
            self._seen.add(item.unique_key)
            self._pending.append(item)
            return True

    async def fetch_next(self) -> Optional[WorkItem]:
        async with self._lock:
            if not self._pending:
                return None
            item = self._pending.popleft()
            self._in_progress[item.unique_key] = item
            return item

    async def mark_handled(self, item: WorkItem) -> None:
        async with self._lock:
            self._in_progress.pop(item.unique_key, None)
            self._handled += 1

    @property
    def handled_count(self) -> int:
        return self._handled

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_empty(self) -> bool:
        return not self._pending

    def is_finished(self) -> bool:
        return not self._pending and not self._in_progress

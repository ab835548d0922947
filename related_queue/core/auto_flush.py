"""
Queue that flushes itself after every mutation.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from related_queue.core.queue import RelatedQueue
from related_queue.storage.base import QueueStorage
from related_queue.types.outcome import HandlerPort

logger = logging.getLogger(__name__)


class AutoFlushingQueue(RelatedQueue):
    """
    RelatedQueue that schedules a flush after enqueue, delete, reset and
    update_ids, without making the caller wait for it.

    Flushes on one instance run one at a time. Requests arriving while a
    scheduled flush is running are coalesced into one further flush.
    """

    def __init__(
        self,
        handler: HandlerPort,
        storage: QueueStorage,
        auto_flush_enabled: bool = True,
    ):
        super().__init__(handler, storage)
        self._auto_flush_enabled = auto_flush_enabled
        self._flush_task: asyncio.Task | None = None
        self._flush_requested = False
        self._flush_lock = asyncio.Lock()

    @property
    def auto_flush_enabled(self) -> bool:
        return self._auto_flush_enabled

    def enable_auto_flush(self, enabled: bool) -> None:
        """Turn automatic flushing on or off."""
        self._auto_flush_enabled = enabled

    def _maybe_flush(self) -> None:
        if not self._auto_flush_enabled:
            return

        if self._flush_task is not None and not self._flush_task.done():
            self._flush_requested = True
            return

        self._flush_task = asyncio.create_task(self._run_scheduled_flushes())

    async def _run_scheduled_flushes(self) -> None:
        while True:
            self._flush_requested = False
            try:
                await self.flush()
            except Exception:
                logger.exception("Scheduled flush failed")
            if not self._flush_requested:
                return

    async def flush(self) -> None:
        """Flush, waiting for any flush already running on this queue."""
        async with self._flush_lock:
            await super().flush()

    async def wait_idle(self) -> None:
        """Wait for any scheduled flush, and the listeners it notified, to finish."""
        if self._flush_task is not None:
            await self._flush_task
        await self.wait_for_listeners()

    async def enqueue(self, payload: Any, **options: Any) -> str:
        identity = await super().enqueue(payload, **options)
        self._maybe_flush()
        return identity

    async def delete(self, identity: str) -> None:
        await super().delete(identity)
        self._maybe_flush()

    async def reset(self, identity: str) -> None:
        await super().reset(identity)
        self._maybe_flush()

    async def update_ids(self, id_map: Mapping[str, str]) -> None:
        await super().update_ids(id_map)
        self._maybe_flush()

"""
Worker process that flushes the queue on an interval.

Entries submitted through the API (or any other process sharing the storage)
are picked up by the next flush. Flush failures are logged and retried on the
next tick rather than stopping the worker.
"""

import asyncio
import logging
import signal

from related_queue.config import get_settings
from related_queue.core import RelatedQueue
from related_queue.observability.logging import bind_context, setup_logging
from related_queue.observability.metrics import setup_metrics
from related_queue.observability.tracing import setup_tracing
from related_queue.runtime import build_queue
from related_queue.storage.connection import close_db

logger = logging.getLogger(__name__)


class FlushWorker:
    """
    Periodically flushes a queue.

    Features:
    - One flush at a time; the interval is measured from the end of a flush
    - Graceful shutdown on SIGTERM/SIGINT
    - Waits for completion listeners before exiting
    """

    def __init__(self, queue: RelatedQueue, interval: float | None = None):
        """
        Initialize the worker.

        Args:
            queue: The queue to flush.
            interval: Seconds between flushes.
        """
        settings = get_settings()

        self.queue = queue
        self.interval = interval if interval is not None else settings.worker_flush_interval_seconds

        self._running = False
        self._stopped = asyncio.Event()
        self.flush_count = 0

    async def start(self) -> None:
        """Start the worker loop; returns once stop() has been called."""
        logger.info("Flush worker starting", extra={"interval": self.interval})

        self._running = True
        self._stopped.clear()

        while self._running:
            try:
                await self.queue.flush()
                self.flush_count += 1
            except Exception as e:
                logger.exception(f"Error flushing queue: {e}")

            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        await self.queue.wait_for_listeners()
        logger.info("Flush worker stopped", extra={"flushes": self.flush_count})

    async def stop(self) -> None:
        """Stop the worker gracefully after the current flush."""
        logger.info("Flush worker stopping")
        self._running = False
        self._stopped.set()


async def run_async() -> None:
    """Run the worker asynchronously."""
    setup_logging()
    setup_metrics()
    setup_tracing()

    settings = get_settings()
    bind_context(component="worker")

    # The worker drives flushing itself
    queue = await build_queue(settings.model_copy(update={"auto_flush_enabled": False}))
    worker = FlushWorker(queue)

    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(worker.stop())
        )

    try:
        await worker.start()
    finally:
        await close_db()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()

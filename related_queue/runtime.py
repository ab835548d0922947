"""
Queue construction from settings.
Shared by the API server and the flush worker.
"""

import logging

from related_queue.config import Settings, get_settings
from related_queue.constants import StorageBackend
from related_queue.core import AutoFlushingQueue, RelatedQueue
from related_queue.storage import MemoryStorage, QueueStorage, SqlAlchemyStorage
from related_queue.storage.connection import get_engine, init_db
from related_queue.observability.tracing import instrument_sqlalchemy
from related_queue.worker.handlers import load_handler

logger = logging.getLogger(__name__)


async def create_storage(settings: Settings) -> QueueStorage:
    """
    Create the configured storage backend.

    The SQL backend creates its table when missing, so a fresh database works
    without running migrations first.
    """
    if settings.storage_backend == StorageBackend.SQL:
        session_factory = await init_db(create_schema=True, settings=settings)
        if settings.otel_enabled:
            instrument_sqlalchemy(get_engine().sync_engine)
        return SqlAlchemyStorage(session_factory)
    return MemoryStorage()


async def build_queue(settings: Settings | None = None) -> RelatedQueue:
    """
    Build a queue from settings.

    Args:
        settings: Settings to use; defaults to the cached application settings.

    Returns:
        An AutoFlushingQueue when auto flush is enabled, otherwise a RelatedQueue.
    """
    settings = settings or get_settings()
    storage = await create_storage(settings)
    handler = load_handler(settings.handler)

    if settings.auto_flush_enabled:
        if settings.storage_backend == StorageBackend.SQL:
            logger.warning(
                "Auto flush is enabled on SQL storage; disable it if a flush worker "
                "shares this database, or both will sweep the same entries"
            )
        queue: RelatedQueue = AutoFlushingQueue(handler, storage)
    else:
        queue = RelatedQueue(handler, storage)

    logger.info(
        "Queue created",
        extra={
            "storage": str(settings.storage_backend),
            "handler": settings.handler,
            "auto_flush": settings.auto_flush_enabled,
        },
    )
    return queue

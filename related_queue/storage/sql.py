"""
SQLAlchemy-backed storage.
"""

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from related_queue.core.entry import as_utc
from related_queue.storage.models import QueueEntryModel
from related_queue.types.entry import EntryRecord, Relation

logger = logging.getLogger(__name__)


def _to_model(record: EntryRecord) -> QueueEntryModel:
    return QueueEntryModel(
        identity=record.identity,
        payload=record.payload,
        context=record.context,
        relations=[r.to_dict() for r in record.relations],
        error=None if record.error is None else str(record.error),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _to_record(model: QueueEntryModel) -> EntryRecord:
    relations: list[Any] = model.relations or []
    return EntryRecord(
        identity=model.identity,
        payload=model.payload,
        context=model.context,
        relations=[Relation.coerce(r) for r in relations],
        error=model.error,
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )


class SqlAlchemyStorage:
    """
    Storage that keeps records in the queue_entries table.

    Payload, context and relations are stored as JSON, so they must be
    JSON-serializable. Errors are stored as their string form.

    Each operation runs in its own session and commits before returning.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """
        Initialize the storage with a session factory.

        Args:
            session_factory: Factory producing async sessions.
        """
        self._session_factory = session_factory

    async def set(self, record: EntryRecord) -> str:
        async with self._session_factory() as session:
            await session.merge(_to_model(record))
            await session.commit()

        logger.debug("Stored queue entry", extra={"identity": record.identity})
        return record.identity

    async def get(self, identity: str) -> EntryRecord | None:
        if not identity:
            return None
        async with self._session_factory() as session:
            model = await session.get(QueueEntryModel, identity)
            return _to_record(model) if model is not None else None

    async def delete(self, identity: str) -> None:
        if not identity:
            return
        async with self._session_factory() as session:
            await session.execute(
                delete(QueueEntryModel).where(QueueEntryModel.identity == identity)
            )
            await session.commit()

    async def all(self) -> list[EntryRecord]:
        stmt = select(QueueEntryModel).order_by(
            QueueEntryModel.created_at,
            QueueEntryModel.identity,
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_to_record(model) for model in result.scalars().all()]

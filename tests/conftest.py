"""
Pytest configuration and shared fixtures.
"""

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from related_queue.api.main import create_app
from related_queue.config import Settings
from related_queue.core import RelatedQueue
from related_queue.storage import MemoryStorage, SqlAlchemyStorage
from related_queue.storage.connection import create_session_factory, create_tables
from related_queue.types.entry import EntryRecord, Relation
from related_queue.types.outcome import Identifier


class RecordingHandler:
    """
    Handler that records its calls and returns queued outcomes.

    Without queued outcomes it assigns ``id-<n>`` for the n-th call.
    """

    def __init__(self, *outcomes: Any):
        self.calls: list[tuple[Any, Any]] = []
        self._outcomes = list(outcomes)

    async def __call__(self, payload: Any, context: Any) -> Any:
        self.calls.append((payload, context))
        if self._outcomes:
            outcome = self._outcomes.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return Identifier(f"id-{len(self.calls)}")

    @property
    def payloads(self) -> list[Any]:
        return [payload for payload, _ in self.calls]


def make_record(
    identity: str,
    payload: Any = None,
    relations: list[Relation] | None = None,
    error: Any = None,
    offset_seconds: int = 0,
) -> EntryRecord:
    """Build a stored record with a fixed creation time."""
    return EntryRecord(
        identity=identity,
        payload=payload if payload is not None else {},
        context={},
        relations=relations or [],
        error=error,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=offset_seconds),
    )


@pytest.fixture
def record_factory() -> Callable[..., EntryRecord]:
    """Factory for stored records."""
    return make_record


@pytest.fixture
def mock_storage() -> AsyncMock:
    """Storage double whose methods are AsyncMocks; all() is empty by default."""
    storage = AsyncMock(spec=MemoryStorage)
    storage.set.side_effect = lambda record: record.identity
    storage.get.return_value = None
    storage.all.return_value = []
    return storage


@pytest.fixture
def memory_storage() -> MemoryStorage:
    """Create an empty in-memory storage."""
    return MemoryStorage()


@pytest.fixture
def handler() -> RecordingHandler:
    """Create a handler that assigns sequential ids."""
    return RecordingHandler()


@pytest.fixture
def queue(handler: RecordingHandler, memory_storage: MemoryStorage) -> RelatedQueue:
    """Create a queue over in-memory storage."""
    return RelatedQueue(handler, memory_storage)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create test settings."""
    return Settings(
        storage_backend="sql",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'queue.db'}",
        log_level="DEBUG",
        log_format="console",
        auto_flush_enabled=False,
        worker_flush_interval_seconds=0.01,
    )


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession]]:
    """Create a session factory over a fresh SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'entries.db'}")
    await create_tables(engine)

    yield create_session_factory(engine)

    await engine.dispose()


@pytest.fixture
def sql_storage(session_factory: async_sessionmaker[AsyncSession]) -> SqlAlchemyStorage:
    """Create SQL storage over the test database."""
    return SqlAlchemyStorage(session_factory)


@pytest.fixture
def app(queue: RelatedQueue) -> FastAPI:
    """Create a FastAPI app serving the in-memory queue."""
    return create_app(queue)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def handler_factory() -> type[RecordingHandler]:
    """The recording handler class, for tests that queue specific outcomes."""
    return RecordingHandler

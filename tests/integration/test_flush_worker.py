"""
Integration tests for the flush worker and queue construction.
"""

import asyncio

import pytest
import pytest_asyncio

from related_queue.config import Settings
from related_queue.core import AutoFlushingQueue, RelatedQueue
from related_queue.runtime import build_queue
from related_queue.storage import MemoryStorage, SqlAlchemyStorage
from related_queue.storage.connection import close_db
from related_queue.types.entry import Relation
from related_queue.worker.main import FlushWorker


class TestBuildQueue:
    """Tests for building queues from settings."""

    @pytest_asyncio.fixture
    async def sql_queue(self, test_settings: Settings):
        queue = await build_queue(test_settings)
        yield queue
        await close_db()

    @pytest.mark.asyncio
    async def test_memory_auto_flush(self):
        queue = await build_queue(Settings(storage_backend="memory", auto_flush_enabled=True))

        assert isinstance(queue, AutoFlushingQueue)
        assert isinstance(queue._storage, MemoryStorage)

    @pytest.mark.asyncio
    async def test_sql_without_auto_flush(self, sql_queue):
        assert type(sql_queue) is RelatedQueue
        assert isinstance(sql_queue._storage, SqlAlchemyStorage)

    @pytest.mark.asyncio
    async def test_sql_queue_dispatches_by_kind(self, sql_queue):
        await sql_queue.enqueue({"kind": "echo", "id": "inv-1"}, identity="invoice")
        await sql_queue.enqueue(
            {"kind": "echo", "invoice_id": None},
            identity="line",
            relations=[Relation("invoice", "invoice_id")],
        )
        await sql_queue.enqueue({"kind": "fail", "message": "rejected"}, identity="bad")

        await sql_queue.flush()

        assert await sql_queue.get("invoice") is None
        assert await sql_queue.get("line") is None
        assert (await sql_queue.get("bad")).error == "rejected"

    @pytest.mark.asyncio
    async def test_invalid_handler_path(self):
        with pytest.raises(ValueError):
            await build_queue(Settings(storage_backend="memory", handler="no_colon"))


class TestFlushWorker:
    """Tests for FlushWorker."""

    @pytest.mark.asyncio
    async def test_worker_flushes_until_stopped(self, queue, handler):
        worker = FlushWorker(queue, interval=0.01)
        task = asyncio.create_task(worker.start())

        await queue.enqueue({"name": "a"}, identity="a")
        for _ in range(100):
            if handler.calls:
                break
            await asyncio.sleep(0.01)

        await worker.stop()
        await asyncio.wait_for(task, timeout=5)

        assert handler.payloads == [{"name": "a"}]
        assert worker.flush_count >= 1
        assert await queue.get("a") is None

    @pytest.mark.asyncio
    async def test_worker_survives_flush_errors(self, queue, memory_storage, monkeypatch):
        calls = 0

        async def failing_all():
            nonlocal calls
            calls += 1
            raise ConnectionError("storage offline")

        monkeypatch.setattr(memory_storage, "all", failing_all)
        worker = FlushWorker(queue, interval=0.01)
        task = asyncio.create_task(worker.start())

        for _ in range(100):
            if calls >= 2:
                break
            await asyncio.sleep(0.01)

        await worker.stop()
        await asyncio.wait_for(task, timeout=5)

        assert calls >= 2
        assert worker.flush_count == 0
        assert queue.last_flushed is None

"""
Unit tests for the WebSocket manager.
"""

import json
from unittest.mock import AsyncMock

import pytest

from related_queue.api.websocket import WebSocketManager
from related_queue.constants import WS_EVENT_ENTRY_COMPLETED
from related_queue.core.entry import QueuedEntry


class TestWebSocketManager:
    """Tests for WebSocketManager."""

    @pytest.fixture
    def manager(self) -> WebSocketManager:
        return WebSocketManager()

    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self, manager):
        websocket = AsyncMock()

        connection = await manager.connect(websocket)

        websocket.accept.assert_awaited_once()
        assert manager.get_connection_count() == 1

        await manager.disconnect(connection)
        await manager.disconnect(connection)

        assert manager.get_connection_count() == 0

    @pytest.mark.asyncio
    async def test_completion_sent_to_all_by_default(self, manager):
        websocket = AsyncMock()
        await manager.connect(websocket)
        entry = QueuedEntry({"total": 10}, identity="invoice-1")

        await manager.on_entry_completed(entry, "inv-99")

        message = json.loads(websocket.send_text.await_args.args[0])
        assert message["type"] == WS_EVENT_ENTRY_COMPLETED
        assert message["payload"]["identity"] == "invoice-1"
        assert message["payload"]["data"] == {"id": "inv-99", "payload": {"total": 10}}

    @pytest.mark.asyncio
    async def test_subscriptions_filter_messages(self, manager):
        interested = AsyncMock()
        other = AsyncMock()
        (await manager.connect(interested)).subscribed_identities.add("a")
        (await manager.connect(other)).subscribed_identities.add("b")

        await manager.on_entry_completed(QueuedEntry({}, identity="a"), "id-1")

        interested.send_text.assert_awaited_once()
        other.send_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_send_drops_connection(self, manager):
        websocket = AsyncMock()
        websocket.send_text.side_effect = RuntimeError("closed")
        await manager.connect(websocket)

        await manager.on_entry_completed(QueuedEntry({}, identity="a"), "id-1")

        assert manager.get_connection_count() == 0

"""
WebSocket connection manager for real-time completion updates.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from related_queue.types.events import EntryEvent, WebSocketMessage

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ConnectionInfo:
    """Information about a WebSocket connection."""

    websocket: WebSocket
    # Empty means every entry
    subscribed_identities: set[str] = field(default_factory=set)

    def wants(self, identity: str) -> bool:
        return not self.subscribed_identities or identity in self.subscribed_identities


class WebSocketManager:
    """
    Manager for WebSocket connections.

    Registered as a queue listener; pushes a message to every interested
    connection when an entry completes.
    """

    def __init__(self):
        """Initialize the WebSocket manager."""
        self._connections: list[ConnectionInfo] = []
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> ConnectionInfo:
        """
        Accept a new WebSocket connection.

        Args:
            websocket: The WebSocket connection.

        Returns:
            ConnectionInfo for the new connection.
        """
        await websocket.accept()

        connection = ConnectionInfo(websocket=websocket)

        async with self._lock:
            self._connections.append(connection)

        logger.info("WebSocket connected")

        return connection

    async def disconnect(self, connection: ConnectionInfo) -> None:
        """
        Handle WebSocket disconnection.

        Args:
            connection: The connection to remove.
        """
        async with self._lock:
            if connection in self._connections:
                self._connections.remove(connection)

        logger.info("WebSocket disconnected")

    async def broadcast(self, identity: str, message: WebSocketMessage) -> None:
        """
        Send a message to every connection interested in an entry.

        Args:
            identity: The entry the message is about.
            message: The message to broadcast.
        """
        async with self._lock:
            connections = [c for c in self._connections if c.wants(identity)]

        if not connections:
            return

        message_json = message.model_dump_json()

        disconnected = []
        for connection in connections:
            try:
                await connection.websocket.send_text(message_json)
            except Exception as e:
                logger.warning(f"Failed to send WebSocket message: {e}")
                disconnected.append(connection)

        for connection in disconnected:
            await self.disconnect(connection)

    async def on_entry_completed(self, entry: Any, assigned_id: str) -> None:
        """
        Queue listener for completed entries.

        Args:
            entry: The completed entry.
            assigned_id: The id the handler assigned to it.
        """
        event = EntryEvent.entry_completed(
            identity=entry.identity,
            assigned_id=assigned_id,
            payload=entry.payload,
        )
        await self.broadcast(entry.identity, WebSocketMessage.from_event(event))

    def get_connection_count(self) -> int:
        """Get the number of active connections."""
        return len(self._connections)


async def websocket_handler(websocket: WebSocket, manager: WebSocketManager) -> None:
    """
    Handle a WebSocket connection for completion updates.

    Clients receive every completion until they subscribe to specific
    identities.

    Args:
        websocket: The WebSocket connection.
        manager: The manager the connection registers with.
    """
    connection = await manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
                action = message.get("action")

                if action == "subscribe":
                    identity = str(message["identity"])
                    connection.subscribed_identities.add(identity)
                    await websocket.send_json({
                        "type": "subscribed",
                        "identity": identity,
                    })

                elif action == "unsubscribe":
                    identity = str(message["identity"])
                    connection.subscribed_identities.discard(identity)
                    await websocket.send_json({
                        "type": "unsubscribed",
                        "identity": identity,
                    })

                elif action == "ping":
                    await websocket.send_json({"type": "pong"})

                else:
                    await websocket.send_json({
                        "type": "error",
                        "message": f"Unknown action: {action}",
                    })

            except (json.JSONDecodeError, ValueError, KeyError, AttributeError) as e:
                await websocket.send_json({
                    "type": "error",
                    "message": f"Invalid message: {e}",
                })

    except WebSocketDisconnect:
        await manager.disconnect(connection)

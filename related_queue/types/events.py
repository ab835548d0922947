"""
Event type definitions for WebSocket and internal messaging.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel

from related_queue.constants import WS_EVENT_ENTRY_COMPLETED


class EntryEvent(BaseModel):
    """
    Event emitted when an entry leaves the queue.
    Used for WebSocket notifications.
    """

    event_type: str
    identity: str
    timestamp: datetime
    data: dict[str, Any] | None = None

    @classmethod
    def entry_completed(
        cls,
        identity: str,
        assigned_id: str,
        payload: Any = None,
    ) -> "EntryEvent":
        """Create an entry completed event."""
        return cls(
            event_type=WS_EVENT_ENTRY_COMPLETED,
            identity=identity,
            timestamp=datetime.now(timezone.utc),
            data={"id": assigned_id, "payload": payload},
        )


class WebSocketMessage(BaseModel):
    """
    Message format for WebSocket communication.
    """

    type: str
    payload: dict[str, Any]
    timestamp: datetime

    @classmethod
    def from_event(cls, event: EntryEvent) -> "WebSocketMessage":
        """Create a WebSocket message from an entry event."""
        return cls(
            type=event.event_type,
            payload={
                "identity": event.identity,
                "data": event.data,
            },
            timestamp=event.timestamp,
        )

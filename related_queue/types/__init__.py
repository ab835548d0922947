"""
Type definitions for the related queue.
Contains input/output type definitions for all functions, grouped by module.
"""

from related_queue.types.api import (
    EnqueueRequest,
    EnqueueResponse,
    EntryResponse,
    ErrorResponse,
    FlushResponse,
    HealthResponse,
    RelationModel,
    UpdateIdsRequest,
)
from related_queue.types.entry import EntryRecord, Relation
from related_queue.types.events import EntryEvent, WebSocketMessage
from related_queue.types.outcome import (
    Failure,
    HandlerOutcome,
    HandlerPort,
    Identifier,
    outcome_from_mapping,
)

__all__ = [
    # API types
    "EnqueueRequest",
    "EnqueueResponse",
    "EntryResponse",
    "UpdateIdsRequest",
    "FlushResponse",
    "HealthResponse",
    "ErrorResponse",
    "RelationModel",
    # Entry types
    "EntryRecord",
    "Relation",
    # Outcome types
    "Identifier",
    "Failure",
    "HandlerOutcome",
    "HandlerPort",
    "outcome_from_mapping",
    # Event types
    "EntryEvent",
    "WebSocketMessage",
]

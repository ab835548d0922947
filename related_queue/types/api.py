"""
API request and response type definitions.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from related_queue.constants import EntryState
from related_queue.types.entry import EntryRecord, Relation


class RelationModel(BaseModel):
    """A relation as it appears on the wire."""

    target_identity: str = Field(..., min_length=1, description="Identity of the entry depended on")
    destination_path: str = Field(..., min_length=1, description="Dotted path to fill with its id")

    def to_relation(self) -> Relation:
        return Relation(self.target_identity, self.destination_path)


class EnqueueRequest(BaseModel):
    """Request body for submitting an entry."""

    payload: Any = Field(..., description="Work to be handled")
    identity: str | None = Field(
        default=None, min_length=1, description="Client identity; replaces any entry with the same identity"
    )
    context: Any = Field(default=None, description="Auxiliary data passed to the handler")
    relations: list[RelationModel] = Field(default_factory=list)


class EnqueueResponse(BaseModel):
    """Response body after submitting an entry."""

    identity: str
    ready: bool
    message: str = "Entry queued successfully"


class EntryResponse(BaseModel):
    """Full entry details response."""

    identity: str
    payload: Any
    context: Any
    relations: list[RelationModel]
    error: str | None
    state: EntryState
    ready: bool
    created_at: datetime
    updated_at: datetime | None

    @classmethod
    def from_record(cls, record: EntryRecord) -> "EntryResponse":
        """Convert a stored record to a response."""
        if record.error is None:
            state = EntryState.PENDING if record.relations else EntryState.READY
        else:
            state = EntryState.ERRORED
        return cls(
            identity=record.identity,
            payload=record.payload,
            context=record.context,
            relations=[RelationModel(**r.to_dict()) for r in record.relations],
            error=None if record.error is None else str(record.error),
            state=state,
            ready=record.ready,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class UpdateIdsRequest(BaseModel):
    """Request body mapping entry identities to externally assigned ids."""

    ids: dict[str, str] = Field(..., min_length=1)


class FlushResponse(BaseModel):
    """Response body describing the last completed flush."""

    last_flushed: datetime | None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    storage: str
    timestamp: datetime
    last_flushed: datetime | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: str | None = None

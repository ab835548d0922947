"""
SQLAlchemy database models.
Defines the queue_entries table.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class QueueEntryModel(Base):
    """
    A queued entry row.

    Rows are replaced wholesale on every upsert; the queue never updates
    individual columns.
    """

    __tablename__ = "queue_entries"

    identity: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
    )

    payload: Mapped[Any] = mapped_column(
        JSONType,
        nullable=False,
    )
    context: Mapped[Any | None] = mapped_column(
        JSONType,
        nullable=True,
    )

    # List of {"target_identity": ..., "destination_path": ...}
    relations: Mapped[list] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )

    error: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"QueueEntryModel(identity={self.identity}, error={self.error is not None})"

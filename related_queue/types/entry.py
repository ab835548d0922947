"""
Entry-related type definitions for internal use.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Relation:
    """
    A dependency of one entry's payload on another entry's eventual identifier.

    Once the entry named by ``target_identity`` is handled, the identifier it was
    assigned is written into the dependent payload at ``destination_path``.
    """

    target_identity: str
    destination_path: str

    @classmethod
    def coerce(cls, value: "Relation | Mapping[str, Any]") -> "Relation":
        """Build a relation from a Relation or a mapping with the same keys."""
        if isinstance(value, Relation):
            return value
        if isinstance(value, Mapping):
            return cls(
                target_identity=value["target_identity"],
                destination_path=value["destination_path"],
            )
        raise TypeError(f"Cannot build a relation from {type(value).__name__}")

    def to_dict(self) -> dict[str, str]:
        return {
            "target_identity": self.target_identity,
            "destination_path": self.destination_path,
        }


@dataclass
class EntryRecord:
    """
    Snapshot of a queued entry as it crosses the storage boundary.

    Storage implementations persist and return these; the queue builds a
    fresh QueuedEntry from a record whenever it needs to mutate one.
    """

    identity: str
    payload: Any
    created_at: datetime
    context: Any = None
    relations: list[Relation] = field(default_factory=list)
    error: BaseException | str | None = None
    updated_at: datetime | None = None

    @property
    def ready(self) -> bool:
        """Check if the entry could be passed to the handler."""
        return not self.relations and self.error is None

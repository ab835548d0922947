"""
Queued entry: a caller payload wrapped with its queue metadata.
"""

import hashlib
import json
from collections.abc import Iterable, Mapping
from dataclasses import asdict, is_dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from related_queue.constants import EntryState
from related_queue.core.relations import resolve_relations
from related_queue.exceptions import QueueConfigurationError
from related_queue.types.entry import EntryRecord, Relation


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def new_identity() -> str:
    """Generate a unique entry identity."""
    return uuid4().hex


def _key(key: Any) -> str:
    # Typed so that 1 and "1" stay distinct keys
    return f"{type(key).__name__}:{key!r}"


def _normalise(value: Any) -> Any:
    """Rewrite nested mappings with string keys so json.dumps can sort them."""
    if isinstance(value, Mapping):
        return {_key(k): _normalise(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalise(v) for v in value]
    return value


def _canonical(value: Any) -> Any:
    """json.dumps fallback giving a stable rendering of non-JSON values."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, BaseException):
        return {"exception": type(value).__name__, "args": [str(a) for a in value.args]}
    if isinstance(value, Relation):
        return value.to_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return _normalise(asdict(value))
    if hasattr(value, "model_dump"):
        return _normalise(value.model_dump(mode="json"))
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    return repr(value)


class QueuedEntry:
    """
    A unit of work plus its queue metadata.

    An entry is ready when it has no pending relations and no error. Mutations
    go through on_success, on_error and reset, each of which stamps updated_at
    so that the content hash changes.
    """

    def __init__(
        self,
        payload: Any,
        *,
        identity: str | None = None,
        context: Any = None,
        relations: Iterable[Relation | Mapping[str, Any]] | None = None,
        error: BaseException | str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        if payload is None:
            raise QueueConfigurationError("QueuedEntry requires a payload")

        self._identity = identity or new_identity()
        self._payload = payload
        self._context = context
        self._relations = [Relation.coerce(r) for r in relations or []]
        self._error = error
        self._created_at = as_utc(created_at) or utcnow()
        self._updated_at = as_utc(updated_at)

    @classmethod
    def from_record(cls, record: EntryRecord) -> "QueuedEntry":
        """Build an entry from a stored record."""
        return cls(
            record.payload,
            identity=record.identity,
            context=record.context,
            relations=record.relations,
            error=record.error,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def to_record(self) -> EntryRecord:
        """Snapshot the entry for storage."""
        return EntryRecord(
            identity=self._identity,
            payload=self._payload,
            context=self._context,
            relations=list(self._relations),
            error=self._error,
            created_at=self._created_at,
            updated_at=self._updated_at,
        )

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def payload(self) -> Any:
        return self._payload

    @property
    def context(self) -> Any:
        return self._context

    @property
    def relations(self) -> list[Relation]:
        return self._relations

    @property
    def error(self) -> BaseException | str | None:
        return self._error

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime | None:
        return self._updated_at

    @property
    def ready(self) -> bool:
        """Check if the entry may be passed to the handler."""
        return not self._relations and self._error is None

    @property
    def state(self) -> EntryState:
        if self._error is not None:
            return EntryState.ERRORED
        if self._relations:
            return EntryState.PENDING
        return EntryState.READY

    @property
    def content_hash(self) -> str:
        """Digest of the full entry state, used to detect unchanged entries."""
        state = {
            "identity": self._identity,
            "payload": _normalise(self._payload),
            "context": _normalise(self._context),
            "relations": [r.to_dict() for r in self._relations],
            "error": self._error,
            "created_at": self._created_at,
            "updated_at": self._updated_at,
        }
        rendered = json.dumps(state, sort_keys=True, default=_canonical)
        return hashlib.md5(rendered.encode("utf-8")).hexdigest()

    def _touch(self) -> None:
        # updated_at must move forward even when the clock has not
        floor = self._updated_at or self._created_at
        now = utcnow()
        if now <= floor:
            now = floor + timedelta(microseconds=1)
        self._updated_at = now

    def on_success(self, id_map: Mapping[str, str]) -> bool:
        """
        Apply identifiers assigned to other entries.

        Args:
            id_map: Mapping of entry identity to assigned id.

        Returns:
            True if any relation was resolved and the entry changed.
        """
        payload, relations = resolve_relations(self._payload, self._relations, id_map)

        if payload is self._payload and relations is self._relations:
            return False

        self._payload = payload
        self._relations = relations
        self._error = None
        self._touch()
        return True

    def on_error(self, error: BaseException | str) -> None:
        """Record an error; always stamps updated_at."""
        self._error = error
        self._touch()

    def reset(self) -> None:
        """Clear any error so the entry can be handled again."""
        self._error = None
        self._touch()

    def __repr__(self) -> str:
        return (
            f"QueuedEntry(identity={self._identity}, state={self.state}, "
            f"relations={len(self._relations)})"
        )

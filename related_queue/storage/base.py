"""
Storage port.

Any object with these four coroutine methods can back a queue. Records are
keyed by identity, ``set`` is an upsert, and ``all`` lists records in
ascending creation order.
"""

from typing import Protocol, runtime_checkable

from related_queue.types.entry import EntryRecord


@runtime_checkable
class QueueStorage(Protocol):
    """Ordered, identity-keyed collection of entry records."""

    async def set(self, record: EntryRecord) -> str:
        """Insert or replace the record with the same identity; return the identity."""
        ...

    async def get(self, identity: str) -> EntryRecord | None:
        """Fetch a record by identity."""
        ...

    async def delete(self, identity: str) -> None:
        """Remove a record by identity; missing identities are ignored."""
        ...

    async def all(self) -> list[EntryRecord]:
        """List every record, oldest first."""
        ...

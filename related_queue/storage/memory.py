"""
In-process storage backed by a list.
"""

from related_queue.types.entry import EntryRecord


class MemoryStorage:
    """
    Storage that keeps records in memory, ordered by creation time.

    Replacing a record keeps its position among records created at the same
    instant; new identities go after existing ones.
    """

    def __init__(self):
        self._records: list[EntryRecord] = []

    def _sort(self) -> None:
        # list.sort is stable, so ties keep insertion order
        self._records.sort(key=lambda record: record.created_at)

    async def set(self, record: EntryRecord) -> str:
        for index, existing in enumerate(self._records):
            if existing.identity == record.identity:
                self._records[index] = record
                break
        else:
            self._records.append(record)
        self._sort()
        return record.identity

    async def get(self, identity: str) -> EntryRecord | None:
        if not identity:
            return None
        return next((r for r in self._records if r.identity == identity), None)

    async def delete(self, identity: str) -> None:
        if not identity:
            return
        self._records = [r for r in self._records if r.identity != identity]

    async def all(self) -> list[EntryRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

"""
Unit tests for QueuedEntry.
"""

from datetime import datetime, timezone

import pytest

from related_queue.constants import EntryState
from related_queue.core.entry import QueuedEntry, as_utc
from related_queue.exceptions import QueueConfigurationError
from related_queue.types.entry import Relation


class TestQueuedEntry:
    """Tests for entry construction and state."""

    def test_payload_required(self):
        with pytest.raises(QueueConfigurationError):
            QueuedEntry(None)

    def test_defaults(self):
        entry = QueuedEntry({"a": 1})

        assert entry.identity
        assert entry.context is None
        assert entry.relations == []
        assert entry.error is None
        assert entry.created_at.tzinfo is not None
        assert entry.updated_at is None
        assert entry.ready is True
        assert entry.state == EntryState.READY

    def test_generated_identities_are_unique(self):
        assert QueuedEntry({}).identity != QueuedEntry({}).identity

    def test_relations_accept_mappings(self):
        entry = QueuedEntry(
            {},
            relations=[{"target_identity": "parent", "destination_path": "parent_id"}],
        )

        assert entry.relations == [Relation("parent", "parent_id")]
        assert entry.ready is False
        assert entry.state == EntryState.PENDING

    def test_error_blocks_readiness(self):
        entry = QueuedEntry({}, error="boom")

        assert entry.ready is False
        assert entry.state == EntryState.ERRORED

    def test_record_round_trip_keeps_hash(self):
        entry = QueuedEntry(
            {"a": [1, 2]},
            identity="one",
            context={"user": "u"},
            relations=[Relation("two", "a.0")],
        )

        restored = QueuedEntry.from_record(entry.to_record())

        assert restored.identity == "one"
        assert restored.content_hash == entry.content_hash

    def test_naive_datetimes_treated_as_utc(self):
        naive = datetime(2026, 1, 1, 12, 0)
        entry = QueuedEntry({}, created_at=naive)

        assert entry.created_at == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert as_utc(None) is None


class TestEntryMutations:
    """Tests for on_success, on_error and reset."""

    def test_on_success_without_match_changes_nothing(self):
        entry = QueuedEntry({}, relations=[Relation("parent", "parent_id")])
        before = entry.content_hash

        assert entry.on_success({"other": "x"}) is False
        assert entry.content_hash == before
        assert entry.updated_at is None

    def test_on_success_resolves_and_clears_error(self):
        entry = QueuedEntry(
            {"parent_id": None},
            relations=[Relation("parent", "parent_id")],
            error="stale",
        )
        before = entry.content_hash

        assert entry.on_success({"parent": "p-1"}) is True

        assert entry.payload == {"parent_id": "p-1"}
        assert entry.relations == []
        assert entry.error is None
        assert entry.ready is True
        assert entry.updated_at is not None
        assert entry.content_hash != before

    def test_on_error_always_changes_hash(self):
        entry = QueuedEntry({}, error="same")
        before = entry.content_hash

        entry.on_error("same")

        assert entry.error == "same"
        assert entry.content_hash != before

    def test_updated_at_strictly_increases(self):
        entry = QueuedEntry({})
        stamps = []
        for _ in range(5):
            entry.on_error("boom")
            stamps.append(entry.updated_at)

        assert all(later > earlier for earlier, later in zip(stamps, stamps[1:]))
        assert stamps[0] > entry.created_at

    def test_reset_clears_error(self):
        entry = QueuedEntry({}, error=RuntimeError("boom"))
        before = entry.content_hash

        entry.reset()

        assert entry.error is None
        assert entry.ready is True
        assert entry.content_hash != before

    def test_reset_keeps_pending_relations(self):
        entry = QueuedEntry({}, relations=[Relation("parent", "p")], error="boom")

        entry.reset()

        assert entry.state == EntryState.PENDING

    def test_hash_covers_exception_errors(self):
        first = QueuedEntry({}, identity="x", error=ValueError("a"))
        second = QueuedEntry(
            {}, identity="x", error=ValueError("b"), created_at=first.created_at
        )

        assert first.content_hash != second.content_hash


class TestContentHash:
    """Tests for hashing arbitrary payloads."""

    @pytest.mark.parametrize(
        "payload",
        [
            {1: "one", "two": 2},
            {("region", 1): "eu", ("region", 2): "us"},
            {"nested": [{None: 1, 2.5: "x", "k": {(1,): True}}]},
        ],
    )
    def test_non_string_keys(self, payload):
        entry = QueuedEntry(payload, identity="a", context={0: "ctx", "user": "u"})

        assert len(entry.content_hash) == 32
        assert entry.content_hash == QueuedEntry.from_record(entry.to_record()).content_hash

    def test_int_and_string_keys_distinct(self):
        created_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
        as_int = QueuedEntry({1: "x"}, identity="a", created_at=created_at)
        as_str = QueuedEntry({"1": "x"}, identity="a", created_at=created_at)

        assert as_int.content_hash != as_str.content_hash

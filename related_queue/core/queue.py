"""
Queue engine.

A flush sweeps the stored entries repeatedly: each pass hands a ready entry to
the handler and applies the outcome, until a pass finds nothing to hand over.
Identifiers assigned by the handler are propagated to every entry whose
relations name the completed entry, which may make them ready for a later pass.
"""

import inspect
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any

from related_queue.constants import (
    NO_OUTCOME_ERROR,
    SPAN_FLUSH,
    SPAN_HANDLE_ENTRY,
    SPAN_PROPAGATE_IDS,
    STAGNATION_ERROR,
    QueueEvent,
)
from related_queue.core.entry import QueuedEntry, utcnow
from related_queue.core.notifier import EventNotifier, Listener
from related_queue.exceptions import (
    HandlerContractError,
    QueueConfigurationError,
    RelationPathError,
)
from related_queue.observability.logging import bound_context
from related_queue.observability.metrics import get_metrics
from related_queue.observability.tracing import get_tracer
from related_queue.storage.base import QueueStorage
from related_queue.types.entry import EntryRecord, Relation
from related_queue.types.outcome import (
    Failure,
    HandlerOutcome,
    HandlerPort,
    Identifier,
    outcome_from_mapping,
)

logger = logging.getLogger(__name__)


def _check_options(handler: Any, storage: Any) -> None:
    if handler is None:
        raise QueueConfigurationError("Missing queue handler")
    if not callable(handler):
        raise QueueConfigurationError("Queue handler must be a function")
    if storage is None:
        raise QueueConfigurationError("Missing queue storage")
    if not isinstance(storage, QueueStorage):
        raise QueueConfigurationError(
            "Queue storage must provide set, get, delete and all"
        )


def _coerce_outcome(result: Any) -> HandlerOutcome:
    """Interpret a handler return value as an outcome."""
    if result is None:
        raise HandlerContractError(NO_OUTCOME_ERROR)
    if isinstance(result, (Identifier, Failure)):
        return result
    if isinstance(result, Mapping):
        return outcome_from_mapping(result)
    raise HandlerContractError(
        f"Handler returned an unsupported outcome of type {type(result).__name__}"
    )


class RelatedQueue:
    """
    Dependency-aware work queue.

    Entries are handed to the handler once all of their relations are
    resolved and they carry no error. A per-identity record of the content
    hash last seen by the handler guards against a handler or storage that
    leaves entries unchanged, which would otherwise loop forever.

    A single flush should run at a time per queue instance.
    """

    def __init__(self, handler: HandlerPort, storage: QueueStorage):
        """
        Initialize the queue.

        Args:
            handler: Called with (payload, context) for each ready entry.
            storage: Where entries are kept between flushes.

        Raises:
            QueueConfigurationError: If handler or storage is missing or invalid.
        """
        _check_options(handler, storage)
        self._handler = handler
        self._storage = storage
        self._notifier = EventNotifier()
        # identity -> content hash when last passed through the handler
        self._handled_hashes: dict[str, str] = {}
        self._last_flushed: datetime | None = None
        self._metrics = get_metrics()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def enqueue(
        self,
        payload: Any,
        *,
        identity: str | None = None,
        context: Any = None,
        relations: Iterable[Relation | Mapping[str, Any]] | None = None,
        error: BaseException | str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> str:
        """
        Upsert an entry, de-duplicated by identity.

        Args:
            payload: The work to be handled.
            identity: Client identity; generated when omitted. An existing
                entry with the same identity is replaced.
            context: Auxiliary data passed to the handler alongside the payload.
            relations: Relations that must be resolved before handling.
            error: Initial error, which blocks handling until reset.
            created_at: Creation time; defaults to now.
            updated_at: Last update time; defaults to None.

        Returns:
            The identity reported by storage.
        """
        entry = QueuedEntry(
            payload,
            identity=identity,
            context=context,
            relations=relations,
            error=error,
            created_at=created_at,
            updated_at=updated_at,
        )
        stored_identity = await self._storage.set(entry.to_record())
        self._metrics.record_entry_enqueued()

        logger.debug(
            "Queued entry",
            extra={"identity": stored_identity, "state": str(entry.state)},
        )
        return stored_identity

    async def delete(self, identity: str) -> None:
        """
        Delete an entry from the queue.

        The handled hash is kept: if storage fails to delete the
        entry it must still be recognised as already handled. Hashes of
        identities that have left storage are trimmed at the start of a flush.
        """
        await self._storage.delete(identity)

    async def get(self, identity: str) -> EntryRecord | None:
        """Retrieve an entry with its metadata."""
        return await self._storage.get(identity)

    async def reset(self, identity: str) -> None:
        """
        Clear an entry's error so it is handled again once ready.

        Does nothing when the identity is not stored.
        """
        stored = await self._storage.get(identity)
        if stored is None:
            return

        entry = QueuedEntry.from_record(stored)
        entry.reset()

        await self._storage.set(entry.to_record())
        self._handled_hashes.pop(entry.identity, None)

        logger.info("Reset entry", extra={"identity": identity})

    async def update_ids(self, id_map: Mapping[str, str]) -> None:
        """
        Resolve relations using identifiers assigned outside the queue.

        Args:
            id_map: Mapping of entry identity to assigned id.
        """
        await self._propagate_ids(dict(id_map))

    async def flush(self) -> None:
        """
        Sweep the queue until no entry can be handled, then record the time.

        Handler failures are stored on the entries concerned. Only storage
        errors propagate.
        """
        started = time.perf_counter()

        with get_tracer().start_as_current_span(SPAN_FLUSH) as span:
            passes = await self._sweep()
            span.set_attribute("passes", passes)

        duration = time.perf_counter() - started
        self._last_flushed = utcnow()
        self._metrics.record_flush(passes, duration)

        logger.debug(
            "Flush complete",
            extra={"passes": passes, "duration": f"{duration:.3f}s"},
        )

    @property
    def last_flushed(self) -> datetime | None:
        """Completion time of the last flush, or None before the first one."""
        return self._last_flushed

    def on(self, event: QueueEvent | str, listener: Listener) -> Callable[[], None]:
        """
        Register a listener for a queue event.

        The only event is QueueEvent.COMPLETED, called with (entry, id) after
        an entry is handled successfully and removed from the queue.

        Returns:
            A function that unregisters the listener.

        Raises:
            InvalidEventError: For any other event name.
        """
        return self._notifier.subscribe(event, listener)

    async def wait_for_listeners(self) -> None:
        """Wait until listeners of already emitted events have finished."""
        await self._notifier.join()

    # ------------------------------------------------------------------
    # Loop guard
    # ------------------------------------------------------------------

    def _trim_handled_hashes(self, entries: list[QueuedEntry]) -> None:
        queued = {entry.identity for entry in entries}
        for identity in list(self._handled_hashes):
            if identity not in queued:
                del self._handled_hashes[identity]

    def _record_hash(self, identity: str, content_hash: str) -> None:
        self._handled_hashes[identity] = content_hash

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    async def _load_entries(self) -> list[QueuedEntry]:
        stored = await self._storage.all()
        return [QueuedEntry.from_record(record) for record in stored or [] if record]

    async def _sweep(self) -> int:
        """
        Run passes until one finds nothing to handle.

        Returns:
            Number of passes run.
        """
        pass_number = 0

        while True:
            pass_number += 1
            entries = await self._load_entries()

            if pass_number == 1:
                # Trimming on later passes would forget the hash of an entry
                # that storage failed to delete, and it would be handled again.
                self._trim_handled_hashes(entries)
                self._metrics.update_queue_depth(len(entries))

            if not entries:
                return pass_number

            candidates = await self._select_candidates(entries)

            if not candidates:
                return pass_number

            for entry in candidates:
                with bound_context(identity=entry.identity):
                    await self._handle_entry(entry)

    async def _select_candidates(self, entries: list[QueuedEntry]) -> list[QueuedEntry]:
        """
        Pick the next ready entry the handler has not seen in its current state.

        Ready entries whose hash matches the one recorded when they were last
        handled are marked with an error instead, since handling them again
        would not make progress.
        """
        candidates: list[QueuedEntry] = []

        for entry in (e for e in entries if e.ready):
            last_hash = self._handled_hashes.get(entry.identity)

            if last_hash is None or last_hash != entry.content_hash:
                candidates.append(entry)
                break

            entry.on_error(STAGNATION_ERROR)
            logger.error(
                "Entry unchanged since last pass through handler; check the handler "
                "and storage implementations",
                extra={"identity": entry.identity},
            )
            self._metrics.record_entry_errored("stagnation")
            await self._storage.set(entry.to_record())

        return candidates

    async def _call_handler(self, entry: QueuedEntry) -> HandlerOutcome:
        result = self._handler(entry.payload, entry.context)
        if inspect.isawaitable(result):
            result = await result
        return _coerce_outcome(result)

    async def _handle_entry(self, entry: QueuedEntry) -> None:
        outcome: HandlerOutcome | None = None
        error: BaseException | str = NO_OUTCOME_ERROR
        reason = "handler"
        started = time.perf_counter()

        # Storage calls stay outside the try: storage failures abort the flush
        with get_tracer().start_as_current_span(SPAN_HANDLE_ENTRY) as span:
            span.set_attribute("identity", entry.identity)
            try:
                outcome = await self._call_handler(entry)
            except HandlerContractError as e:
                error, reason = e, "contract"
            except Exception as e:
                logger.warning(
                    "Handler raised exception",
                    extra={"identity": entry.identity, "error": str(e)},
                )
                error, reason = e, "exception"

        duration = time.perf_counter() - started

        if isinstance(outcome, Identifier):
            self._metrics.record_entry_completed(duration)
            await self._on_identifier(entry, outcome.id)
            return

        if isinstance(outcome, Failure):
            error = outcome.error

        self._metrics.record_entry_errored(reason, duration)
        await self._on_error(entry, error)

    async def _on_error(self, entry: QueuedEntry, error: BaseException | str) -> None:
        entry.on_error(error)
        await self._storage.set(entry.to_record())
        self._record_hash(entry.identity, entry.content_hash)

        logger.info(
            "Entry marked with error",
            extra={"identity": entry.identity, "error": str(error)},
        )

    async def _on_identifier(self, entry: QueuedEntry, assigned_id: str) -> None:
        await self._storage.delete(entry.identity)
        await self._propagate_ids({entry.identity: assigned_id})

        # Recorded even though the entry is gone, in case storage did not delete it
        self._record_hash(entry.identity, entry.content_hash)

        logger.info(
            "Entry completed",
            extra={"identity": entry.identity, "id": assigned_id},
        )
        self._notifier.emit(QueueEvent.COMPLETED, entry, assigned_id)

    async def _propagate_ids(self, id_map: dict[str, str]) -> None:
        """Apply assigned ids to every stored entry and persist those that changed."""
        with get_tracer().start_as_current_span(SPAN_PROPAGATE_IDS):
            entries = await self._load_entries()

            for entry in entries:
                try:
                    changed = entry.on_success(id_map)
                except RelationPathError as e:
                    await self._on_relation_error(entry, e)
                    continue

                if changed:
                    await self._storage.set(entry.to_record())
                    logger.debug(
                        "Resolved relations",
                        extra={"identity": entry.identity, "pending": len(entry.relations)},
                    )

    async def _on_relation_error(self, entry: QueuedEntry, error: RelationPathError) -> None:
        # Relations are left as they were; the entry waits for a reset
        entry.on_error(error)
        self._metrics.record_entry_errored("relation")
        await self._storage.set(entry.to_record())

        logger.warning(
            "Could not apply assigned id to entry",
            extra={"identity": entry.identity, "error": str(error)},
        )

"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class EntryState(StrEnum):
    """
    Queued entry lifecycle states.

    State transitions:
    - PENDING -> READY (last relation resolved)
    - READY -> ERRORED (handler error, exception or stagnation)
    - READY -> done (handler assigned an id; entry leaves storage)
    - ERRORED -> READY / PENDING (explicit reset)
    """

    PENDING = "pending"
    READY = "ready"
    ERRORED = "errored"


class QueueEvent(StrEnum):
    """Events a queue can notify listeners about."""

    COMPLETED = "completed"


class StorageBackend(StrEnum):
    """Storage implementations selectable through configuration."""

    MEMORY = "memory"
    SQL = "sql"


# Error messages stored on entries
NO_OUTCOME_ERROR = (
    "No status returned from handler. Check your handler always returns a status object."
)
STAGNATION_ERROR = (
    "Queue item has not updated since last pass through handler. Make sure handler "
    "returns one of error or id for every call, and that storage is updating the "
    "item in the queue."
)

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_QUEUE_DEPTH = "related_queue_depth"
METRIC_ENTRIES_ENQUEUED = "entries_enqueued_total"
METRIC_ENTRIES_COMPLETED = "entries_completed_total"
METRIC_ENTRIES_ERRORED = "entries_errored_total"
METRIC_HANDLER_DURATION = "handler_duration_seconds"
METRIC_FLUSH_DURATION = "flush_duration_seconds"
METRIC_FLUSH_PASSES = "flush_passes"
METRIC_API_REQUESTS = "api_requests_total"

# Trace span names
SPAN_FLUSH = "flush"
SPAN_HANDLE_ENTRY = "handle_entry"
SPAN_PROPAGATE_IDS = "propagate_ids"

# WebSocket event types
WS_EVENT_ENTRY_COMPLETED = "entry.completed"

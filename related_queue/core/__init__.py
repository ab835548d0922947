"""
Queue core.
Contains the queue engine, queued entries and relation resolution.
"""

from related_queue.core.auto_flush import AutoFlushingQueue
from related_queue.core.entry import QueuedEntry
from related_queue.core.notifier import EventNotifier
from related_queue.core.queue import RelatedQueue
from related_queue.core.relations import ResolvedRelations, resolve_relations

__all__ = [
    "RelatedQueue",
    "AutoFlushingQueue",
    "QueuedEntry",
    "EventNotifier",
    "resolve_relations",
    "ResolvedRelations",
]

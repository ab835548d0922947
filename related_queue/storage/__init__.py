"""
Storage module.
Contains the storage port and its in-memory and SQLAlchemy implementations.
"""

from related_queue.storage.base import QueueStorage
from related_queue.storage.memory import MemoryStorage
from related_queue.storage.sql import SqlAlchemyStorage

__all__ = [
    "QueueStorage",
    "MemoryStorage",
    "SqlAlchemyStorage",
]

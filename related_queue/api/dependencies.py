"""
FastAPI dependencies.
"""

import asyncio
from typing import Annotated

from fastapi import Depends, Request

from related_queue.core import RelatedQueue


def get_queue(request: Request) -> RelatedQueue:
    """
    Get the queue attached to the application.

    Raises:
        RuntimeError: If no queue has been attached yet.
    """
    queue = getattr(request.app.state, "queue", None)
    if queue is None:
        raise RuntimeError("Queue not initialized. Call attach_queue() first.")
    return queue


def get_flush_lock(request: Request) -> asyncio.Lock:
    """Get the lock that keeps API-triggered flushes from overlapping."""
    return request.app.state.flush_lock


QueueDep = Annotated[RelatedQueue, Depends(get_queue)]
FlushLockDep = Annotated[asyncio.Lock, Depends(get_flush_lock)]

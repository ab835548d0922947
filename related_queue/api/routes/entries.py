"""
Queue entry routes.
"""

import logging

from fastapi import APIRouter, HTTPException, Response, status

from related_queue.api.dependencies import FlushLockDep, QueueDep
from related_queue.constants import API_V1_PREFIX
from related_queue.types.api import (
    EnqueueRequest,
    EnqueueResponse,
    EntryResponse,
    FlushResponse,
    UpdateIdsRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_V1_PREFIX, tags=["Entries"])


@router.post(
    "/entries",
    response_model=EnqueueResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Queue an entry",
    description="Submit a payload. An entry with the same identity is replaced.",
)
async def enqueue_entry(request: EnqueueRequest, queue: QueueDep) -> EnqueueResponse:
    """
    Queue an entry.

    Args:
        request: Entry submission request.
        queue: The application queue.

    Returns:
        EnqueueResponse with the stored identity.
    """
    identity = await queue.enqueue(
        request.payload,
        identity=request.identity,
        context=request.context,
        relations=[r.to_relation() for r in request.relations],
    )

    return EnqueueResponse(identity=identity, ready=not request.relations)


@router.post(
    "/entries/ids",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Report assigned ids",
    description="Resolve relations using ids assigned outside the queue.",
)
async def update_ids(request: UpdateIdsRequest, queue: QueueDep) -> Response:
    """
    Apply externally assigned ids to waiting entries.

    Args:
        request: Mapping of entry identity to assigned id.
        queue: The application queue.
    """
    await queue.update_ids(request.ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/entries/{identity}",
    response_model=EntryResponse,
    summary="Get entry",
    description="Get an entry with its queue metadata.",
)
async def get_entry(identity: str, queue: QueueDep) -> EntryResponse:
    """
    Get an entry by identity.

    Raises:
        HTTPException: 404 if the entry is not queued.
    """
    record = await queue.get(identity)

    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Entry {identity} not found",
        )

    return EntryResponse.from_record(record)


@router.delete(
    "/entries/{identity}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete entry",
    description="Remove an entry from the queue.",
)
async def delete_entry(identity: str, queue: QueueDep) -> Response:
    """Delete an entry by identity."""
    await queue.delete(identity)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/entries/{identity}/reset",
    response_model=EntryResponse,
    summary="Reset entry",
    description="Clear an entry's error so it is handled again.",
)
async def reset_entry(identity: str, queue: QueueDep) -> EntryResponse:
    """
    Reset an entry.

    Raises:
        HTTPException: 404 if the entry is not queued.
    """
    if await queue.get(identity) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Entry {identity} not found",
        )

    await queue.reset(identity)

    logger.info("Entry reset via API", extra={"identity": identity})

    record = await queue.get(identity)
    if record is None:
        # handled by an auto flush in the meantime
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Entry {identity} not found",
        )
    return EntryResponse.from_record(record)


@router.post(
    "/flush",
    response_model=FlushResponse,
    summary="Flush the queue",
    description="Pass every ready entry, and those made ready by it, through the handler.",
)
async def flush_queue(queue: QueueDep, flush_lock: FlushLockDep) -> FlushResponse:
    """
    Run a flush and report when it finished.

    Concurrent requests wait for the running flush and then sweep again.
    """
    async with flush_lock:
        await queue.flush()
    return FlushResponse(last_flushed=queue.last_flushed)


@router.get(
    "/flush",
    response_model=FlushResponse,
    summary="Last flush",
    description="Report when the queue was last flushed.",
)
async def last_flush(queue: QueueDep) -> FlushResponse:
    """Report the completion time of the last flush."""
    return FlushResponse(last_flushed=queue.last_flushed)

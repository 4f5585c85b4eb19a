"""
Queue routes.
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status

from stream_queue.backend import get_backend
from stream_queue.config import get_settings
from stream_queue.constants import API_V1_PREFIX
from stream_queue.core.engine import StreamQueue
from stream_queue.types.api import (
    ConsumerRequest,
    DequeueRequest,
    EnqueueRequest,
    EnqueueResponse,
    ErrorResponse,
    ItemResponse,
    PendingEntryResponse,
    PendingListResponse,
    StatsResponse,
)
from stream_queue.types.queue import QueueItem

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_V1_PREFIX}/queue", tags=["Queue"])

_ITEM_RESPONSES = {
    status.HTTP_204_NO_CONTENT: {"description": "Nothing available"},
    status.HTTP_422_UNPROCESSABLE_ENTITY: {"model": ErrorResponse},
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
}


def get_queue() -> StreamQueue:
    """
    Dependency that builds a queue over the process-wide backend.

    The queue holds no state of its own, so one per request is fine.
    """
    return StreamQueue.from_settings(get_backend())


def _item_or_no_content(item: QueueItem | None) -> ItemResponse | Response:
    if item is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return ItemResponse.from_item(item)


@router.post(
    "/items",
    response_model=EnqueueResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enqueue an item",
    description="Append a work item to the stream. Priority is stored but does not reorder delivery.",
)
async def enqueue_item(
    request: EnqueueRequest,
    queue: StreamQueue = Depends(get_queue),
) -> EnqueueResponse:
    """
    Append a work item.

    Args:
        request: Item payload and priority.
        queue: Stream queue.

    Returns:
        EnqueueResponse with the assigned entry id.
    """
    entry_id = await queue.enqueue(request.payload, request.priority)

    logger.info(
        "Item enqueued via API",
        extra={"entry_id": entry_id, "priority": request.priority},
    )

    return EnqueueResponse(entry_id=entry_id)


@router.post(
    "/dequeue",
    response_model=ItemResponse,
    responses=_ITEM_RESPONSES,
    summary="Receive and complete an item",
    description="Read the next new item for a consumer and acknowledge it in the same call.",
)
async def dequeue_item(
    request: DequeueRequest,
    queue: StreamQueue = Depends(get_queue),
):
    block_ms = request.block_ms
    if block_ms is None:
        block_ms = get_settings().dequeue_block_ms

    item = await queue.receive_and_complete(request.consumer, block_ms)
    return _item_or_no_content(item)


@router.post(
    "/peek",
    response_model=ItemResponse,
    responses=_ITEM_RESPONSES,
    summary="Peek at the next item",
    description=(
        "Deliver the next new item to a consumer without acknowledging it. "
        "The item stays pending until acknowledged or reclaimed."
    ),
)
async def peek_item(
    request: ConsumerRequest,
    queue: StreamQueue = Depends(get_queue),
):
    item = await queue.peek(request.consumer)
    return _item_or_no_content(item)


@router.post(
    "/dequeue-with-reclaim",
    response_model=ItemResponse,
    responses=_ITEM_RESPONSES,
    summary="Reclaim or receive an item",
    description="Recover a stalled item if one is idle past the threshold, otherwise receive a new one.",
)
async def dequeue_with_reclaim(
    request: ConsumerRequest,
    queue: StreamQueue = Depends(get_queue),
):
    item = await queue.receive_and_complete_with_reclaim(request.consumer)
    return _item_or_no_content(item)


@router.post(
    "/items/{entry_id}/ack",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={status.HTTP_409_CONFLICT: {"model": ErrorResponse}},
    summary="Acknowledge an item",
    description="Acknowledge a pending item, e.g. one delivered by peek.",
)
async def acknowledge_item(
    entry_id: str,
    queue: StreamQueue = Depends(get_queue),
) -> Response:
    await queue.acknowledge(entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Queue statistics",
    description="Stream length and number of pending entries in the group.",
)
async def queue_stats(
    queue: StreamQueue = Depends(get_queue),
) -> StatsResponse:
    stats = await queue.stats()
    return StatsResponse.from_stats(stats)


@router.get(
    "/pending",
    response_model=PendingListResponse,
    summary="List pending entries",
    description="Oldest delivered but unacknowledged entries, optionally for one consumer.",
)
async def list_pending(
    count: int = Query(default=10, ge=1, le=1000),
    consumer: str | None = Query(default=None, min_length=1),
    queue: StreamQueue = Depends(get_queue),
) -> PendingListResponse:
    """
    List pending entries.

    Args:
        count: Maximum entries to return.
        consumer: Only entries owned by this consumer.
        queue: Stream queue.

    Returns:
        PendingListResponse with the entries, oldest first.
    """
    entries = await queue.pending(count=count, consumer_name=consumer)
    return PendingListResponse(
        entries=[PendingEntryResponse.from_entry(entry) for entry in entries],
        count=len(entries),
    )

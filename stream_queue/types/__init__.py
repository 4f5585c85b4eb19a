"""
Type definitions for the stream queue.
Contains input/output type definitions for all functions, grouped by module.
"""

from stream_queue.types.api import (
    ConsumerRequest,
    DequeueRequest,
    EnqueueRequest,
    EnqueueResponse,
    ErrorResponse,
    HealthResponse,
    ItemResponse,
    PendingEntryResponse,
    PendingListResponse,
    StatsResponse,
)
from stream_queue.types.queue import (
    PendingEntry,
    QueueItem,
    QueueStats,
    StreamEntry,
)

__all__ = [
    # API types
    "EnqueueRequest",
    "EnqueueResponse",
    "DequeueRequest",
    "ConsumerRequest",
    "ItemResponse",
    "StatsResponse",
    "PendingEntryResponse",
    "PendingListResponse",
    "HealthResponse",
    "ErrorResponse",
    # Queue types
    "QueueItem",
    "PendingEntry",
    "QueueStats",
    "StreamEntry",
]

"""
API request and response type definitions.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from stream_queue.types.queue import PendingEntry, QueueItem, QueueStats


class EnqueueRequest(BaseModel):
    """Request body for appending a work item."""

    payload: str = Field(..., description="Opaque work item payload")
    priority: int = Field(
        default=0,
        description="Priority metadata; does not change delivery order",
    )


class EnqueueResponse(BaseModel):
    """Response body after appending a work item."""

    entry_id: str
    message: str = "Item enqueued"


class DequeueRequest(BaseModel):
    """Request body for a receive-and-complete dequeue."""

    consumer: str = Field(..., min_length=1, description="Consumer name within the group")
    block_ms: int | None = Field(
        default=None,
        ge=0,
        le=60_000,
        description="Milliseconds to wait for an entry. Defaults to the configured dequeue block",
    )


class ConsumerRequest(BaseModel):
    """Request body for peek and reclaim-aware dequeue."""

    consumer: str = Field(..., min_length=1, description="Consumer name within the group")


def _created_at_iso(created_at: int) -> datetime | None:
    """Convert a nanosecond timestamp, or None if datetime cannot represent it."""
    try:
        return datetime.fromtimestamp(created_at / 1_000_000_000, tz=timezone.utc)
    except (OverflowError, ValueError, OSError):
        return None


class ItemResponse(BaseModel):
    """A work item read from the stream."""

    entry_id: str | None
    payload: str
    priority: int
    created_at: int
    created_at_iso: datetime | None = None

    @classmethod
    def from_item(cls, item: QueueItem) -> "ItemResponse":
        """Build a response from a queue item."""
        return cls(
            entry_id=item.entry_id,
            payload=item.payload,
            priority=item.priority,
            created_at=item.created_at,
            created_at_iso=_created_at_iso(item.created_at),
        )


class StatsResponse(BaseModel):
    """Queue statistics."""

    total_entries: int
    pending_count: int

    @classmethod
    def from_stats(cls, stats: QueueStats) -> "StatsResponse":
        return cls(total_entries=stats.total_entries, pending_count=stats.pending_count)


class PendingEntryResponse(BaseModel):
    """One pending (delivered, unacknowledged) entry."""

    entry_id: str
    consumer: str
    idle_ms: int
    delivery_count: int

    @classmethod
    def from_entry(cls, entry: PendingEntry) -> "PendingEntryResponse":
        return cls(
            entry_id=entry.entry_id,
            consumer=entry.consumer,
            idle_ms=entry.idle_ms,
            delivery_count=entry.delivery_count,
        )


class PendingListResponse(BaseModel):
    """Page of the group's pending-entries list."""

    entries: list[PendingEntryResponse]
    count: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    backend: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    detail: str | None = None
    entry_id: str | None = None

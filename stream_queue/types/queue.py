"""
Queue-related type definitions for internal use.
"""

from dataclasses import dataclass

# (entry_id, record) as returned by group reads and claims
StreamEntry = tuple[str, dict[str, str]]


@dataclass(frozen=True)
class QueueItem:
    """
    A unit of work carried by one stream entry.

    ``priority`` is metadata only; delivery order is append order.
    ``entry_id`` is assigned by the log backend and is ``None`` until the
    item has been read back from the log.
    """

    payload: str
    priority: int
    created_at: int
    entry_id: str | None = None


@dataclass(frozen=True)
class PendingEntry:
    """
    One row of a consumer group's pending-entries list.
    Delivered to ``consumer`` but not yet acknowledged.
    """

    entry_id: str
    consumer: str
    idle_ms: int
    delivery_count: int

    def is_idle(self, min_idle_ms: int) -> bool:
        """Check if the entry has been idle for at least ``min_idle_ms``."""
        return self.idle_ms >= min_idle_ms


@dataclass(frozen=True)
class QueueStats:
    """Log length and group pending count."""

    total_entries: int
    pending_count: int

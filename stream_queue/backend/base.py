"""
Log backend contract.

The queue engine holds no coordination state of its own. Everything it
relies on for correctness lives behind this interface, and every
implementation must guarantee:

- append is atomic and entry ids increase monotonically
- a read of new entries delivers each entry to exactly one consumer and
  marks it pending for that consumer in the same step
- a claim is atomic and re-checks the minimum idle time at claim time
- acknowledgement removes an entry from the pending list permanently
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from stream_queue.constants import (
    GROUP_START_BEGINNING,
    PENDING_RANGE_MAX,
    PENDING_RANGE_MIN,
)
from stream_queue.types.queue import PendingEntry, StreamEntry


class LogBackend(ABC):
    """
    Append-only log with consumer-group delivery tracking.

    One backend instance is bound to one log (stream); consumer groups are
    named per call.
    """

    name: str = "abstract"

    @property
    @abstractmethod
    def stream(self) -> str:
        """Name of the log this backend is bound to."""

    @abstractmethod
    async def create_group(self, group: str, start_id: str = GROUP_START_BEGINNING) -> bool:
        """
        Create a consumer group, creating the log if needed.

        Args:
            group: Consumer group name.
            start_id: Id after which the group starts reading.

        Returns:
            True if the group was created, False if it already existed.
        """

    @abstractmethod
    async def append(self, record: dict[str, str], max_length: int | None = None) -> str:
        """
        Append a record and return its backend-assigned entry id.

        Args:
            record: Field-value record.
            max_length: Optional approximate cap on the log length.
        """

    @abstractmethod
    async def read_new(
        self,
        group: str,
        consumer: str,
        count: int = 1,
        block_ms: int = 0,
        no_ack: bool = False,
    ) -> list[StreamEntry]:
        """
        Read entries never delivered to any consumer of the group.

        Args:
            group: Consumer group name.
            consumer: Consumer the entries are delivered to.
            count: Maximum number of entries.
            block_ms: Milliseconds to wait when nothing is available.
                Zero or less returns immediately.
            no_ack: Deliver without adding entries to the pending list.

        Returns:
            Delivered entries in log order; empty on timeout.
        """

    @abstractmethod
    async def acknowledge(self, group: str, entry_id: str) -> bool:
        """
        Acknowledge a pending entry.

        Returns:
            True if the entry was pending and is now acknowledged.
        """

    @abstractmethod
    async def list_pending(
        self,
        group: str,
        start: str = PENDING_RANGE_MIN,
        end: str = PENDING_RANGE_MAX,
        count: int = 10,
        consumer: str | None = None,
    ) -> list[PendingEntry]:
        """
        List pending entries in entry id order.

        A group without a pending list yields an empty list.
        """

    @abstractmethod
    async def claim(
        self,
        group: str,
        consumer: str,
        min_idle_ms: int,
        entry_ids: Sequence[str],
    ) -> list[StreamEntry]:
        """
        Transfer ownership of idle pending entries to ``consumer``.

        Entries that are no longer idle for ``min_idle_ms`` at claim time
        are left with their owner. Claimed entries have their delivery
        count incremented and idle timer reset.

        Returns:
            The claimed entries that still exist in the log.
        """

    @abstractmethod
    async def length(self) -> int:
        """Number of entries in the log."""

    @abstractmethod
    async def pending_summary(self, group: str) -> int:
        """Number of pending entries in the group; 0 if it has none."""

    @abstractmethod
    async def trim(self, max_length: int, approximate: bool = True) -> int:
        """
        Trim the oldest entries so the log holds about ``max_length``.

        Returns:
            Number of entries removed.
        """

    @abstractmethod
    async def ping(self) -> bool:
        """Check backend reachability."""

    async def close(self) -> None:
        """Release backend resources."""

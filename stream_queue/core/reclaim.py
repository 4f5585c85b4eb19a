"""
Reclaim policy for entries stranded by stalled consumers.

An entry stays in the group's pending list from delivery until
acknowledgement. If its consumer dies or hangs, the entry is only
recovered by an explicit claim from another consumer. The policy:

1. Lists one page of the pending list across all consumers (entry id order,
   so the oldest entries come first).
2. Keeps entries idle for at least ``min_idle_ms``.
3. Claims that set for the requesting consumer, conditioned on the same
   idle time. The backend re-checks idleness at claim time, so a consumer
   that resumed just before the claim keeps its entry.

``reclaim`` hands back only the first claimed entry. Any other entries
claimed in the same step stay pending for the requester and become
reclaimable again once idle, which bounds the work done per call.
"""

import logging
from collections.abc import Sequence

from stream_queue.backend.base import LogBackend
from stream_queue.constants import DEFAULT_RECLAIM_MIN_IDLE_MS, DEFAULT_RECLAIM_PAGE_SIZE
from stream_queue.types.queue import PendingEntry, StreamEntry

logger = logging.getLogger(__name__)


class ReclaimPolicy:
    """
    Idle-threshold reclaim over one page of the pending list.

    Args:
        min_idle_ms: Minimum idle time before an entry may be claimed.
        page_size: Maximum pending entries inspected per call.
    """

    def __init__(
        self,
        min_idle_ms: int = DEFAULT_RECLAIM_MIN_IDLE_MS,
        page_size: int = DEFAULT_RECLAIM_PAGE_SIZE,
    ):
        if min_idle_ms < 0:
            raise ValueError("min_idle_ms must be non-negative")
        if page_size < 1:
            raise ValueError("page_size must be at least 1")

        self.min_idle_ms = min_idle_ms
        self.page_size = page_size

    def select_idle(self, pending: Sequence[PendingEntry]) -> list[str]:
        """Entry ids idle past the threshold, in pending-list order."""
        return [entry.entry_id for entry in pending if entry.is_idle(self.min_idle_ms)]

    async def claim_stalled(
        self,
        backend: LogBackend,
        group: str,
        consumer_name: str,
    ) -> list[StreamEntry]:
        """
        Claim every idle entry on the first pending page.

        Args:
            backend: The log backend.
            group: Consumer group name.
            consumer_name: Consumer taking ownership.

        Returns:
            The entries now owned by ``consumer_name``, oldest first.
        """
        pending = await backend.list_pending(group, count=self.page_size)
        idle_ids = self.select_idle(pending)

        if not idle_ids:
            return []

        claimed = await backend.claim(group, consumer_name, self.min_idle_ms, idle_ids)

        if claimed:
            logger.info(
                f"Claimed {len(claimed)} stalled entries",
                extra={
                    "consumer": consumer_name,
                    "entry_ids": [entry_id for entry_id, _ in claimed],
                },
            )
        else:
            logger.debug(
                "Idle entries were not claimable",
                extra={"consumer": consumer_name, "candidates": len(idle_ids)},
            )

        return claimed

    async def reclaim(
        self,
        backend: LogBackend,
        group: str,
        consumer_name: str,
    ) -> StreamEntry | None:
        """
        Recover one stalled entry for ``consumer_name``.

        Returns:
            The first claimed entry, or None if nothing was reclaimable.
        """
        claimed = await self.claim_stalled(backend, group, consumer_name)
        return claimed[0] if claimed else None

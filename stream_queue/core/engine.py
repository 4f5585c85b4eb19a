"""
Queue engine over a consumer-group log.

StreamQueue is stateless apart from its injected collaborators: pending
lists, ownership and idle timers all live in the log backend, so any
number of engines (tasks, processes, hosts) may share one stream and
group without extra locking.

Delivery order is append order. Priority is stored with every entry but
never used to reorder delivery.

Dequeue here is receive-and-complete: the entry is read, decoded, handed
to the item hook and acknowledged within one call. The only window that
leaves an entry pending is a crash (or a failing hook) between delivery
and acknowledgement; such entries are recovered by the reclaim policy.
"""

import logging
import time
from collections.abc import Awaitable, Callable

from stream_queue.backend.base import LogBackend
from stream_queue.codec import decode, encode
from stream_queue.config import Settings, get_settings
from stream_queue.constants import (
    GROUP_START_BEGINNING,
    SPAN_ACKNOWLEDGE,
    SPAN_ENQUEUE,
    SPAN_PEEK,
    SPAN_RECEIVE_AND_COMPLETE,
    SPAN_RECLAIM,
    EntrySource,
)
from stream_queue.core.reclaim import ReclaimPolicy
from stream_queue.errors import AckFailed, BackendUnavailable, GroupNotFound, MalformedRecord
from stream_queue.observability.metrics import MetricsCollector, get_metrics
from stream_queue.observability.tracing import get_tracer
from stream_queue.types.queue import PendingEntry, QueueItem, QueueStats, StreamEntry

logger = logging.getLogger(__name__)

# Side-effecting hook run on every received item before acknowledgement
ItemHook = Callable[[QueueItem], Awaitable[None]]


def _require_consumer(consumer_name: str) -> None:
    if not consumer_name:
        raise ValueError("consumer_name is required")


class StreamQueue:
    """
    Work queue on one stream and consumer group.

    Every consuming call takes the consumer name explicitly; the engine
    never invents one.
    """

    def __init__(
        self,
        backend: LogBackend,
        group: str,
        reclaim_policy: ReclaimPolicy | None = None,
        on_item: ItemHook | None = None,
        reclaim_block_ms: int = 0,
        ack_malformed: bool = False,
        max_length: int | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the queue.

        Args:
            backend: Log backend bound to the stream.
            group: Consumer group name.
            reclaim_policy: Policy for recovering stalled entries.
            on_item: Hook run on each received item before it is acknowledged.
            reclaim_block_ms: Block timeout for the read that follows an
                unsuccessful reclaim. Zero means non-blocking.
            ack_malformed: Acknowledge entries that fail to decode instead of
                leaving them pending.
            max_length: Approximate stream length cap applied on enqueue.
            metrics: Metrics collector. Defaults to the global collector.
        """
        self._backend = backend
        self._group = group
        self._reclaim_policy = reclaim_policy or ReclaimPolicy()
        self._on_item = on_item
        self._reclaim_block_ms = reclaim_block_ms
        self._ack_malformed = ack_malformed
        self._max_length = max_length
        self._metrics = metrics or get_metrics()

    @classmethod
    def from_settings(
        cls,
        backend: LogBackend,
        settings: Settings | None = None,
        on_item: ItemHook | None = None,
        metrics: MetricsCollector | None = None,
    ) -> "StreamQueue":
        """Build a queue configured from application settings."""
        settings = settings or get_settings()
        return cls(
            backend=backend,
            group=settings.group_name,
            reclaim_policy=ReclaimPolicy(
                min_idle_ms=settings.reclaim_min_idle_ms,
                page_size=settings.reclaim_page_size,
            ),
            on_item=on_item,
            reclaim_block_ms=settings.reclaim_block_ms,
            ack_malformed=settings.ack_malformed_entries,
            max_length=settings.stream_max_length,
            metrics=metrics,
        )

    @property
    def stream(self) -> str:
        return self._backend.stream

    @property
    def group(self) -> str:
        return self._group

    @property
    def reclaim_policy(self) -> ReclaimPolicy:
        return self._reclaim_policy

    async def initialize(self) -> bool:
        """
        Create the consumer group from the start of the stream.

        Returns:
            True if the group was created, False if it already existed.
        """
        created = await self._backend.create_group(self._group, GROUP_START_BEGINNING)
        if created:
            logger.info("Consumer group initialized", extra={"group": self._group})
        return created

    async def enqueue(self, payload: str, priority: int) -> str:
        """
        Append a work item to the stream.

        Args:
            payload: Opaque item payload.
            priority: Priority metadata. Does not affect delivery order.

        Returns:
            The backend-assigned entry id.

        Raises:
            BackendUnavailable: If the backend cannot be reached.
        """
        item = QueueItem(payload=payload, priority=priority, created_at=time.time_ns())

        with get_tracer().start_as_current_span(SPAN_ENQUEUE) as span:
            span.set_attribute("stream", self.stream)
            span.set_attribute("priority", priority)

            entry_id = await self._backend.append(encode(item), max_length=self._max_length)

            span.set_attribute("entry_id", entry_id)

        self._metrics.record_enqueued(self.stream)
        logger.debug(
            "Enqueued item",
            extra={"entry_id": entry_id, "priority": priority},
        )
        return entry_id

    async def receive_and_complete(
        self,
        consumer_name: str,
        block_ms: int,
    ) -> QueueItem | None:
        """
        Receive the next unclaimed entry, process it and acknowledge it.

        Args:
            consumer_name: Consumer within the group.
            block_ms: Milliseconds to wait for an entry. Zero or less
                returns immediately.

        Returns:
            The completed item, or None if nothing arrived in time.

        Raises:
            MalformedRecord: If the entry does not decode.
            AckFailed: If the item was processed but not acknowledged.
            BackendUnavailable: If the backend cannot be reached.
        """
        _require_consumer(consumer_name)
        start_time = time.monotonic()

        with get_tracer().start_as_current_span(SPAN_RECEIVE_AND_COMPLETE) as span:
            span.set_attribute("consumer", consumer_name)
            span.set_attribute("block_ms", block_ms)

            entries = await self._read_new(consumer_name, block_ms)
            self._metrics.observe_dequeue(self.stream, time.monotonic() - start_time)

            if not entries:
                return None

            entry_id = entries[0][0]
            span.set_attribute("entry_id", entry_id)
            return await self._complete(entries[0], consumer_name, EntrySource.NEW)

    async def peek(self, consumer_name: str) -> QueueItem | None:
        """
        Receive the next unclaimed entry without acknowledging it.

        Unlike a read-only peek, the entry is delivered: it joins the
        pending list of ``consumer_name`` and stays there until it is
        acknowledged or reclaimed by another consumer.

        Args:
            consumer_name: Consumer the entry is delivered to.

        Returns:
            The delivered item, or None if the stream has nothing new.

        Raises:
            MalformedRecord: If the entry does not decode.
            BackendUnavailable: If the backend cannot be reached.
        """
        _require_consumer(consumer_name)

        with get_tracer().start_as_current_span(SPAN_PEEK) as span:
            span.set_attribute("consumer", consumer_name)

            entries = await self._read_new(consumer_name, block_ms=0)
            if not entries:
                return None

            item = await self._decode(entries[0])
            span.set_attribute("entry_id", item.entry_id or "")

        self._metrics.record_peeked(self.stream, consumer_name)
        logger.info(
            "Peeked item left pending",
            extra={"entry_id": item.entry_id, "consumer": consumer_name},
        )
        return item

    async def receive_and_complete_with_reclaim(self, consumer_name: str) -> QueueItem | None:
        """
        Recover a stalled entry if one exists, otherwise receive a new one.

        A reclaimed entry goes through the same decode, hook and
        acknowledge steps as ``receive_and_complete``. Without one, this
        falls through to ``receive_and_complete`` with the configured
        reclaim block timeout.

        Args:
            consumer_name: Consumer within the group.

        Returns:
            The completed item, or None if nothing was available.
        """
        _require_consumer(consumer_name)

        with get_tracer().start_as_current_span(SPAN_RECLAIM) as span:
            span.set_attribute("consumer", consumer_name)
            span.set_attribute("min_idle_ms", self._reclaim_policy.min_idle_ms)

            entry = await self._reclaim_policy.reclaim(
                self._backend, self._group, consumer_name
            )
            span.set_attribute("reclaimed", entry is not None)

        if entry is not None:
            self._metrics.record_reclaimed(self.stream, consumer_name)
            return await self._complete(entry, consumer_name, EntrySource.RECLAIMED)

        return await self.receive_and_complete(consumer_name, self._reclaim_block_ms)

    async def stats(self) -> QueueStats:
        """
        Get the stream length and the group's pending count.

        A group with no pending list reports a pending count of 0.
        """
        total_entries = await self._backend.length()
        pending_count = await self._backend.pending_summary(self._group)

        self._metrics.update_queue_state(
            self.stream, self._group, total_entries, pending_count
        )
        return QueueStats(total_entries=total_entries, pending_count=pending_count)

    async def acknowledge(self, entry_id: str) -> None:
        """
        Acknowledge a pending entry, e.g. one left pending by ``peek``.

        Raises:
            AckFailed: If the entry was not pending in the group.
            BackendUnavailable: If the backend cannot be reached.
        """
        with get_tracer().start_as_current_span(SPAN_ACKNOWLEDGE) as span:
            span.set_attribute("entry_id", entry_id)
            try:
                acked = await self._backend.acknowledge(self._group, entry_id)
            except GroupNotFound:
                acked = False

        if not acked:
            self._metrics.record_ack_failure(self.stream)
            raise AckFailed(entry_id)

        logger.info("Acknowledged entry", extra={"entry_id": entry_id})

    async def pending(
        self,
        count: int = 10,
        consumer_name: str | None = None,
    ) -> list[PendingEntry]:
        """
        List pending entries, oldest first.

        Args:
            count: Maximum entries to return.
            consumer_name: Only entries owned by this consumer.
        """
        return await self._backend.list_pending(
            self._group, count=count, consumer=consumer_name
        )

    async def trim(self, max_length: int) -> int:
        """
        Trim the oldest entries so the stream holds about ``max_length``.

        Pending entries that are trimmed away can no longer be reclaimed.

        Returns:
            Number of entries removed.
        """
        removed = await self._backend.trim(max_length)
        if removed:
            logger.info(
                f"Trimmed {removed} entries",
                extra={"max_length": max_length},
            )
        return removed

    async def _read_new(self, consumer_name: str, block_ms: int) -> list[StreamEntry]:
        """
        Read one new entry, recreating the group once if it vanished.

        The group is recreated from the start of the log, so every entry
        still in the stream is delivered again, including entries that
        were already acknowledged before the group was lost.
        """
        try:
            return await self._backend.read_new(
                self._group, consumer_name, count=1, block_ms=block_ms
            )
        except GroupNotFound:
            logger.error(
                "Consumer group missing, recreating from the start of the log; "
                "retained entries will be redelivered",
                extra={"group": self._group},
            )
            await self.initialize()
            return await self._backend.read_new(
                self._group, consumer_name, count=1, block_ms=block_ms
            )

    async def _decode(self, entry: StreamEntry) -> QueueItem:
        entry_id, record = entry
        try:
            return decode(record, entry_id=entry_id)
        except MalformedRecord as e:
            self._metrics.record_malformed(self.stream)
            logger.error(
                "Malformed entry",
                extra={
                    "entry_id": entry_id,
                    "reason": e.reason,
                    "acknowledged": self._ack_malformed,
                },
            )
            if self._ack_malformed:
                await self._backend.acknowledge(self._group, entry_id)
            raise

    async def _complete(
        self,
        entry: StreamEntry,
        consumer_name: str,
        source: EntrySource,
    ) -> QueueItem:
        """Decode, run the hook and acknowledge one delivered entry."""
        item = await self._decode(entry)
        entry_id = entry[0]

        logger.info(
            f"Processing: {item.payload} with priority {item.priority}",
            extra={
                "entry_id": entry_id,
                "consumer": consumer_name,
                "source": source.value,
            },
        )

        # A failing hook leaves the entry pending for reclaim
        if self._on_item is not None:
            await self._on_item(item)

        try:
            acked = await self._backend.acknowledge(self._group, entry_id)
        except (BackendUnavailable, GroupNotFound) as e:
            self._metrics.record_ack_failure(self.stream)
            raise AckFailed(entry_id, item) from e

        if not acked:
            self._metrics.record_ack_failure(self.stream)
            raise AckFailed(entry_id, item)

        self._metrics.record_completed(self.stream, consumer_name, source)
        return item

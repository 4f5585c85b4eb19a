"""
In-memory log backend.

Implements the full LogBackend contract inside a single event loop. Used
by the test suite and by ``BACKEND=memory`` for local development; state
is lost when the process exits.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from stream_queue.backend.base import LogBackend
from stream_queue.constants import (
    GROUP_START_BEGINNING,
    GROUP_START_LATEST,
    PENDING_RANGE_MAX,
    PENDING_RANGE_MIN,
)
from stream_queue.errors import GroupNotFound
from stream_queue.types.queue import PendingEntry, StreamEntry

logger = logging.getLogger(__name__)

EntryKey = tuple[int, int]


def parse_entry_id(entry_id: str) -> EntryKey:
    """
    Parse a ``<ms>-<seq>`` entry id into a sortable key.

    A bare ``<ms>`` is read as ``<ms>-0``.
    """
    ms, _, seq = entry_id.partition("-")
    return int(ms), int(seq or 0)


def format_entry_id(key: EntryKey) -> str:
    return f"{key[0]}-{key[1]}"


def _range_key(bound: str, default: EntryKey) -> EntryKey:
    if bound in (PENDING_RANGE_MIN, PENDING_RANGE_MAX):
        return default
    return parse_entry_id(bound)


@dataclass
class _PendingRecord:
    consumer: str
    delivered_at: float
    delivery_count: int = 1


@dataclass
class _Group:
    last_delivered: EntryKey
    pending: dict[str, _PendingRecord] = field(default_factory=dict)


class InMemoryLogBackend(LogBackend):
    """
    Stream-like log held in process memory.

    Args:
        stream: Log name.
        clock: Monotonic clock in seconds, used for idle times.
        wall_clock_ms: Wall clock in milliseconds, used for entry ids.
    """

    name = "memory"

    def __init__(
        self,
        stream: str,
        clock: Callable[[], float] = time.monotonic,
        wall_clock_ms: Callable[[], int] = lambda: time.time_ns() // 1_000_000,
    ):
        self._stream = stream
        self._clock = clock
        self._wall_clock_ms = wall_clock_ms
        self._entries: dict[str, dict[str, str]] = {}
        self._last_key: EntryKey = (0, 0)
        self._groups: dict[str, _Group] = {}
        self._appended = asyncio.Condition()

    @property
    def stream(self) -> str:
        return self._stream

    def _group(self, group: str) -> _Group:
        try:
            return self._groups[group]
        except KeyError:
            raise GroupNotFound(group) from None

    def _next_key(self) -> EntryKey:
        ms = self._wall_clock_ms()
        last_ms, last_seq = self._last_key
        if ms <= last_ms:
            return last_ms, last_seq + 1
        return ms, 0

    def _idle_ms(self, record: _PendingRecord) -> int:
        return max(0, int((self._clock() - record.delivered_at) * 1000))

    async def create_group(self, group: str, start_id: str = GROUP_START_BEGINNING) -> bool:
        if group in self._groups:
            return False

        if start_id == GROUP_START_LATEST:
            last = self._last_key
        else:
            last = parse_entry_id(start_id)

        self._groups[group] = _Group(last_delivered=last)
        logger.debug("Created consumer group", extra={"group": group, "start_id": start_id})
        return True

    async def append(self, record: dict[str, str], max_length: int | None = None) -> str:
        async with self._appended:
            key = self._next_key()
            self._last_key = key
            entry_id = format_entry_id(key)
            self._entries[entry_id] = dict(record)

            if max_length is not None:
                self._trim(max_length)

            self._appended.notify_all()

        return entry_id

    def _deliver(self, group: str, consumer: str, count: int, no_ack: bool) -> list[StreamEntry]:
        state = self._group(group)
        delivered: list[StreamEntry] = []

        for entry_id, record in self._entries.items():
            if len(delivered) >= count:
                break
            key = parse_entry_id(entry_id)
            if key <= state.last_delivered:
                continue

            state.last_delivered = key
            if not no_ack:
                state.pending[entry_id] = _PendingRecord(
                    consumer=consumer,
                    delivered_at=self._clock(),
                )
            delivered.append((entry_id, dict(record)))

        return delivered

    async def read_new(
        self,
        group: str,
        consumer: str,
        count: int = 1,
        block_ms: int = 0,
        no_ack: bool = False,
    ) -> list[StreamEntry]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + block_ms / 1000

        async with self._appended:
            while True:
                delivered = self._deliver(group, consumer, count, no_ack)
                if delivered or block_ms <= 0:
                    return delivered

                remaining = deadline - loop.time()
                if remaining <= 0:
                    return []

                try:
                    await asyncio.wait_for(self._appended.wait(), timeout=remaining)
                except TimeoutError:
                    return self._deliver(group, consumer, count, no_ack)

    async def acknowledge(self, group: str, entry_id: str) -> bool:
        state = self._group(group)
        return state.pending.pop(entry_id, None) is not None

    async def list_pending(
        self,
        group: str,
        start: str = PENDING_RANGE_MIN,
        end: str = PENDING_RANGE_MAX,
        count: int = 10,
        consumer: str | None = None,
    ) -> list[PendingEntry]:
        state = self._groups.get(group)
        if state is None:
            return []

        low = _range_key(start, (0, 0))
        high = _range_key(end, (2**64, 2**64))

        rows = []
        for entry_id in sorted(state.pending, key=parse_entry_id):
            if not low <= parse_entry_id(entry_id) <= high:
                continue
            record = state.pending[entry_id]
            if consumer is not None and record.consumer != consumer:
                continue
            rows.append(
                PendingEntry(
                    entry_id=entry_id,
                    consumer=record.consumer,
                    idle_ms=self._idle_ms(record),
                    delivery_count=record.delivery_count,
                )
            )
            if len(rows) >= count:
                break

        return rows

    async def claim(
        self,
        group: str,
        consumer: str,
        min_idle_ms: int,
        entry_ids: Sequence[str],
    ) -> list[StreamEntry]:
        state = self._group(group)
        claimed: list[StreamEntry] = []

        for entry_id in entry_ids:
            record = state.pending.get(entry_id)
            if record is None or self._idle_ms(record) < min_idle_ms:
                continue

            # Entry trimmed away while pending
            if entry_id not in self._entries:
                del state.pending[entry_id]
                continue

            record.consumer = consumer
            record.delivery_count += 1
            record.delivered_at = self._clock()
            claimed.append((entry_id, dict(self._entries[entry_id])))

        return claimed

    async def length(self) -> int:
        return len(self._entries)

    async def pending_summary(self, group: str) -> int:
        state = self._groups.get(group)
        if state is None:
            return 0
        return len(state.pending)

    def _trim(self, max_length: int) -> int:
        excess = len(self._entries) - max(max_length, 0)
        if excess <= 0:
            return 0
        for entry_id in list(self._entries)[:excess]:
            del self._entries[entry_id]
        return excess

    async def trim(self, max_length: int, approximate: bool = True) -> int:
        return self._trim(max_length)

    async def ping(self) -> bool:
        return True

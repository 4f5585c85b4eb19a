"""
Redis Streams log backend.

Maps the LogBackend contract onto stream commands:
- XGROUP CREATE ... MKSTREAM to create the consumer group
- XADD to append
- XREADGROUP with ">" to read new entries
- XACK to acknowledge
- XPENDING (extended form) to list pending entries
- XCLAIM with MIN-IDLE-TIME to transfer ownership
- XLEN / XPENDING (summary form) for statistics
- XTRIM MAXLEN to cap the stream

Connection and timeout failures surface as BackendUnavailable and are not
retried here.
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from stream_queue.backend.base import LogBackend
from stream_queue.constants import (
    GROUP_START_BEGINNING,
    PENDING_RANGE_MAX,
    PENDING_RANGE_MIN,
    REDIS_BUSYGROUP,
    REDIS_NOGROUP,
)
from stream_queue.errors import BackendUnavailable, GroupNotFound
from stream_queue.types.queue import PendingEntry, StreamEntry

logger = logging.getLogger(__name__)


@contextmanager
def _backend_errors(command: str, group: str | None = None) -> Iterator[None]:
    """Translate redis-py failures into queue errors."""
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as e:
        raise BackendUnavailable(f"Redis {command} failed: {e}") from e
    except ResponseError as e:
        if group is not None and REDIS_NOGROUP in str(e):
            raise GroupNotFound(group) from e
        raise


def _text(value: str | bytes) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


def _parse_entries(messages: Sequence[Any] | None) -> list[StreamEntry]:
    """
    Parse ``[(id, fields), ...]``. Entries deleted from the stream while
    pending come back with no fields and are dropped.
    """
    entries: list[StreamEntry] = []
    for entry_id, fields in messages or []:
        if fields is None:
            continue
        entries.append(
            (_text(entry_id), {_text(k): _text(v) for k, v in fields.items()})
        )
    return entries


def _parse_read_response(response: Any) -> list[StreamEntry]:
    """Flatten an XREADGROUP reply of the form ``[[stream, messages], ...]``."""
    entries: list[StreamEntry] = []
    for _stream, messages in response or []:
        entries.extend(_parse_entries(messages))
    return entries


class RedisStreamBackend(LogBackend):
    """
    LogBackend over one Redis stream key.

    Args:
        client: redis.asyncio client. Responses may be decoded or raw bytes.
        stream: Stream key.
    """

    name = "redis"

    def __init__(self, client: redis.Redis, stream: str):
        self._client = client
        self._stream = stream

    @property
    def stream(self) -> str:
        return self._stream

    @property
    def client(self) -> redis.Redis:
        return self._client

    async def create_group(self, group: str, start_id: str = GROUP_START_BEGINNING) -> bool:
        with _backend_errors("XGROUP CREATE"):
            try:
                await self._client.xgroup_create(
                    self._stream, group, id=start_id, mkstream=True
                )
            except ResponseError as e:
                if REDIS_BUSYGROUP in str(e):
                    logger.debug(
                        "Consumer group already exists",
                        extra={"stream": self._stream, "group": group},
                    )
                    return False
                raise

        logger.info(
            "Consumer group created",
            extra={"stream": self._stream, "group": group, "start_id": start_id},
        )
        return True

    async def append(self, record: dict[str, str], max_length: int | None = None) -> str:
        with _backend_errors("XADD"):
            entry_id = await self._client.xadd(
                self._stream,
                record,
                maxlen=max_length,
                approximate=True,
            )
        return _text(entry_id)

    async def read_new(
        self,
        group: str,
        consumer: str,
        count: int = 1,
        block_ms: int = 0,
        no_ack: bool = False,
    ) -> list[StreamEntry]:
        # BLOCK 0 waits forever in Redis; omit BLOCK for a non-blocking read
        block = block_ms if block_ms > 0 else None

        with _backend_errors("XREADGROUP", group=group):
            response = await self._client.xreadgroup(
                group,
                consumer,
                {self._stream: ">"},
                count=count,
                block=block,
                noack=no_ack,
            )
        return _parse_read_response(response)

    async def acknowledge(self, group: str, entry_id: str) -> bool:
        with _backend_errors("XACK", group=group):
            acked = await self._client.xack(self._stream, group, entry_id)
        return int(acked) > 0

    async def list_pending(
        self,
        group: str,
        start: str = PENDING_RANGE_MIN,
        end: str = PENDING_RANGE_MAX,
        count: int = 10,
        consumer: str | None = None,
    ) -> list[PendingEntry]:
        try:
            with _backend_errors("XPENDING", group=group):
                rows = await self._client.xpending_range(
                    self._stream,
                    group,
                    min=start,
                    max=end,
                    count=count,
                    consumername=consumer,
                )
        except GroupNotFound:
            return []

        return [
            PendingEntry(
                entry_id=_text(row["message_id"]),
                consumer=_text(row["consumer"]),
                idle_ms=int(row["time_since_delivered"]),
                delivery_count=int(row["times_delivered"]),
            )
            for row in rows or []
        ]

    async def claim(
        self,
        group: str,
        consumer: str,
        min_idle_ms: int,
        entry_ids: Sequence[str],
    ) -> list[StreamEntry]:
        if not entry_ids:
            return []

        with _backend_errors("XCLAIM", group=group):
            messages = await self._client.xclaim(
                self._stream,
                group,
                consumer,
                min_idle_time=min_idle_ms,
                message_ids=list(entry_ids),
            )
        return _parse_entries(messages)

    async def length(self) -> int:
        with _backend_errors("XLEN"):
            return int(await self._client.xlen(self._stream))

    async def pending_summary(self, group: str) -> int:
        try:
            with _backend_errors("XPENDING", group=group):
                summary = await self._client.xpending(self._stream, group)
        except GroupNotFound:
            return 0

        if not summary:
            return 0
        return int(summary.get("pending") or 0)

    async def trim(self, max_length: int, approximate: bool = True) -> int:
        with _backend_errors("XTRIM"):
            removed = await self._client.xtrim(
                self._stream, maxlen=max_length, approximate=approximate
            )
        return int(removed)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (RedisConnectionError, RedisTimeoutError):
            return False

    async def close(self) -> None:
        await self._client.aclose()

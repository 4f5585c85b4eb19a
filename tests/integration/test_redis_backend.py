"""
Integration tests against a live Redis server.

Skipped unless Redis is reachable at TEST_REDIS_URL.
"""

import asyncio
import os
from collections.abc import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
import redis.asyncio as redis
from prometheus_client import CollectorRegistry
from redis.exceptions import ConnectionError as RedisConnectionError

from stream_queue.backend.redis_stream import RedisStreamBackend
from stream_queue.core.engine import StreamQueue
from stream_queue.core.reclaim import ReclaimPolicy
from stream_queue.errors import MalformedRecord
from stream_queue.observability.metrics import MetricsCollector

TEST_REDIS_URL = os.getenv("TEST_REDIS_URL", "redis://localhost:6379/15")
MIN_IDLE_MS = 50


@pytest_asyncio.fixture
async def redis_backend() -> AsyncGenerator[RedisStreamBackend]:
    """Backend on a throwaway stream key, deleted after the test."""
    client = redis.Redis.from_url(TEST_REDIS_URL, decode_responses=True)
    try:
        await client.ping()
    except (RedisConnectionError, OSError):
        await client.aclose()
        pytest.skip(f"Redis not reachable at {TEST_REDIS_URL}")

    stream = f"test-stream-{uuid4().hex[:8]}"
    backend = RedisStreamBackend(client, stream)

    yield backend

    await client.delete(stream)
    await backend.close()


@pytest_asyncio.fixture
async def redis_queue(redis_backend: RedisStreamBackend) -> StreamQueue:
    queue = StreamQueue(
        redis_backend,
        "test_group",
        reclaim_policy=ReclaimPolicy(min_idle_ms=MIN_IDLE_MS),
        metrics=MetricsCollector(registry=CollectorRegistry()),
    )
    await queue.initialize()
    return queue


class TestRedisStreamQueue:
    """End-to-end queue behavior on Redis Streams."""

    @pytest.mark.asyncio
    async def test_initialize_idempotent(self, redis_queue: StreamQueue):
        assert await redis_queue.initialize() is False

    @pytest.mark.asyncio
    async def test_fifo_scenario(self, redis_queue: StreamQueue):
        for payload, priority in [("critical", 1), ("important", 2), ("normal", 3), ("low", 4)]:
            await redis_queue.enqueue(payload, priority)

        received = [
            (await redis_queue.receive_and_complete("c1", 0)).payload for _ in range(4)
        ]

        assert received == ["critical", "important", "normal", "low"]
        stats = await redis_queue.stats()
        assert stats.total_entries == 4
        assert stats.pending_count == 0

    @pytest.mark.asyncio
    async def test_non_blocking_on_empty_group(self, redis_queue: StreamQueue):
        item = await asyncio.wait_for(redis_queue.receive_and_complete("c1", 0), timeout=2)

        assert item is None

    @pytest.mark.asyncio
    async def test_blocking_read_times_out(self, redis_queue: StreamQueue):
        assert await redis_queue.receive_and_complete("c1", 50) is None

    @pytest.mark.asyncio
    async def test_disjoint_consumers(self, redis_queue: StreamQueue):
        for i in range(6):
            await redis_queue.enqueue(str(i), 0)

        items = await asyncio.gather(
            *(redis_queue.peek(f"c{i % 2}") for i in range(6))
        )

        assert len({item.entry_id for item in items}) == 6

    @pytest.mark.asyncio
    async def test_peek_then_reclaim(self, redis_queue: StreamQueue):
        """Test that a peeked entry is pending and reclaimable once idle."""
        entry_id = await redis_queue.enqueue("work", 1)

        await redis_queue.peek("dead")
        assert (await redis_queue.stats()).pending_count == 1
        assert await redis_queue.receive_and_complete_with_reclaim("c2") is None

        await asyncio.sleep(MIN_IDLE_MS * 2 / 1000)
        item = await redis_queue.receive_and_complete_with_reclaim("c2")

        assert item.entry_id == entry_id
        assert (await redis_queue.stats()).pending_count == 0

    @pytest.mark.asyncio
    async def test_reclaim_increments_delivery_count(
        self,
        redis_queue: StreamQueue,
        redis_backend: RedisStreamBackend,
    ):
        await redis_queue.enqueue("work", 1)
        await redis_queue.peek("dead")
        await asyncio.sleep(MIN_IDLE_MS * 2 / 1000)

        policy = ReclaimPolicy(min_idle_ms=MIN_IDLE_MS)
        assert len(await policy.claim_stalled(redis_backend, "test_group", "c2")) == 1
        assert await policy.claim_stalled(redis_backend, "test_group", "c3") == []

        [entry] = await redis_queue.pending()
        assert entry.consumer == "c2"
        assert entry.delivery_count == 2

    @pytest.mark.asyncio
    async def test_malformed_entry_left_pending(
        self,
        redis_queue: StreamQueue,
        redis_backend: RedisStreamBackend,
    ):
        await redis_backend.append({"item": "broken"})

        with pytest.raises(MalformedRecord):
            await redis_queue.receive_and_complete("c1", 0)

        assert (await redis_queue.stats()).pending_count == 1

    @pytest.mark.asyncio
    async def test_missing_group_has_nothing_pending(self, redis_backend: RedisStreamBackend):
        await redis_backend.append({"item": "x", "priority": "0", "created": "1"})

        assert await redis_backend.pending_summary("absent") == 0
        assert await redis_backend.list_pending("absent") == []

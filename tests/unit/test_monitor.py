"""
Unit tests for the queue monitor.
"""

import asyncio

from prometheus_client import CollectorRegistry

from stream_queue.core.engine import StreamQueue
from stream_queue.monitor.main import QueueMonitor
from tests.conftest import TEST_GROUP, TEST_MIN_IDLE_MS, TEST_STREAM, FakeClock


class TestQueueMonitor:
    """Tests for QueueMonitor."""

    async def test_empty_queue(self, queue: StreamQueue):
        report = await QueueMonitor(queue, interval_seconds=1).run_once()

        assert report.stats.total_entries == 0
        assert report.stats.pending_count == 0
        assert report.stalled == []

    async def test_reports_stalled_entries(self, queue: StreamQueue, clock: FakeClock):
        """Test that only entries idle past the reclaim threshold are reported."""
        stalled_id = await queue.enqueue("stalled", 0)
        await queue.peek("dead")
        clock.advance_ms(TEST_MIN_IDLE_MS)
        await queue.enqueue("recent", 0)
        await queue.peek("alive")

        report = await QueueMonitor(queue, interval_seconds=1).run_once()

        assert report.stats.pending_count == 2
        assert [entry.entry_id for entry in report.stalled] == [stalled_id]
        assert report.stalled[0].consumer == "dead"

    async def test_updates_gauges(self, queue: StreamQueue, registry: CollectorRegistry):
        await queue.enqueue("a", 0)
        await queue.peek("c1")

        await QueueMonitor(queue, interval_seconds=1).run_once()

        assert registry.get_sample_value("queue_stream_length", {"stream": TEST_STREAM}) == 1
        assert registry.get_sample_value(
            "queue_pending_entries", {"stream": TEST_STREAM, "group": TEST_GROUP}
        ) == 1

    async def test_start_and_stop(self, queue: StreamQueue):
        monitor = QueueMonitor(queue, interval_seconds=0.01)

        task = asyncio.create_task(monitor.start())
        await asyncio.sleep(0.05)
        await monitor.stop()

        await asyncio.wait_for(task, timeout=1)

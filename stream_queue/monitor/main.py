"""
Queue monitor for reporting backlog and stalled entries.

The monitor runs periodically to read the stream length and the group's
pending list, publish them as gauges and warn about entries idle past the
reclaim threshold. It never claims entries itself: recovery stays with
consumers calling the reclaim-aware dequeue.
"""

import asyncio
import logging
import signal
from dataclasses import dataclass, field

from stream_queue.backend import close_backend, get_backend, init_backend
from stream_queue.config import get_settings
from stream_queue.core.engine import StreamQueue
from stream_queue.errors import BackendUnavailable
from stream_queue.observability.logging import setup_logging
from stream_queue.observability.metrics import setup_metrics
from stream_queue.types.queue import PendingEntry, QueueStats

logger = logging.getLogger(__name__)


@dataclass
class MonitorReport:
    """Result of one monitor pass."""

    stats: QueueStats
    stalled: list[PendingEntry] = field(default_factory=list)


class QueueMonitor:
    """
    Periodic queue monitor.

    Each pass:
    1. Reads queue stats, which also refreshes the length and pending gauges
    2. Pages through the oldest pending entries
    3. Logs a warning for every entry idle past the reclaim threshold
    """

    def __init__(
        self,
        queue: StreamQueue,
        interval_seconds: float | None = None,
        page_size: int | None = None,
    ):
        """
        Initialize the monitor.

        Args:
            queue: Queue to observe.
            interval_seconds: Seconds between passes.
            page_size: Pending entries inspected per pass.
        """
        settings = get_settings()
        self.queue = queue
        self.interval = interval_seconds or settings.monitor_interval_seconds
        self.page_size = page_size or settings.monitor_pending_page_size
        self._running = False

    async def start(self) -> None:
        """Start the monitor loop."""
        logger.info(f"Monitor starting with interval {self.interval}s")
        self._running = True

        while self._running:
            try:
                await self.run_once()
            except BackendUnavailable as e:
                logger.error(f"Backend unavailable: {e}")

            await asyncio.sleep(self.interval)

        logger.info("Monitor stopped")

    async def stop(self) -> None:
        """Stop the monitor."""
        logger.info("Monitor stopping")
        self._running = False

    async def run_once(self) -> MonitorReport:
        """
        Run one monitor pass (for testing or cron-style execution).

        Returns:
            The stats and stalled entries seen in this pass.
        """
        stats = await self.queue.stats()
        report = MonitorReport(stats=stats)

        if stats.pending_count == 0:
            return report

        min_idle_ms = self.queue.reclaim_policy.min_idle_ms
        pending = await self.queue.pending(count=self.page_size)
        report.stalled = [entry for entry in pending if entry.is_idle(min_idle_ms)]

        for entry in report.stalled:
            logger.warning(
                "Stalled entry awaiting reclaim",
                extra={
                    "entry_id": entry.entry_id,
                    "consumer": entry.consumer,
                    "idle_ms": entry.idle_ms,
                    "delivery_count": entry.delivery_count,
                },
            )

        logger.info(
            "Queue state",
            extra={
                "total_entries": stats.total_entries,
                "pending_count": stats.pending_count,
                "stalled": len(report.stalled),
            },
        )
        return report


async def run_async() -> None:
    """Run the monitor asynchronously."""
    setup_logging()
    setup_metrics()
    await init_backend()

    monitor = QueueMonitor(StreamQueue.from_settings(get_backend()))

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(monitor.stop())
        )

    try:
        await monitor.start()
    finally:
        await close_backend()


def run() -> None:
    """Run the monitor."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()

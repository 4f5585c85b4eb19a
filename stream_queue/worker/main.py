"""
Worker process for completing queued items.

Each loop iteration first tries to reclaim an entry stranded by a
stalled consumer, then falls back to reading a new one. The consumer
name is stable for the life of the process so entries it leaves pending
can be attributed to it.
"""

import asyncio
import logging
import os
import signal

from stream_queue.backend import close_backend, get_backend, init_backend
from stream_queue.config import get_settings
from stream_queue.core.engine import StreamQueue
from stream_queue.errors import AckFailed, BackendUnavailable, MalformedRecord
from stream_queue.observability.logging import bind_consumer, clear_context, setup_logging
from stream_queue.observability.metrics import setup_metrics
from stream_queue.observability.tracing import setup_tracing
from stream_queue.worker.handlers import ItemHandler, get_handler

logger = logging.getLogger(__name__)


def default_consumer_name() -> str:
    """Consumer name unique to this host and process."""
    return f"{os.uname().nodename}-{os.getpid()}"


class Worker:
    """
    Queue consumer that completes one item per iteration.

    Errors from a single iteration are logged and the loop carries on:
    a malformed entry or a failing handler leaves its entry pending, and
    a backend outage is retried after the poll interval.
    """

    def __init__(
        self,
        queue: StreamQueue,
        consumer_name: str | None = None,
        poll_interval: float | None = None,
    ):
        """
        Initialize the worker.

        Args:
            queue: Queue whose item hook does the actual work.
            consumer_name: Consumer name within the group. Defaults to hostname + PID.
            poll_interval: Seconds to wait when nothing was available.
        """
        settings = get_settings()

        self.queue = queue
        self.consumer_name = (
            consumer_name or settings.worker_consumer_name or default_consumer_name()
        )
        self.poll_interval = (
            poll_interval if poll_interval is not None
            else settings.worker_poll_interval_seconds
        )

        self.processed = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Run the polling loop until stopped."""
        bind_consumer(self.consumer_name)
        logger.info(
            "Worker starting",
            extra={"consumer": self.consumer_name, "group": self.queue.group},
        )

        await self.queue.initialize()
        self._running = True

        while self._running:
            handled = await self.run_once()
            if not handled and self._running:
                await asyncio.sleep(self.poll_interval)

        logger.info(
            "Worker stopped",
            extra={"consumer": self.consumer_name, "processed": self.processed},
        )
        clear_context()

    async def stop(self) -> None:
        """Stop the worker after the current iteration."""
        logger.info("Worker stopping", extra={"consumer": self.consumer_name})
        self._running = False

    async def run_once(self) -> bool:
        """
        Complete at most one item.

        Returns:
            True if an item was completed.
        """
        try:
            item = await self.queue.receive_and_complete_with_reclaim(self.consumer_name)
        except MalformedRecord as e:
            logger.error(
                f"Skipping malformed entry: {e.reason}",
                extra={"entry_id": e.entry_id},
            )
            return False
        except AckFailed as e:
            logger.warning(
                "Item processed but not acknowledged",
                extra={"entry_id": e.entry_id},
            )
            return False
        except BackendUnavailable as e:
            logger.error(f"Backend unavailable: {e}")
            return False
        except Exception as e:
            logger.exception(
                f"Item handler failed: {e}",
                extra={"consumer": self.consumer_name},
            )
            return False

        if item is None:
            return False

        self.processed += 1
        return True


def build_worker(handler: ItemHandler | None = None) -> Worker:
    """Build a worker over the process-wide backend from settings."""
    settings = get_settings()
    handler = handler or get_handler(settings.worker_handler)
    queue = StreamQueue.from_settings(get_backend(), settings, on_item=handler)
    return Worker(queue)


async def run_async() -> None:
    """Run the worker asynchronously."""
    setup_logging()
    setup_metrics()
    setup_tracing()
    await init_backend()

    worker = build_worker()

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(worker.stop())
        )

    try:
        await worker.start()
    finally:
        await close_backend()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()

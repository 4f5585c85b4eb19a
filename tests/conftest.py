"""
Pytest configuration and shared fixtures.
"""

import os
from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from prometheus_client import CollectorRegistry

# Keep the suite off Redis and off the OTLP collector unless a test opts in
os.environ["BACKEND"] = "memory"
os.environ["TRACING_ENABLED"] = "false"

from stream_queue.api.main import create_app  # noqa: E402
from stream_queue.backend import close_backend, init_backend  # noqa: E402
from stream_queue.backend.memory import InMemoryLogBackend  # noqa: E402
from stream_queue.config import Settings, get_settings  # noqa: E402
from stream_queue.core.engine import StreamQueue  # noqa: E402
from stream_queue.core.reclaim import ReclaimPolicy  # noqa: E402
from stream_queue.observability.metrics import MetricsCollector  # noqa: E402

TEST_STREAM = "test_stream"
TEST_GROUP = "test_group"
TEST_MIN_IDLE_MS = 1_000


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: int) -> None:
        self.now += ms / 1000


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None]:
    """Rebuild settings from the environment for every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        backend="memory",
        stream_name=TEST_STREAM,
        group_name=TEST_GROUP,
        reclaim_min_idle_ms=TEST_MIN_IDLE_MS,
        tracing_enabled=False,
        log_level="DEBUG",
        log_format="console",
        worker_poll_interval_seconds=0.01,
        monitor_interval_seconds=0.01,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend(clock: FakeClock) -> InMemoryLogBackend:
    """In-memory backend driven by the fake clock."""
    return InMemoryLogBackend(TEST_STREAM, clock=clock)


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> MetricsCollector:
    """Metrics collector on an isolated registry."""
    return MetricsCollector(registry=registry)


@pytest_asyncio.fixture
async def queue(backend: InMemoryLogBackend, metrics: MetricsCollector) -> StreamQueue:
    """Initialized queue over the in-memory backend."""
    queue = StreamQueue(
        backend,
        TEST_GROUP,
        reclaim_policy=ReclaimPolicy(min_idle_ms=TEST_MIN_IDLE_MS),
        metrics=metrics,
    )
    await queue.initialize()
    return queue


@pytest_asyncio.fixture
async def app(clock: FakeClock, monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[FastAPI]:
    """Create a FastAPI app wired to an in-memory backend."""
    monkeypatch.setenv("STREAM_NAME", TEST_STREAM)
    monkeypatch.setenv("GROUP_NAME", TEST_GROUP)
    monkeypatch.setenv("RECLAIM_MIN_IDLE_MS", str(TEST_MIN_IDLE_MS))
    monkeypatch.setenv("DEQUEUE_BLOCK_MS", "20")
    get_settings.cache_clear()

    backend = InMemoryLogBackend(TEST_STREAM, clock=clock)
    await init_backend(backend)
    await StreamQueue.from_settings(backend).initialize()

    yield create_app()

    await close_backend()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

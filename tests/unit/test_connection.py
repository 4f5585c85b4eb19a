"""
Unit tests for backend lifecycle helpers.
"""

import pytest

from stream_queue.backend import (
    InMemoryLogBackend,
    RedisStreamBackend,
    close_backend,
    create_backend,
    get_backend,
    init_backend,
)
from stream_queue.config import Settings


class TestBackendLifecycle:
    """Tests for create_backend / init_backend / get_backend."""

    def test_create_memory_backend(self):
        backend = create_backend(Settings(backend="memory", stream_name="s1"))

        assert isinstance(backend, InMemoryLogBackend)
        assert backend.stream == "s1"

    async def test_create_redis_backend(self):
        """Test that the Redis client is built lazily, without connecting."""
        backend = create_backend(
            Settings(backend="redis", redis_url="redis://localhost:6399/0", stream_name="s1")
        )

        assert isinstance(backend, RedisStreamBackend)
        assert backend.stream == "s1"
        await backend.close()

    def test_get_backend_before_init(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            get_backend()

    async def test_init_and_close(self):
        backend = InMemoryLogBackend("s1")

        assert await init_backend(backend) is backend
        assert get_backend() is backend

        await close_backend()

        with pytest.raises(RuntimeError):
            get_backend()

    async def test_init_from_settings(self):
        """Test that init_backend builds from settings when given no backend."""
        backend = await init_backend()
        try:
            assert backend.name == "memory"
        finally:
            await close_backend()

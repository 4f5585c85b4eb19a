"""
Log backend lifecycle.
Creates the configured backend once per process and hands it out to the
API, worker and monitor.
"""

import logging

import redis.asyncio as redis

from stream_queue.backend.base import LogBackend
from stream_queue.backend.memory import InMemoryLogBackend
from stream_queue.backend.redis_stream import RedisStreamBackend
from stream_queue.config import Settings, get_settings
from stream_queue.observability.tracing import instrument_redis

logger = logging.getLogger(__name__)

# Global backend instance
_backend: LogBackend | None = None


def create_backend(settings: Settings | None = None) -> LogBackend:
    """
    Build a backend from settings without registering it globally.

    Args:
        settings: Settings to use. Defaults to the cached settings.

    Returns:
        LogBackend: The backend bound to ``settings.stream_name``.

    Raises:
        ValueError: If the backend kind is not supported.
    """
    settings = settings or get_settings()

    if settings.backend == "redis":
        client = redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=settings.redis_socket_timeout_seconds,
        )
        return RedisStreamBackend(client, settings.stream_name)

    if settings.backend == "memory":
        return InMemoryLogBackend(settings.stream_name)

    raise ValueError(
        f"Unsupported backend: {settings.backend}. Must be 'redis' or 'memory'"
    )


async def init_backend(backend: LogBackend | None = None) -> LogBackend:
    """
    Initialize the process-wide backend.
    Should be called on application startup.

    Args:
        backend: Use this backend instead of building one from settings.

    Returns:
        LogBackend: The registered backend.
    """
    global _backend
    settings = get_settings()

    if backend is None:
        if settings.backend == "redis" and settings.tracing_enabled:
            instrument_redis()
        backend = create_backend(settings)

    _backend = backend
    logger.info(
        "Log backend initialized",
        extra={"backend": backend.name, "stream": backend.stream},
    )
    return backend


async def close_backend() -> None:
    """
    Close the process-wide backend.
    Should be called on application shutdown.
    """
    global _backend
    if _backend is not None:
        await _backend.close()
        _backend = None
        logger.info("Log backend closed")


def get_backend() -> LogBackend:
    """
    Get the process-wide backend.

    Returns:
        LogBackend: The registered backend.

    Raises:
        RuntimeError: If the backend is not initialized.
    """
    if _backend is None:
        raise RuntimeError("Backend not initialized. Call init_backend() first.")
    return _backend

"""
Log backend module.
Contains the backend contract, its Redis Streams and in-memory
implementations, and process-wide lifecycle helpers.
"""

from stream_queue.backend.base import LogBackend
from stream_queue.backend.connection import (
    close_backend,
    create_backend,
    get_backend,
    init_backend,
)
from stream_queue.backend.memory import InMemoryLogBackend
from stream_queue.backend.redis_stream import RedisStreamBackend

__all__ = [
    "LogBackend",
    "InMemoryLogBackend",
    "RedisStreamBackend",
    "create_backend",
    "init_backend",
    "close_backend",
    "get_backend",
]

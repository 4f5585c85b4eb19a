"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from stream_queue.constants import (
    DEFAULT_DEQUEUE_BLOCK_MS,
    DEFAULT_GROUP_NAME,
    DEFAULT_RECLAIM_MIN_IDLE_MS,
    DEFAULT_RECLAIM_PAGE_SIZE,
    DEFAULT_STREAM_NAME,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Log backend
    backend: Literal["redis", "memory"] = "redis"
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout_seconds: float | None = None
    stream_name: str = DEFAULT_STREAM_NAME
    group_name: str = DEFAULT_GROUP_NAME
    stream_max_length: int | None = None

    # Queue engine
    reclaim_min_idle_ms: int = DEFAULT_RECLAIM_MIN_IDLE_MS
    reclaim_page_size: int = DEFAULT_RECLAIM_PAGE_SIZE
    reclaim_block_ms: int = 0
    dequeue_block_ms: int = DEFAULT_DEQUEUE_BLOCK_MS
    ack_malformed_entries: bool = False

    # Worker Configuration
    worker_consumer_name: str | None = None
    worker_handler: str = "log"
    worker_poll_interval_seconds: float = 1.0

    # Monitor Configuration
    monitor_interval_seconds: float = 10.0
    monitor_pending_page_size: int = 100

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Observability
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "stream-queue"
    tracing_enabled: bool = True
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""
Unit tests for settings.
"""

import pytest
from pydantic import ValidationError

from stream_queue.config import Settings, get_settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("BACKEND", raising=False)
        monkeypatch.delenv("TRACING_ENABLED", raising=False)

        settings = Settings(_env_file=None)

        assert settings.backend == "redis"
        assert settings.stream_name == "my_priority_stream"
        assert settings.group_name == "worker_group"
        assert settings.reclaim_min_idle_ms == 30_000
        assert settings.reclaim_page_size == 10
        assert settings.reclaim_block_ms == 0
        assert settings.stream_max_length is None
        assert settings.ack_malformed_entries is False

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("STREAM_NAME", "jobs")
        monkeypatch.setenv("RECLAIM_MIN_IDLE_MS", "500")
        monkeypatch.setenv("ACK_MALFORMED_ENTRIES", "true")

        settings = Settings(_env_file=None)

        assert settings.stream_name == "jobs"
        assert settings.reclaim_min_idle_ms == 500
        assert settings.ack_malformed_entries is True

    def test_rejects_unknown_backend(self):
        with pytest.raises(ValidationError):
            Settings(backend="kafka")

    def test_cached(self):
        assert get_settings() is get_settings()

"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from stream_queue.observability.logging import (
    bind_consumer,
    clear_context,
    setup_logging,
)
from stream_queue.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from stream_queue.observability.tracing import (
    get_tracer,
    instrument_redis,
    setup_tracing,
)

__all__ = [
    "setup_logging",
    "clear_context",
    "bind_consumer",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
    "instrument_redis",
]

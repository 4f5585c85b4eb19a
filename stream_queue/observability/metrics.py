"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from stream_queue.constants import (
    METRIC_ACK_FAILURES,
    METRIC_DEQUEUE_LATENCY,
    METRIC_ENTRIES_COMPLETED,
    METRIC_ENTRIES_ENQUEUED,
    METRIC_ENTRIES_PEEKED,
    METRIC_ENTRIES_RECLAIMED,
    METRIC_MALFORMED_ENTRIES,
    METRIC_PENDING_ENTRIES,
    METRIC_STREAM_LENGTH,
    EntrySource,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the stream queue.

    Collects metrics for:
    - Enqueued, completed, peeked and reclaimed entries
    - Malformed entries and acknowledgement failures
    - Stream length and pending-entry count
    - Receive latency
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.entries_enqueued = Counter(
            METRIC_ENTRIES_ENQUEUED,
            "Total number of entries appended to the stream",
            ["stream"],
            registry=self._registry,
        )

        # source is "new" or "reclaimed"
        self.entries_completed = Counter(
            METRIC_ENTRIES_COMPLETED,
            "Total number of entries received, processed and acknowledged",
            ["stream", "consumer", "source"],
            registry=self._registry,
        )

        self.entries_peeked = Counter(
            METRIC_ENTRIES_PEEKED,
            "Total number of entries delivered by peek and left pending",
            ["stream", "consumer"],
            registry=self._registry,
        )

        self.entries_reclaimed = Counter(
            METRIC_ENTRIES_RECLAIMED,
            "Total number of stalled entries claimed from another consumer",
            ["stream", "consumer"],
            registry=self._registry,
        )

        self.malformed_entries = Counter(
            METRIC_MALFORMED_ENTRIES,
            "Total number of entries that failed to decode",
            ["stream"],
            registry=self._registry,
        )

        self.ack_failures = Counter(
            METRIC_ACK_FAILURES,
            "Total number of failed acknowledgements after processing",
            ["stream"],
            registry=self._registry,
        )

        self.stream_length = Gauge(
            METRIC_STREAM_LENGTH,
            "Number of entries in the stream",
            ["stream"],
            registry=self._registry,
        )

        self.pending_entries = Gauge(
            METRIC_PENDING_ENTRIES,
            "Number of delivered but unacknowledged entries",
            ["stream", "group"],
            registry=self._registry,
        )

        self.dequeue_latency = Histogram(
            METRIC_DEQUEUE_LATENCY,
            "Time spent in receive-and-complete, including blocking",
            ["stream"],
            buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=self._registry,
        )

    def record_enqueued(self, stream: str) -> None:
        """Record an appended entry."""
        self.entries_enqueued.labels(stream=stream).inc()

    def record_completed(
        self,
        stream: str,
        consumer: str,
        source: EntrySource,
    ) -> None:
        """Record an entry processed and acknowledged."""
        self.entries_completed.labels(
            stream=stream, consumer=consumer, source=source.value
        ).inc()

    def record_peeked(self, stream: str, consumer: str) -> None:
        """Record an entry left pending by peek."""
        self.entries_peeked.labels(stream=stream, consumer=consumer).inc()

    def record_reclaimed(self, stream: str, consumer: str, count: int = 1) -> None:
        """Record entries claimed from stalled consumers."""
        self.entries_reclaimed.labels(stream=stream, consumer=consumer).inc(count)

    def record_malformed(self, stream: str) -> None:
        """Record an entry that failed to decode."""
        self.malformed_entries.labels(stream=stream).inc()

    def record_ack_failure(self, stream: str) -> None:
        """Record a failed acknowledgement."""
        self.ack_failures.labels(stream=stream).inc()

    def observe_dequeue(self, stream: str, duration_seconds: float) -> None:
        """Record time spent in one receive-and-complete call."""
        self.dequeue_latency.labels(stream=stream).observe(duration_seconds)

    def update_queue_state(
        self,
        stream: str,
        group: str,
        total_entries: int,
        pending_count: int,
    ) -> None:
        """Update stream length and pending-count gauges."""
        self.stream_length.labels(stream=stream).set(total_entries)
        self.pending_entries.labels(stream=stream, group=group).set(pending_count)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics

"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class EntrySource(StrEnum):
    """
    Where a completed entry came from.

    - NEW: first delivery of an unclaimed entry
    - RECLAIMED: ownership transferred from a stalled consumer
    """

    NEW = "new"
    RECLAIMED = "reclaimed"


# Record field names. These are the persisted layout of every stream entry
# and must not change.
FIELD_ITEM = "item"
FIELD_PRIORITY = "priority"
FIELD_CREATED = "created"
REQUIRED_FIELDS = (FIELD_ITEM, FIELD_PRIORITY, FIELD_CREATED)

# Consumer group start positions
GROUP_START_BEGINNING = "0"
GROUP_START_LATEST = "$"

# Pending-list id range bounds
PENDING_RANGE_MIN = "-"
PENDING_RANGE_MAX = "+"

# Default values
DEFAULT_STREAM_NAME = "my_priority_stream"
DEFAULT_GROUP_NAME = "worker_group"
DEFAULT_RECLAIM_MIN_IDLE_MS = 30_000
DEFAULT_RECLAIM_PAGE_SIZE = 10
DEFAULT_DEQUEUE_BLOCK_MS = 5_000

# Redis error prefixes treated as non-errors
REDIS_BUSYGROUP = "BUSYGROUP"
REDIS_NOGROUP = "NOGROUP"

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_ENTRIES_ENQUEUED = "queue_entries_enqueued_total"
METRIC_ENTRIES_COMPLETED = "queue_entries_completed_total"
METRIC_ENTRIES_PEEKED = "queue_entries_peeked_total"
METRIC_ENTRIES_RECLAIMED = "queue_entries_reclaimed_total"
METRIC_MALFORMED_ENTRIES = "queue_malformed_entries_total"
METRIC_ACK_FAILURES = "queue_ack_failures_total"
METRIC_STREAM_LENGTH = "queue_stream_length"
METRIC_PENDING_ENTRIES = "queue_pending_entries"
METRIC_DEQUEUE_LATENCY = "queue_dequeue_latency_seconds"

# Trace span names
SPAN_ENQUEUE = "enqueue"
SPAN_RECEIVE_AND_COMPLETE = "receive_and_complete"
SPAN_PEEK = "peek"
SPAN_RECLAIM = "reclaim"
SPAN_ACKNOWLEDGE = "acknowledge"

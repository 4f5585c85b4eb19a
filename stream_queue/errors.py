"""
Queue error taxonomy.

An empty queue is not an error: dequeue, peek and reclaim return ``None``
for "nothing to do right now".
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stream_queue.types.queue import QueueItem


class QueueError(Exception):
    """Base class for all queue errors."""


class MalformedRecord(QueueError):
    """
    A stream record lacked a required field or carried an unparsable value.

    The entry is left pending unless the caller explicitly asks for
    malformed entries to be acknowledged.
    """

    def __init__(self, reason: str, entry_id: str | None = None):
        self.reason = reason
        self.entry_id = entry_id
        message = f"Malformed record: {reason}"
        if entry_id is not None:
            message = f"Malformed record {entry_id}: {reason}"
        super().__init__(message)


class BackendUnavailable(QueueError):
    """The log backend could not be reached. Not retried by the queue."""


class AckFailed(QueueError):
    """
    Acknowledgement failed after the item was processed.

    The entry stays pending and may be delivered again.
    """

    def __init__(self, entry_id: str, item: "QueueItem | None" = None):
        self.entry_id = entry_id
        self.item = item
        super().__init__(f"Failed to acknowledge entry {entry_id}")


class GroupNotFound(QueueError):
    """The consumer group does not exist on the log."""

    def __init__(self, group: str):
        self.group = group
        super().__init__(f"Consumer group '{group}' does not exist")

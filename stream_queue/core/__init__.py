"""
Queue core.
Contains the queue engine and the stalled-entry reclaim policy.
"""

from stream_queue.core.engine import ItemHook, StreamQueue
from stream_queue.core.reclaim import ReclaimPolicy

__all__ = ["ItemHook", "ReclaimPolicy", "StreamQueue"]

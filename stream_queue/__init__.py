"""
Stream Queue

A work queue on Redis Streams consumer groups: producers append prioritized
items to an append-only log, consumers receive and complete them, and
entries stranded by a stalled consumer are reclaimed after an idle
threshold.
"""

__version__ = "1.0.0"

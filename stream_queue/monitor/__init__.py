"""
Monitor module.
Contains the periodic queue monitor that reports backlog and stalled entries.
"""

from stream_queue.monitor.main import MonitorReport, QueueMonitor, run

__all__ = ["MonitorReport", "QueueMonitor", "run"]

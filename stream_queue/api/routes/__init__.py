"""
API routes module.
"""

from stream_queue.api.routes.health import router as health_router
from stream_queue.api.routes.queue import router as queue_router

__all__ = ["health_router", "queue_router"]

"""
Item handler registry and implementations.

Handlers run before an entry is acknowledged, so an entry whose handler
raises stays pending and is delivered again after reclaim. Handlers must
therefore be idempotent.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable

from stream_queue.types.queue import QueueItem

logger = logging.getLogger(__name__)

# Type alias for item handler functions
ItemHandler = Callable[[QueueItem], Awaitable[None]]

# Handler registry
_handlers: dict[str, ItemHandler] = {}


class HandlerNotFound(LookupError):
    """No handler is registered under the requested name."""


def register_handler(name: str) -> Callable[[ItemHandler], ItemHandler]:
    """
    Decorator to register an item handler.

    Args:
        name: Name the worker selects the handler by.

    Returns:
        Decorator function.

    Example:
        @register_handler("resize_image")
        async def handle_resize(item: QueueItem) -> None:
            ...
    """
    def decorator(handler: ItemHandler) -> ItemHandler:
        _handlers[name] = handler
        logger.debug(f"Registered item handler: {name}")
        return handler
    return decorator


def get_handler(name: str) -> ItemHandler:
    """
    Get a handler by name.

    Raises:
        HandlerNotFound: If no handler is registered under ``name``.
    """
    try:
        return _handlers[name]
    except KeyError:
        raise HandlerNotFound(
            f"No item handler named '{name}'. Available: {', '.join(list_handlers())}"
        ) from None


def list_handlers() -> list[str]:
    """List all registered handler names."""
    return sorted(_handlers)


# ============================================================================
# Built-in item handlers
# ============================================================================


@register_handler("log")
async def handle_log(item: QueueItem) -> None:
    """Log the item and do nothing else."""
    logger.info(
        "Handled item",
        extra={
            "entry_id": item.entry_id,
            "priority": item.priority,
            "payload_size": len(item.payload),
        },
    )


@register_handler("sleep")
async def handle_sleep(item: QueueItem) -> None:
    """
    Sleep for a while, for exercising reclaim with slow consumers.

    The payload is a JSON object with ``duration_seconds``, or a bare
    number of seconds. Anything else sleeps for one second.
    """
    duration = _sleep_duration(item.payload)

    logger.info(
        "Sleep item starting",
        extra={"entry_id": item.entry_id, "duration": duration},
    )
    await asyncio.sleep(duration)


@register_handler("fail")
async def handle_fail(item: QueueItem) -> None:
    """Always raise, leaving the entry pending for reclaim."""
    raise RuntimeError(f"Intentional failure for entry {item.entry_id}")


def _sleep_duration(payload: str) -> float:
    try:
        data = json.loads(payload)
    except ValueError:
        return 1.0

    if isinstance(data, dict):
        data = data.get("duration_seconds", 1.0)
    if isinstance(data, bool) or not isinstance(data, (int, float)):
        return 1.0
    return max(float(data), 0.0)

"""In-process fan-out of price change events to their handlers."""

import logging
from typing import Awaitable, Callable

from wishes_tracer import metrics
from wishes_tracer.notify.events import PriceChangedEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[PriceChangedEvent], Awaitable[None]]


class EventPublisher:
    """
    Delivers each event to every subscribed handler.

    ``publish`` never raises: a failing handler is logged and counted, and
    the remaining handlers still run.
    """

    def __init__(self):
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    async def publish(self, event: PriceChangedEvent) -> int:
        """
        Dispatch ``event``.

        Returns:
            Number of handlers that completed without error
        """
        delivered = 0
        for handler in self._handlers:
            name = getattr(handler, "__qualname__", type(handler).__name__)
            try:
                await handler(event)
                delivered += 1
            except Exception as e:
                metrics.record_event_handler_error(name)
                logger.error(
                    "Price change handler %s failed for product %s: %s",
                    name,
                    event.product_id,
                    e,
                    exc_info=True,
                )
        return delivered

    async def close(self) -> None:
        """Close handlers that hold connections."""
        for handler in self._handlers:
            owner = getattr(handler, "__self__", handler)
            close = getattr(owner, "close", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as e:
                logger.debug(f"Error closing event handler {owner!r}: {e}")

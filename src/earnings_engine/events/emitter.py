"""In-process publisher for earnings-affecting events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from earnings_engine.events.types import EarningsEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[EarningsEvent], None]


@dataclass
class HandlerRegistration:
    """Registration of an event handler."""

    handler: EventHandler
    event_types: set[str] | None  # None = all events


class EarningsEventBus:
    """Synchronous publish/subscribe for earnings events.

    Handlers are isolated - if one fails, others still receive the event.

    Usage:
        bus = EarningsEventBus()
        bus.subscribe(cache.handle_event)
        bus.publish(LeaveStatusChanged(user_id=user_id, status="approved"))
    """

    def __init__(self) -> None:
        self._handlers: list[HandlerRegistration] = []

    def subscribe(
        self,
        handler: EventHandler,
        event_types: list[type[EarningsEvent]] | None = None,
    ) -> None:
        """Register a handler, optionally filtered to specific event types."""
        types = {t.__name__ for t in event_types} if event_types else None
        self._handlers.append(HandlerRegistration(handler=handler, event_types=types))

    def unsubscribe(self, handler: EventHandler) -> None:
        self._handlers = [reg for reg in self._handlers if reg.handler != handler]

    def publish(self, event: EarningsEvent) -> list[Exception]:
        """Deliver an event to matching handlers.

        Returns list of any exceptions raised by handlers.
        """
        errors: list[Exception] = []
        for reg in self._handlers:
            if reg.event_types and event.event_type not in reg.event_types:
                continue
            try:
                reg.handler(event)
            except Exception as e:
                logger.exception(
                    "Handler %s failed for event %s",
                    reg.handler,
                    event.event_type,
                )
                errors.append(e)
        return errors

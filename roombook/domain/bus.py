"""Synchronous in-process bus for booking lifecycle events."""

from __future__ import annotations

from collections import defaultdict
from typing import Callable

from loguru import logger

from roombook.domain.events import BookingEvent

Handler = Callable[[BookingEvent], None]


class EventBus:
    """Dispatches each event to the handlers of its class and of its base classes.

    Handlers for the most specific class run first, each group in
    registration order. A handler error propagates to the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type[BookingEvent], list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type[BookingEvent], handler: Handler) -> None:
        self._subscribers[event_type].append(handler)

    def handlers_for(self, event_type: type[BookingEvent]) -> list[Handler]:
        handlers: list[Handler] = []
        for cls in event_type.__mro__:
            handlers.extend(self._subscribers.get(cls, ()))
        return handlers

    def publish(self, event: BookingEvent) -> None:
        handlers = self.handlers_for(type(event))
        logger.debug(
            "Publishing {} for booking {} to {} handler(s)",
            type(event).__name__,
            event.booking_id,
            len(handlers),
        )
        for handler in handlers:
            handler(event)

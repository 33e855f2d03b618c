"""Synchronous in-process bus for availability domain events."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Handler = Callable[[BaseModel], None]


class EventBus:
    """Publish/subscribe bus keyed by event class.

    Handlers run in registration order on the publishing thread, so by the
    time ``publish`` returns every timeline entry for the event exists.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type[BaseModel], list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type[BaseModel], handler: Handler) -> None:
        self._subscribers[event_type].append(handler)

    def publish(self, event: BaseModel) -> None:
        handlers = self._subscribers.get(type(event), [])
        logger.debug(
            "Publishing %s to %d handler(s)", type(event).__name__, len(handlers)
        )
        for handler in handlers:
            handler(event)

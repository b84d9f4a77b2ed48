"""
In-process publish/subscribe for period events.
"""

import threading
from typing import Callable, Dict, List, Optional, Type

from loguru import logger

from core.events.period_events import PeriodEvent

Subscriber = Callable[[PeriodEvent], None]


class PeriodEventBus:
    """Delivers events synchronously; a failing subscriber never reaches the publisher."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[Optional[Type[PeriodEvent]], List[Subscriber]] = {}

    def subscribe(
        self, handler: Subscriber, event_type: Optional[Type[PeriodEvent]] = None
    ) -> None:
        """Subscribe to one event type, or to every event when event_type is None."""
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(handler)

    def unsubscribe(
        self, handler: Subscriber, event_type: Optional[Type[PeriodEvent]] = None
    ) -> None:
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, event: PeriodEvent) -> int:
        """
        Deliver an event to its subscribers.

        Returns:
            Number of subscribers that handled the event without error
        """
        with self._lock:
            handlers = list(self._subscribers.get(type(event), []))
            handlers += self._subscribers.get(None, [])

        delivered = 0
        for handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Subscriber {getattr(handler, '__name__', handler)} failed "
                    f"on {event.event_type} for period {event.period_id}: {e}"
                )
        logger.debug(f"{event.event_type} delivered to {delivered}/{len(handlers)}")
        return delivered

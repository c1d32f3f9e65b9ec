"""
In-process publish/subscribe bus

Views and background jobs announce changes ("reservations updated",
"profile updated") without holding references to each other.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """Base class of everything published on the bus."""


@dataclass(frozen=True)
class ProfileUpdated(Event):
    user_id: str
    updates: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ReservationsUpdated(Event):
    pass


@dataclass(frozen=True)
class MenuUpdated(Event):
    pass


@dataclass(frozen=True)
class TopupsUpdated(Event):
    pass


@dataclass(frozen=True)
class UsersUpdated(Event):
    pass


@dataclass(frozen=True)
class NotificationsUpdated(Event):
    pass


class EventBus:
    """
    Event handlers are called synchronously in subscription order.
    A failing handler is logged and does not stop the others.
    """

    def __init__(self):
        self._handlers: Dict[Type[Event], List[Callable[[Event], None]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[Event], handler: Callable[[Event], None]) -> Callable[[], None]:
        """Register a handler; returns a callable that removes it again."""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed {getattr(handler, '__name__', handler)!s} to {event_type.__name__}")

        def unsubscribe():
            with self._lock:
                handlers = self._handlers.get(event_type, [])
                if handler in handlers:
                    handlers.remove(handler)

        return unsubscribe

    def publish(self, event: Event) -> None:
        with self._lock:
            handlers = list(self._handlers.get(type(event), []))
        if not handlers:
            logger.debug(f"No handlers for event {type(event).__name__}")
            return
        logger.info(f"Publishing event: {type(event).__name__}")
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in handler for {type(event).__name__}: {e}", exc_info=True)

    def handler_count(self, event_type: Type[Event]) -> int:
        with self._lock:
            return len(self._handlers.get(event_type, []))

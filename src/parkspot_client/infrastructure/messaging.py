# File: src/parkspot_client/infrastructure/messaging.py
"""
Messaging Infrastructure

1. EventBus - in-process publish/subscribe for session and booking events.
   The session manager announces expiry (with the redirect target) here.
2. NotificationPort - the live-update channel. The backend push server is not
   available, so NullNotificationPort (no-op) is the default. Nothing in the
   booking flow depends on delivery.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union
from uuid import uuid4


class EventType(str, Enum):
    SESSION_STARTED = "session.started"
    SESSION_ENDED = "session.ended"
    SESSION_EXPIRED = "session.expired"
    BOOKING_RESERVED = "booking.reserved"
    BOOKING_PAID = "booking.paid"
    BOOKING_ENDED = "booking.ended"
    BOOKING_CANCELLED = "booking.cancelled"


@dataclass(frozen=True)
class DomainEvent:
    event_type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)
    message_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)


# ============================================================================
# EVENT HANDLERS
# ============================================================================

class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    def handle(self, event: DomainEvent) -> None:
        """Handle a domain event"""
        pass

    def can_handle(self, event: DomainEvent) -> bool:
        """Check if this handler can handle the event"""
        return True


class CallbackHandler(EventHandler):
    """Adapts a plain callable to EventHandler"""

    def __init__(self, callback: Callable[[DomainEvent], None]):
        self.callback = callback

    def handle(self, event: DomainEvent) -> None:
        self.callback(event)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, CallbackHandler) and other.callback == self.callback

    def __hash__(self) -> int:
        return hash(self.callback)


HandlerLike = Union[EventHandler, Callable[[DomainEvent], None]]


# ============================================================================
# EVENT BUS (In-memory)
# ============================================================================

class EventBus:
    """
    In-memory event bus for intra-process event publishing

    Handler failures are logged and never propagate to the publisher.
    """

    def __init__(self):
        self._subscribers: Dict[EventType, List[EventHandler]] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def _as_handler(handler: HandlerLike) -> EventHandler:
        return handler if isinstance(handler, EventHandler) else CallbackHandler(handler)

    def subscribe(self, event_type: EventType, handler: HandlerLike) -> None:
        """Subscribe to events of a specific type"""
        handler = self._as_handler(handler)
        handlers = self._subscribers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            self._logger.debug(f"Subscribed {handler.__class__.__name__} to {event_type.value}")

    def unsubscribe(self, event_type: EventType, handler: HandlerLike) -> None:
        """Unsubscribe handler from events"""
        handler = self._as_handler(handler)
        try:
            self._subscribers.get(event_type, []).remove(handler)
        except ValueError:
            pass

    def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribers"""
        self._logger.debug(f"Publishing event: {event.event_type.value} (ID: {event.message_id})")
        for handler in list(self._subscribers.get(event.event_type, [])):
            if not handler.can_handle(event):
                continue
            try:
                handler.handle(event)
            except Exception as e:
                self._logger.error(
                    f"Error handling event {event.event_type.value} with {handler.__class__.__name__}: {e}"
                )

    def clear_subscribers(self) -> None:
        """Clear all subscribers (for testing)"""
        self._subscribers.clear()


# ============================================================================
# NOTIFICATION PORT (live updates)
# ============================================================================

Unsubscribe = Callable[[], None]


class NotificationPort(ABC):
    """Live-update channel used to announce booking changes"""

    @abstractmethod
    def connect(self, token: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def subscribe(self, event: str, handler: Callable[[Dict[str, Any]], None]) -> Unsubscribe:
        """Register handler; returns a callable that removes it"""
        pass

    @abstractmethod
    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def disconnect(self) -> None:
        pass


class NullNotificationPort(NotificationPort):
    """Disabled channel: every operation is a no-op"""

    def __init__(self):
        self._logger = logging.getLogger(self.__class__.__name__)

    def connect(self, token: Optional[str] = None) -> None:
        self._logger.debug("Real-time channel disabled; connect ignored")

    def subscribe(self, event: str, handler: Callable[[Dict[str, Any]], None]) -> Unsubscribe:
        return lambda: None

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        pass

    def disconnect(self) -> None:
        pass


class EventBusNotificationPort(NotificationPort):
    """Delivers notifications through an in-process EventBus"""

    def __init__(self, bus: EventBus):
        self.bus = bus
        self.connected = False

    def connect(self, token: Optional[str] = None) -> None:
        self.connected = True

    def subscribe(self, event: str, handler: Callable[[Dict[str, Any]], None]) -> Unsubscribe:
        event_type = EventType(event)
        adapter = CallbackHandler(lambda domain_event: handler(domain_event.payload))
        self.bus.subscribe(event_type, adapter)
        return lambda: self.bus.unsubscribe(event_type, adapter)

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        if not self.connected:
            return
        self.bus.publish(DomainEvent(event_type=EventType(event), payload=payload))

    def disconnect(self) -> None:
        self.connected = False

"""Event bus for internal application communication.

The refresh core publishes what changed; the menu bar UI subscribes and
redraws. Nothing in the core holds a reference to the UI.

Usage:
    from app.events import EventBus, EventType

    bus = EventBus(async_mode=False)
    bus.subscribe(EventType.PROPERTY_STATE_CHANGED, lambda e: print(e.data))
    bus.publish(EventType.PROPERTY_STATE_CHANGED, {"id": "A1", "has_error": False})
"""
import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional

from config import get_logger

logger = get_logger(__name__)


class EventType(Enum):
    """Types of events that can be published/subscribed."""

    # Property collection and fetch state
    PROPERTIES_CHANGED = auto()
    PROPERTY_STATE_CHANGED = auto()

    # Refresh passes
    REFRESH_STARTED = auto()
    REFRESH_FINISHED = auto()

    # Environment
    CONNECTIVITY_CHANGED = auto()
    SETTINGS_CHANGED = auto()
    AUTH_STATE_CHANGED = auto()

    # App lifecycle
    APP_STARTING = auto()
    APP_STOPPING = auto()


@dataclass
class Event:
    """An event with its payload.

    Attributes:
        event_type: The type of event.
        data: Event-specific payload.
        timestamp: When the event was created.
        source: Optional name of the publishing component.
    """
    event_type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    source: Optional[str] = None

    def __str__(self) -> str:
        return f"Event({self.event_type.name}, data={self.data})"


EventHandler = Callable[[Event], None]


class EventBus:
    """Thread-safe publish/subscribe event bus.

    In async mode events are queued and dispatched by one worker thread, so
    handlers see them in publish order. In sync mode publish() dispatches
    on the caller's thread (used in tests).
    """

    def __init__(self, async_mode: bool = True):
        self._subscribers: Dict[EventType, List[EventHandler]] = {}
        self._lock = threading.Lock()
        self._async_mode = async_mode
        self._event_queue: queue.Queue = queue.Queue()
        self._running = False
        self._worker_thread: Optional[threading.Thread] = None

        if async_mode:
            self._running = True
            self._worker_thread = threading.Thread(
                target=self._process_events, daemon=True, name="EventBus-Worker"
            )
            self._worker_thread.start()

    def _process_events(self) -> None:
        while self._running:
            try:
                event = self._event_queue.get(timeout=0.1)
            except queue.Empty:
                continue
            self._dispatch_event(event)
            self._event_queue.task_done()

    def _dispatch_event(self, event: Event) -> None:
        with self._lock:
            handlers = list(self._subscribers.get(event.event_type, []))

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Error in event handler for {event.event_type.name}: {e}",
                    exc_info=True
                )

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed to {event_type.name}")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> bool:
        """Remove a handler. Returns False if it was not subscribed."""
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                return True
        return False

    def publish(self, event_type: EventType, data: Optional[Dict[str, Any]] = None,
                source: Optional[str] = None) -> None:
        event = Event(event_type=event_type, data=data or {}, source=source)
        if self._async_mode:
            self._event_queue.put(event)
        else:
            self._dispatch_event(event)

    def shutdown(self) -> None:
        """Stop the worker thread; queued events are dropped."""
        self._running = False
        if self._worker_thread:
            self._worker_thread.join(timeout=1.0)
        logger.debug("EventBus shut down")

"""Message bus for lifecycle notifications about visualizations.

A small pub/sub implementation. The orchestrator publishes an event after each
successful lifecycle operation and an ``error`` event before re-raising.
"""

import logging
from typing import Callable, Dict, List

VISUALIZATION_CREATED = "visualization_created"
VISUALIZATION_UPDATED = "visualization_updated"
VISUALIZATION_DESTROYED = "visualization_destroyed"
THEME_CHANGED = "theme_changed"
ERROR = "error"

EVENTS = (
    VISUALIZATION_CREATED,
    VISUALIZATION_UPDATED,
    VISUALIZATION_DESTROYED,
    THEME_CHANGED,
    ERROR,
)


class MessageBus:
    """A simple message bus for visualization lifecycle events."""

    def __init__(self):
        self.subscribers: Dict[str, List[Callable]] = {}
        self.logger = logging.getLogger("PolyViz." + self.__class__.__name__)

    def subscribe(self, event_type: str, callback: Callable):
        """Subscribe to an event type."""
        if event_type not in EVENTS:
            raise ValueError(f"Unknown event type: {event_type}")
        self.subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: str, callback: Callable) -> bool:
        """Remove a callback; returns False if it was not subscribed."""
        callbacks = self.subscribers.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)
            return True
        return False

    def publish(self, event_type: str, data=None):
        """Publish an event with optional data."""
        self.logger.debug("Publishing %s: %s", event_type, data)
        for callback in list(self.subscribers.get(event_type, [])):
            callback(data)

    def publish_created(self, handle):
        """Publish an event when a visualization is created."""
        self.publish(VISUALIZATION_CREATED, {"id": handle.id, "type": handle.type.value})

    def publish_updated(self, handle):
        """Publish an event when a visualization is updated."""
        self.publish(VISUALIZATION_UPDATED, {"id": handle.id, "type": handle.type.value})

    def publish_destroyed(self, handle):
        """Publish an event when a visualization is destroyed."""
        self.publish(VISUALIZATION_DESTROYED, {"id": handle.id, "type": handle.type.value})

    def publish_error(self, operation: str, error: Exception, handle_id=None):
        """Publish an event describing a failed operation."""
        self.publish(ERROR, {
            "operation": operation,
            "id": handle_id,
            "error": error,
            "message": str(error),
        })

"""
Lightweight event bus for pipeline lifecycle notifications.

Renderer-side reactions (e.g. presenting a photo while the pinch-OK pose is
held) and logging subscribe here instead of polling the snapshot.

Usage:
    bus = EventBus()
    bus.subscribe(Events.GRAB_STARTED, show_photo)
    bus.emit(Events.GRAB_STARTED, snapshot=snapshot)
"""

import logging
import threading
import time
from collections import defaultdict
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class EventBus:
    """Thread-safe publish/subscribe event bus.

    One bus per pipeline instance. Dispatch is synchronous, in priority
    order; a failing listener is logged and never interrupts the caller.
    """

    def __init__(self, max_history: int = 100):
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._lock = threading.Lock()
        self._event_history = []
        self._max_history = max_history

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register a listener for an event.

        Args:
            event_name: Event to listen for
            callback: Function to call. Receives **kwargs from emit().
            priority: Higher priority callbacks run first (default 0)
        """
        with self._lock:
            self._listeners[event_name].append((priority, callback))
            self._listeners[event_name].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", callback), priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove a listener for an event."""
        with self._lock:
            self._listeners[event_name] = [
                (p, cb) for p, cb in self._listeners[event_name] if cb is not callback
            ]

    def emit(self, event_name: str, **kwargs):
        """Emit an event to all registered listeners."""
        with self._lock:
            listeners = list(self._listeners.get(event_name, []))
            self._event_history.append({
                "event": event_name,
                "time": time.time(),
                "data_keys": list(kwargs.keys()),
            })
            if len(self._event_history) > self._max_history:
                self._event_history = self._event_history[-self._max_history:]

        for priority, callback in listeners:
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", callback), e)

    def clear(self, event_name: Optional[str] = None):
        """Remove all listeners, optionally for a specific event."""
        with self._lock:
            if event_name:
                self._listeners.pop(event_name, None)
            else:
                self._listeners.clear()

    @property
    def listener_count(self) -> int:
        """Total number of registered listeners."""
        with self._lock:
            return sum(len(cbs) for cbs in self._listeners.values())

    def get_history(self, last_n: int = 10) -> list:
        """Get recent event history."""
        with self._lock:
            return self._event_history[-last_n:]


class Events:
    """Standard event names used throughout the system."""

    HAND_ACQUIRED = "hand_acquired"
    HAND_LOST = "hand_lost"
    CALIBRATED = "calibrated"
    CALIBRATION_CLEARED = "calibration_cleared"
    GRAB_STARTED = "grab_started"
    GRAB_ENDED = "grab_ended"
    MODE_CHANGED = "mode_changed"
    MANUAL_OVERRIDE = "manual_override"
    RESET = "reset"
    DEGRADED = "degraded"

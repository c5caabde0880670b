"""Event system for String Tuner components."""

from typing import Dict, List, Callable, Any
from enum import Enum, auto

from ..logger import get_logger

logger = get_logger(__name__)


class TunerEventType(Enum):
    """Event types published by the tuner engine."""

    SNAPSHOT = auto()
    CAPTURE_ERROR = auto()


class EventEmitter:
    """Event emitter for String Tuner components."""

    def __init__(self):
        """Initialize the event emitter."""
        self._listeners: Dict[Any, List[Callable]] = {}

    def on(self, event_type: Any, callback: Callable) -> None:
        """Register a callback for an event type.

        Args:
            event_type: Event type to listen for
            callback: Function to call when the event occurs
        """
        if event_type not in self._listeners:
            self._listeners[event_type] = []

        if callback not in self._listeners[event_type]:
            self._listeners[event_type].append(callback)
            logger.debug(f"Added listener for event {event_type}")

    def off(self, event_type: Any, callback: Callable) -> None:
        """Remove a previously registered callback."""
        listeners = self._listeners.get(event_type, [])
        if callback in listeners:
            listeners.remove(callback)
            logger.debug(f"Removed listener for event {event_type}")

    def emit(self, event_type: Any, *args, **kwargs) -> None:
        """Emit an event.

        Listener failures are logged and do not reach the emitter.

        Args:
            event_type: Event type to emit
            *args: Positional arguments to pass to listeners
            **kwargs: Keyword arguments to pass to listeners
        """
        if event_type not in self._listeners:
            return

        for callback in list(self._listeners[event_type]):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_type}: {e}")

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners = {}
        logger.debug("Cleared all event listeners")


class TunerEvents:
    """Event emitter specifically for tuner engine events."""

    def __init__(self):
        self._emitter = EventEmitter()

    def on_snapshot(self, callback: Callable) -> None:
        """Register a callback receiving every published Snapshot."""
        self._emitter.on(TunerEventType.SNAPSHOT, callback)

    def off_snapshot(self, callback: Callable) -> None:
        self._emitter.off(TunerEventType.SNAPSHOT, callback)

    def on_capture_error(self, callback: Callable) -> None:
        """Register a callback receiving CaptureError instances from start()."""
        self._emitter.on(TunerEventType.CAPTURE_ERROR, callback)

    def emit_snapshot(self, snapshot) -> None:
        self._emitter.emit(TunerEventType.SNAPSHOT, snapshot)

    def emit_capture_error(self, error) -> None:
        self._emitter.emit(TunerEventType.CAPTURE_ERROR, error)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._emitter.clear()

"""
Property change events and listener fan-out.

The store itself has no event bus: its mutations return a "changed" flag and
the manager turns that into one PropertyEvent per operation. An event with
property_key None concerns the whole store (load, save, reset of everything).
"""

from dataclasses import dataclass
from enum import Enum
import logging
import threading
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


class PropertyEventType(Enum):
    LOADED = "loaded"
    SAVED = "saved"
    CHANGED = "changed"
    RESET = "reset"


@dataclass(frozen=True)
class PropertyEvent:
    """Something happened to one property (property_key set) or to all of them."""
    source: Any
    event_type: PropertyEventType
    property_key: Optional[Any] = None

    @property
    def is_global(self) -> bool:
        return self.property_key is None


PropertyListener = Callable[[PropertyEvent], None]


class ListenerRegistry:
    """
    Ordered set of listener callbacks.

    Callbacks may be added or removed while an event is being dispatched;
    dispatch works on a copy. A callback that raises is logged and skipped so
    the remaining listeners still see the event.
    """

    def __init__(self):
        self._callbacks: List[PropertyListener] = []
        self._lock = threading.Lock()

    def add(self, callback: PropertyListener) -> None:
        """Subscribe callback. Adding the same callback twice has no effect."""
        with self._lock:
            if callback not in self._callbacks:
                self._callbacks.append(callback)

    def remove(self, callback: PropertyListener) -> None:
        """Unsubscribe callback if subscribed."""
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def fire(self, event: PropertyEvent) -> None:
        with self._lock:
            callbacks = list(self._callbacks)

        for callback in callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.warning(f"Error in {event.event_type.value} listener {callback!r}: {e}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def __contains__(self, callback: object) -> bool:
        with self._lock:
            return callback in self._callbacks

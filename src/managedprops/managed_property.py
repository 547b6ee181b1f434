"""
ManagedProperty: a single-key view of a PropertiesManager.

Carries its own listener registry. Manager events are forwarded when they
concern the whole store, this key, or a key this property's value references
(so a property built from ``${other}`` hears about changes to ``other``).
"""

from enum import Enum
import logging
from typing import TYPE_CHECKING, Any, Generic, Optional, Type, TypeVar

from managedprops.events import ListenerRegistry, PropertyEvent, PropertyListener
from managedprops.exceptions import PropertyError
from managedprops.reference_evaluator import Reference

if TYPE_CHECKING:
    from managedprops.manager import PropertiesManager

logger = logging.getLogger(__name__)

K = TypeVar('K', bound=Enum)
E = TypeVar('E', bound=Enum)


class ManagedProperty(Generic[K]):
    """Accessors, mutators and filtered events for one property key.

    Obtain instances through PropertiesManager.get_managed_property() so there
    is only one per key.
    """

    def __init__(self, key: K, manager: 'PropertiesManager[K]'):
        self._key = key
        self._manager = manager
        self._listeners = ListenerRegistry()
        manager.add_listener(self._on_manager_event)

    def __repr__(self) -> str:
        return f"ManagedProperty({self._key!r})"

    @property
    def key(self) -> K:
        return self._key

    @property
    def name(self) -> str:
        return self._manager.translator.get_property_name(self._key)

    @property
    def manager(self) -> 'PropertiesManager[K]':
        return self._manager

    # ========== EVENTS ==========

    def add_listener(self, listener: PropertyListener) -> None:
        self._listeners.add(listener)

    def remove_listener(self, listener: PropertyListener) -> None:
        self._listeners.remove(listener)

    def _is_relevant(self, event: PropertyEvent) -> bool:
        if event.property_key is None or event.property_key == self._key:
            return True
        try:
            return self.is_referencing(event.property_key)
        except PropertyError as e:
            logger.debug(f"Cannot check whether {self.name} references {event.property_key}: {e}")
            return False

    def _on_manager_event(self, event: PropertyEvent) -> None:
        if len(self._listeners) and self._is_relevant(event):
            self._listeners.fire(event)

    # ========== ACCESS ==========

    def get(self) -> Optional[str]:
        return self._manager.get(self._key)

    def get_raw(self) -> Optional[str]:
        return self._manager.get_raw(self._key)

    def get_default(self) -> Optional[str]:
        return self._manager.get_default(self._key)

    def get_bool(self) -> bool:
        return self._manager.get_bool(self._key)

    def get_int(self) -> int:
        return self._manager.get_int(self._key)

    def get_float(self) -> float:
        return self._manager.get_float(self._key)

    def get_enum(self, enum_type: Type[E]) -> E:
        return self._manager.get_enum(self._key, enum_type)

    def is_default(self) -> bool:
        return self._manager.is_default(self._key)

    def is_modified(self) -> bool:
        return self._manager.is_modified(self._key)

    def is_referencing(self, other: K) -> bool:
        return self._manager.is_referencing(self._key, other)

    def reference_at(self, position: int) -> Optional[Reference]:
        return self._manager.reference_at(self._key, position)

    # ========== MUTATION ==========

    def set(self, value: Any) -> bool:
        return self._manager.set(self._key, value)

    def save(self, value: Any) -> None:
        """Set the value and save the whole file."""
        self._manager.save_property(self._key, value)

    def reset(self) -> bool:
        return self._manager.reset(self._key)

    def undo(self) -> Optional[str]:
        return self._manager.undo(self._key)

    def redo(self) -> Optional[str]:
        return self._manager.redo(self._key)

    def can_undo(self) -> bool:
        return self._manager.can_undo(self._key)

    def can_redo(self) -> bool:
        return self._manager.can_redo(self._key)

"""
PropertyStore: default-aware, versioned storage of string properties.

Each known property name maps to a ChangeHistory of its values. Defaults are
copied at construction and never change afterwards. The store performs no I/O
itself: load() takes an already decoded mapping and save() hands a snapshot to
a caller-supplied sink.

Locking: one store-wide RLock serializes every mutating operation (including
the sink call in save()), and each history carries its own lock so single
value reads and history steps stay atomic. Reads copy the underlying dict and
never observe a partially added key.
"""

import logging
import threading
from types import MappingProxyType
from typing import Callable, Dict, FrozenSet, Mapping, Optional

from managedprops.change_history import ChangeHistory
from managedprops.config import get_framework_config
from managedprops.exceptions import InvalidValueError

logger = logging.getLogger(__name__)


class PropertyStore:
    """
    Single source of truth for current, default and historical property values.

    Setting a value equal to its default keeps an explicit history row: the
    key stays in key_names() and is_modified() reflects the history. Values
    equal to their default are left out of snapshot(include_defaults=False)
    and therefore out of saved files unless saving_defaults is set.

    Example:
        >>> store = PropertyStore({"greeting": "hello"})
        >>> store.set("greeting", "hi")
        True
        >>> store.is_modified("greeting")
        True
        >>> store.reset_to_default("greeting")
        True
        >>> store.get("greeting")
        'hello'
    """

    def __init__(
        self,
        defaults: Optional[Mapping[str, str]] = None,
        saving_defaults: Optional[bool] = None,
        history_limit: Optional[int] = None,
    ):
        """
        Args:
            defaults: Default values keyed by property name. Copied, so later
                      changes to the mapping do not affect the store.
            saving_defaults: Persist values equal to their default. None uses
                             the framework config.
            history_limit: Per-key history bound. None uses the framework config.
        """
        config = get_framework_config()

        self._lock = threading.RLock()
        self._defaults: Dict[str, str] = {}
        for name, value in (defaults or {}).items():
            if value is None:
                raise InvalidValueError(f"Default for '{name}' cannot be None")
            self._defaults[str(name)] = str(value)

        self._saving_defaults = config.saving_defaults if saving_defaults is None else saving_defaults
        self._history_limit = config.history_limit if history_limit is None else history_limit
        self._values: Dict[str, ChangeHistory[str]] = {
            name: self._new_history(value) for name, value in self._defaults.items()
        }
        self._token = 0
        self._loaded = False

        logger.debug(f"Created PropertyStore with {len(self._defaults)} default(s)")

    def _new_history(self, value: str) -> ChangeHistory[str]:
        return ChangeHistory(value, limit=self._history_limit)

    def _changed(self) -> None:
        self._token += 1

    # ========== PROPERTIES ==========

    @property
    def defaults(self) -> Mapping[str, str]:
        """Read-only view of the default values."""
        return MappingProxyType(self._defaults)

    @property
    def saving_defaults(self) -> bool:
        return self._saving_defaults

    @saving_defaults.setter
    def saving_defaults(self, saving_defaults: bool) -> None:
        self._saving_defaults = saving_defaults

    @property
    def token(self) -> int:
        """Mutation counter, incremented whenever a value or the key set changes."""
        return self._token

    @property
    def loaded(self) -> bool:
        """True once at least one load() completed."""
        return self._loaded

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)

    # ========== READS ==========

    def get(self, name: str) -> Optional[str]:
        """Current value for name, or None if the property is unknown."""
        history = self._values.get(name)
        return history.current if history is not None else None

    def get_default(self, name: str) -> Optional[str]:
        return self._defaults.get(name)

    def has_default(self, name: str) -> bool:
        return name in self._defaults

    def get_history(self, name: str) -> Optional[ChangeHistory[str]]:
        """The history tracking name, or None if the property is unknown."""
        return self._values.get(name)

    def is_modified(self, name: Optional[str] = None) -> bool:
        """Whether name (or, with no name, any property) differs from its saved value.

        Unknown names are never modified.
        """
        if name is not None:
            history = self._values.get(name)
            return history is not None and history.is_modified()

        return any(history.is_modified() for history in list(self._values.values()))

    def key_names(self) -> FrozenSet[str]:
        """Names of all tracked properties plus every default name."""
        return frozenset(dict(self._values)) | frozenset(self._defaults)

    def snapshot(self, include_defaults: bool = True) -> Dict[str, str]:
        """Point-in-time copy of the current values.

        Args:
            include_defaults: When False, properties whose current value equals
                              their default are left out.
        """
        result: Dict[str, str] = {}
        for name, history in dict(self._values).items():
            value = history.current
            if not include_defaults and value == self._defaults.get(name):
                continue
            result[name] = value
        return result

    # ========== MUTATIONS ==========

    def set(self, name: str, value: str) -> bool:
        """Set the current value of name.

        A previously unknown name gets a new history seeded with value.

        Returns:
            True if the stored value changed.

        Raises:
            InvalidValueError: if value is None (use reset_to_default instead).
        """
        if value is None:
            raise InvalidValueError(f"Cannot set '{name}' to None, reset it instead")

        with self._lock:
            history = self._values.get(name)
            if history is None:
                self._values[name] = self._new_history(value)
                logger.debug(f"Added property '{name}'")
                changed = True
            else:
                changed = history.push(value)

            if changed:
                self._changed()
            return changed

    def reset_to_default(self, name: str) -> bool:
        """Restore the default value of name.

        Properties without a default are removed entirely.

        Returns:
            True if the value changed or the property was removed.
        """
        with self._lock:
            default = self._defaults.get(name)
            if default is None:
                removed = self._values.pop(name, None) is not None
                if removed:
                    logger.debug(f"Removed property '{name}' (no default)")
                    self._changed()
                return removed

            history = self._values.get(name)
            if history is None:
                self._values[name] = self._new_history(default)
                changed = True
            else:
                changed = history.push(default)

            if changed:
                self._changed()
            return changed

    def reset_all(self) -> bool:
        """Reset every property with a default and remove the rest.

        Returns:
            True if anything changed.
        """
        with self._lock:
            changed = False
            for name in list(self._values):
                if name in self._defaults:
                    changed |= self._values[name].push(self._defaults[name])
                else:
                    del self._values[name]
                    changed = True

            for name, default in self._defaults.items():
                if name not in self._values:
                    self._values[name] = self._new_history(default)
                    changed = True

            if changed:
                logger.debug("Reset all properties to defaults")
                self._changed()
            return changed

    def undo(self, name: str) -> Optional[str]:
        """Step name back one value; returns the new current value (None if unknown)."""
        with self._lock:
            history = self._values.get(name)
            if history is None:
                return None
            if not history.can_undo():
                return history.current
            value = history.undo()
            self._changed()
            return value

    def redo(self, name: str) -> Optional[str]:
        """Step name forward one value; returns the new current value (None if unknown)."""
        with self._lock:
            history = self._values.get(name)
            if history is None:
                return None
            if not history.can_redo():
                return history.current
            value = history.redo()
            self._changed()
            return value

    def can_undo(self, name: str) -> bool:
        history = self._values.get(name)
        return history is not None and history.can_undo()

    def can_redo(self, name: str) -> bool:
        history = self._values.get(name)
        return history is not None and history.can_redo()

    # ========== LOAD / SAVE ==========

    def load(self, source: Mapping[str, str]) -> None:
        """Replace the working set with source.

        Load is an authoritative replacement, not a merge:
        - properties absent from both source and defaults are dropped
        - properties in source are synced to the loaded value
        - default properties absent from source are synced to their default

        Histories of surviving properties are kept, so a load can be undone.
        """
        for name, value in source.items():
            if value is None:
                raise InvalidValueError(f"Loaded value for '{name}' cannot be None")

        with self._lock:
            for name in list(self._values):
                if name not in source and name not in self._defaults:
                    del self._values[name]

            for name, default in self._defaults.items():
                if name not in source:
                    self._sync(name, default)

            for name, value in source.items():
                self._sync(str(name), str(value))

            self._loaded = True
            self._changed()
            logger.debug(f"Loaded {len(source)} stored value(s), tracking {len(self._values)} properties")

    def _sync(self, name: str, value: str) -> None:
        history = self._values.get(name)
        if history is None:
            self._values[name] = self._new_history(value)
        else:
            history.sync(value)

    def save(self, sink: Callable[[Dict[str, str]], None]) -> Dict[str, str]:
        """Hand the persistable values to sink, then mark every history synced.

        The snapshot honours saving_defaults. If sink raises, nothing is marked
        synced and the error propagates.

        Returns:
            The snapshot given to sink.
        """
        with self._lock:
            values = self.snapshot(self._saving_defaults)
            sink(values)
            for history in self._values.values():
                history.mark_synced()
            self._changed()
            logger.debug(f"Saved {len(values)} value(s)")
            return values

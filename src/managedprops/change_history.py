"""
Per-property undo/redo history.

A ChangeHistory keeps every value a single property has held, a cursor to the
current value and a saved cursor to the value last written to (or read from)
the backing store. It stores whole values rather than differences, which suits
the short strings it is used for.

Boundary behaviour: undo() at the oldest entry and redo() at the newest entry
return the current value unchanged. Use can_undo()/can_redo() to tell whether
a step is available.
"""

import logging
import threading
from typing import Generic, List, Optional, Tuple, TypeVar

from managedprops.config import get_framework_config
from managedprops.exceptions import InvalidValueError

logger = logging.getLogger(__name__)

V = TypeVar('V')

_NO_SAVED_VALUE = object()


class ChangeHistory(Generic[V]):
    """
    Linear undo/redo stack with a last-synced marker.

    All methods are atomic with respect to (entries, cursor, saved_cursor).

    Example:
        >>> history = ChangeHistory("a")
        >>> history.push("b")
        True
        >>> history.undo()
        'a'
        >>> history.redo()
        'b'
        >>> history.is_modified()
        True
    """

    def __init__(self, value: V, limit: Optional[int] = None):
        """
        Args:
            value: Initial value; also treated as the last saved value.
            limit: Maximum number of entries to keep. None uses the framework
                   config; zero or negative keeps every entry.
        """
        if value is None:
            raise InvalidValueError("Cannot track a None value")

        self._lock = threading.RLock()
        self._entries: List[V] = [value]
        self._cursor = 0
        self._saved_cursor = 0
        # Holds the saved value once its entry has been evicted
        self._evicted_saved_value = _NO_SAVED_VALUE
        self._limit = get_framework_config().history_limit if limit is None else limit

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        with self._lock:
            return f"ChangeHistory(entries={self._entries!r}, cursor={self._cursor}, saved_cursor={self._saved_cursor})"

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def entries(self) -> Tuple[V, ...]:
        with self._lock:
            return tuple(self._entries)

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._cursor

    @property
    def saved_cursor(self) -> int:
        """Index of the saved value, or -1 once its entry has been dropped."""
        with self._lock:
            return self._saved_cursor

    @property
    def current(self) -> V:
        with self._lock:
            return self._entries[self._cursor]

    @property
    def saved_value(self) -> V:
        with self._lock:
            if self._saved_cursor < 0:
                return self._evicted_saved_value
            return self._entries[self._saved_cursor]

    def push(self, value: V) -> bool:
        """Make value the current value.

        Invalidates everything after the cursor, so redo is unavailable until
        the next undo. Does nothing if value equals the current value.

        Returns:
            True if the current value changed.

        Raises:
            InvalidValueError: if value is None.
        """
        if value is None:
            raise InvalidValueError("Cannot push a None value, reset instead")

        with self._lock:
            if value == self._entries[self._cursor]:
                return False

            if self._saved_cursor > self._cursor:
                # Saved entry is in the redo tail about to be dropped
                self._evicted_saved_value = self._entries[self._saved_cursor]
                self._saved_cursor = -1

            del self._entries[self._cursor + 1:]
            self._entries.append(value)
            self._cursor += 1
            self._evict_oldest()
            return True

    def undo(self) -> V:
        """Step back one value and return the new current value."""
        with self._lock:
            if self._cursor > 0:
                self._cursor -= 1
            return self._entries[self._cursor]

    def redo(self) -> V:
        """Step forward one value and return the new current value."""
        with self._lock:
            if self._cursor < len(self._entries) - 1:
                self._cursor += 1
            return self._entries[self._cursor]

    def can_undo(self) -> bool:
        with self._lock:
            return self._cursor > 0

    def can_redo(self) -> bool:
        with self._lock:
            return self._cursor < len(self._entries) - 1

    def mark_synced(self) -> None:
        """Record the current value as saved. is_modified() is False afterwards."""
        with self._lock:
            self._saved_cursor = self._cursor
            self._evicted_saved_value = _NO_SAVED_VALUE

    def sync(self, value: V) -> bool:
        """Push value and record it as saved in one step.

        Returns:
            True if the current value changed.
        """
        with self._lock:
            changed = self.push(value)
            self.mark_synced()
            return changed

    def is_modified(self) -> bool:
        """True if the current value differs from the saved value.

        Equal values compare as unmodified even if edits happened in between.
        """
        with self._lock:
            return self.current != self.saved_value

    def _evict_oldest(self) -> None:
        """Drop the oldest entries beyond the limit, shifting both cursors."""
        if self._limit <= 0:
            return

        overflow = len(self._entries) - self._limit
        if overflow <= 0:
            return

        if 0 <= self._saved_cursor < overflow:
            self._evicted_saved_value = self._entries[self._saved_cursor]

        del self._entries[:overflow]
        self._cursor -= overflow
        if self._saved_cursor >= 0:
            self._saved_cursor -= overflow
            if self._saved_cursor < 0:
                self._saved_cursor = -1

        logger.debug(f"Evicted {overflow} oldest history entr{'y' if overflow == 1 else 'ies'} (limit={self._limit})")

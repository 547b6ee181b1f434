"""
Exception hierarchy for managed properties.

All errors raised by the library derive from PropertyError so callers can
catch one type at the coordinator boundary. Errors that also have a natural
builtin counterpart (ValueError, KeyError) inherit from it as well.
"""

from typing import Optional, Tuple


class PropertyError(Exception):
    """Base class for every error raised by managedprops."""


class InvalidValueError(PropertyError, ValueError):
    """A value that cannot be stored was given (e.g. None)."""


class UnknownKeyError(PropertyError, KeyError):
    """The property has neither a current value nor a default."""

    def __init__(self, property_name: str):
        super().__init__(property_name)
        self.property_name = property_name

    def __str__(self) -> str:
        return f"Unknown property '{self.property_name}' (no value and no default)"


class StoreNotReadyError(PropertyError):
    """The store was accessed before any load completed."""


class CodecError(PropertyError):
    """Malformed input given to a store codec."""

    def __init__(self, message: str, line: Optional[int] = None):
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.line = line


class EvaluationError(PropertyError):
    """Base class for reference evaluation failures."""


class CyclicReferenceError(EvaluationError):
    """A reference chain revisits a property already on the resolution path.

    ``chain`` lists the names in resolution order and ends with the repeated
    name, e.g. ``('a', 'b', 'a')``.
    """

    def __init__(self, chain: Tuple[str, ...]):
        self.chain = tuple(chain)
        super().__init__(f"Cyclic reference: {' -> '.join(self.chain)}")


class ReferenceDepthError(EvaluationError):
    """The resolution path grew beyond the configured maximum depth."""

    def __init__(self, depth: int, chain: Tuple[str, ...]):
        self.depth = depth
        self.chain = tuple(chain)
        super().__init__(f"Reference depth {depth} exceeded while resolving {' -> '.join(self.chain)}")


class UnresolvedReferenceError(EvaluationError):
    """A referenced property does not exist and no inline default was given."""

    def __init__(self, property_name: str):
        self.property_name = property_name
        super().__init__(f"Unresolved reference to '{property_name}'")

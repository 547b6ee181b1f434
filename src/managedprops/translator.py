"""
Translation between typed property keys and property names.

Property keys are Enum members; the store only sees their names. The default
translation lower-cases the member name and replaces underscores with a
separator, so ``Key.SERVER_PORT`` becomes ``server.port``.
"""

from abc import ABC, abstractmethod
from enum import Enum
import logging
from typing import Dict, Generic, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar('K', bound=Enum)


class PropertyDescriptor(Enum):
    """
    Enum base whose declared values are the default property values.

    Members are numbered in declaration order, so keys sharing a default do
    not collapse into aliases. Declare None for a key without default.

    Example:
        >>> class Key(PropertyDescriptor):
        ...     SERVER_HOST = "localhost"
        ...     SERVER_URL = "http://${server.host}"
        >>> Key.SERVER_HOST.default_value
        'localhost'
    """

    def __new__(cls, default=None):
        member = object.__new__(cls)
        member._value_ = len(cls.__members__) + 1
        member._default_value = None if default is None else str(default)
        return member

    @property
    def default_value(self) -> Optional[str]:
        return self._default_value


class Translator(ABC, Generic[K]):
    """Bidirectional mapping between property keys and property names."""

    @abstractmethod
    def get_property_name(self, key: K) -> str:
        """Property name for key."""

    @abstractmethod
    def get_property_key(self, name: str) -> K:
        """Key for a property name.

        Raises:
            KeyError: if no key corresponds to name.
        """


class EnumTranslator(Translator[K]):
    """Default translator: ``MY_KEY`` <-> ``my<separator>key``."""

    def __init__(self, enum_type: Type[K], separator: str = '.'):
        self.enum_type = enum_type
        self.separator = separator

    def get_property_name(self, key: K) -> str:
        return key.name.lower().replace('_', self.separator)

    def get_property_key(self, name: str) -> K:
        member_name = name.upper().replace(self.separator, '_')
        try:
            return self.enum_type[member_name]
        except KeyError:
            raise KeyError(f"{self.enum_type.__name__} has no key for property '{name}'") from None

    def __repr__(self) -> str:
        return f"EnumTranslator({self.enum_type.__name__}, separator={self.separator!r})"


def default_properties(enum_type: Type[K], translator: Optional[Translator[K]] = None) -> Dict[str, str]:
    """Default values of a PropertyDescriptor enum keyed by property name.

    Members without a default (and members of plain Enums) are skipped.
    """
    translator = translator or EnumTranslator(enum_type)
    defaults: Dict[str, str] = {}
    for key in enum_type:
        default = key.default_value if isinstance(key, PropertyDescriptor) else None
        if default is None:
            logger.debug(f"{enum_type.__name__}.{key.name} has no default value")
            continue
        defaults[translator.get_property_name(key)] = default
    return defaults

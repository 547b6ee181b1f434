"""
File-backed, versioned properties with typed keys and nested references.

Key Features:
- Default-aware property store with per-key undo/redo history
- Modification tracking against the last load/save
- Nested references between values (${other.key}, ${other.key:fallback})
  with cycle detection
- Typed accessors (bool/int/float/enum) that fall back to the default
- Listener events per manager and per key, including dependent keys
- Blocking or future-based load/save on an executor

Quick Start:
    >>> from managedprops import PropertyDescriptor, new_manager
    >>>
    >>> class Key(PropertyDescriptor):
    ...     SERVER_HOST = "localhost"
    ...     SERVER_PORT = "8080"
    ...     SERVER_URL = "http://${server.host}:${server.port}"
    >>>
    >>> with new_manager("server.properties", Key) as manager:
    ...     changed = manager.set(Key.SERVER_HOST, "example.org")
    ...     url = manager.get(Key.SERVER_URL)
    ...     manager.save()
    >>> url
    'http://example.org:8080'

Architecture:
    ChangeHistory       undo/redo stack of one property's values
    PropertyStore       name -> ChangeHistory, defaults, load/save lifecycle
    ReferenceEvaluator  recursive ${...} expansion over a retriever callback
    PropertiesManager   composes the above with a Translator, a StoreCodec,
                        listeners and an executor for file I/O
    ManagedProperty     single-key view with filtered events

Modules:
    - change_history: per-key undo/redo history
    - property_store: concurrent default-aware store
    - reference_evaluator: reference grammar and evaluation
    - translator: key/name translation and descriptor enums
    - codec: .properties and JSON store codecs
    - events: property events and listener registry
    - manager: PropertiesManager coordinator
    - managed_property: per-key view
    - factory: manager builders
    - token_cache: token-invalidated caches
    - config: framework configuration
    - exceptions: error hierarchy
"""

# History and store
from managedprops.change_history import ChangeHistory
from managedprops.property_store import PropertyStore

# Evaluation
from managedprops.reference_evaluator import Reference, ReferenceEvaluator, Retriever

# Keys
from managedprops.translator import (
    EnumTranslator,
    PropertyDescriptor,
    Translator,
    default_properties,
)

# Codecs
from managedprops.codec import (
    JsonCodec,
    PropertiesCodec,
    StoreCodec,
    codec_for_path,
)

# Events
from managedprops.events import (
    ListenerRegistry,
    PropertyEvent,
    PropertyEventType,
    PropertyListener,
)

# Coordinator
from managedprops.manager import PropertiesManager
from managedprops.managed_property import ManagedProperty
from managedprops.factory import load_defaults, new_manager

# Caching
from managedprops.token_cache import CacheKey, SingleValueTokenCache, TokenCache

# Configuration
from managedprops.config import (
    FrameworkConfig,
    MissingReferencePolicy,
    get_framework_config,
    reset_framework_config,
    set_framework_config,
)

# Errors
from managedprops.exceptions import (
    CodecError,
    CyclicReferenceError,
    EvaluationError,
    InvalidValueError,
    PropertyError,
    ReferenceDepthError,
    StoreNotReadyError,
    UnknownKeyError,
    UnresolvedReferenceError,
)

__all__ = [
    # History and store
    'ChangeHistory',
    'PropertyStore',
    # Evaluation
    'Reference',
    'ReferenceEvaluator',
    'Retriever',
    # Keys
    'EnumTranslator',
    'PropertyDescriptor',
    'Translator',
    'default_properties',
    # Codecs
    'JsonCodec',
    'PropertiesCodec',
    'StoreCodec',
    'codec_for_path',
    # Events
    'ListenerRegistry',
    'PropertyEvent',
    'PropertyEventType',
    'PropertyListener',
    # Coordinator
    'PropertiesManager',
    'ManagedProperty',
    'load_defaults',
    'new_manager',
    # Caching
    'CacheKey',
    'SingleValueTokenCache',
    'TokenCache',
    # Configuration
    'FrameworkConfig',
    'MissingReferencePolicy',
    'get_framework_config',
    'reset_framework_config',
    'set_framework_config',
    # Errors
    'CodecError',
    'CyclicReferenceError',
    'EvaluationError',
    'InvalidValueError',
    'PropertyError',
    'ReferenceDepthError',
    'StoreNotReadyError',
    'UnknownKeyError',
    'UnresolvedReferenceError',
]

__version__ = "0.1.0"

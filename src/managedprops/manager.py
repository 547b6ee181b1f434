"""
PropertiesManager: file-backed properties addressed by typed keys.

Composes the PropertyStore, a ReferenceEvaluator, a Translator, a StoreCodec
and a listener registry. File I/O runs on an executor so callers can choose
between blocking calls (load, reload, save) and futures (reload_nb, save_nb).

Lifecycle:
    manager = new_manager("app.properties", Key)
    manager.get(Key.SERVER_URL)        # loads the file on first access
    manager.set(Key.SERVER_PORT, 8080)
    manager.save()
    manager.close()
"""

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from enum import Enum
from functools import partial
import logging
import os
from pathlib import Path
import threading
from typing import TYPE_CHECKING, Any, Callable, Dict, Generic, Mapping, Optional, Set, Type, TypeVar, Union

from managedprops.codec import PropertiesCodec, StoreCodec
from managedprops.config import FrameworkConfig, get_framework_config
from managedprops.events import ListenerRegistry, PropertyEvent, PropertyEventType, PropertyListener
from managedprops.exceptions import (
    InvalidValueError,
    PropertyError,
    StoreNotReadyError,
    UnknownKeyError,
)
from managedprops.property_store import PropertyStore
from managedprops.reference_evaluator import Reference, ReferenceEvaluator
from managedprops.token_cache import CacheKey, SingleValueTokenCache, TokenCache
from managedprops.translator import Translator

if TYPE_CHECKING:
    from managedprops.managed_property import ManagedProperty

logger = logging.getLogger(__name__)

K = TypeVar('K', bound=Enum)
E = TypeVar('E', bound=Enum)
T = TypeVar('T')


def to_property_value(value: Any) -> str:
    """String form stored for value: enums by lower-case name, bools as true/false."""
    if value is None:
        raise InvalidValueError("Cannot set a None value, use reset instead")
    if isinstance(value, Enum):
        return value.name.lower()
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


class PropertiesManager(Generic[K]):
    """
    Coordinator for one property file.

    Reads trigger a lazy load when the framework config allows it (auto_load),
    otherwise they raise StoreNotReadyError until load() or reload() has run.
    Every mutation that changes state fires exactly one PropertyEvent.
    LOADED and SAVED fire outside the I/O worker task, so listeners may call
    load, reload or save themselves.

    Thread safety: all methods may be called from any thread. Loads and saves
    are serialized per manager.
    """

    def __init__(
        self,
        path: Union[str, 'os.PathLike[str]'],
        defaults: Optional[Mapping[str, str]],
        translator: Translator[K],
        evaluator: Optional[ReferenceEvaluator] = None,
        codec: Optional[StoreCodec] = None,
        executor: Optional[Executor] = None,
        config: Optional[FrameworkConfig] = None,
    ):
        """
        Args:
            path: Backing file. A missing file loads as empty.
            defaults: Default values keyed by property name (copied).
            translator: Mapping between keys and property names.
            evaluator: Reference evaluator; built from config when omitted.
            codec: File encoding; PropertiesCodec when omitted.
            executor: Runs load/save tasks. When omitted the manager owns a
                      single worker pool and shuts it down in close().
            config: Overrides the global framework config for this manager.
        """
        self._config = config or get_framework_config()
        self._path = Path(path)
        self._translator = translator
        self._evaluator = evaluator or ReferenceEvaluator(
            max_depth=self._config.max_reference_depth,
            missing_policy=self._config.missing_reference_policy,
        )
        self._codec = codec or PropertiesCodec()
        self._store = PropertyStore(
            defaults,
            saving_defaults=self._config.saving_defaults,
            history_limit=self._config.history_limit,
        )

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="managedprops-io")
        self._io_lock = threading.Lock()
        self._local = threading.local()

        self._auto_trim = self._config.auto_trim
        self._comment: Optional[str] = None

        self._listeners = ListenerRegistry()
        self._managed_properties: Dict[K, Any] = {}
        self._managed_properties_lock = threading.Lock()

        cache_enabled = not self._config.disable_value_cache
        self._value_cache: TokenCache[Optional[str]] = TokenCache(lambda: self._store.token, enabled=cache_enabled)
        self._key_cache: SingleValueTokenCache[frozenset] = SingleValueTokenCache(
            lambda: self._store.token, enabled=cache_enabled
        )

        logger.debug(f"Created PropertiesManager for {self._path}")

    # ========== OPTIONS ==========

    @property
    def path(self) -> Path:
        return self._path

    @property
    def translator(self) -> Translator[K]:
        return self._translator

    @property
    def evaluator(self) -> ReferenceEvaluator:
        return self._evaluator

    @property
    def codec(self) -> StoreCodec:
        return self._codec

    @property
    def store(self) -> PropertyStore:
        return self._store

    @property
    def saving_defaults(self) -> bool:
        """Whether values equal to their default are written on save."""
        return self._store.saving_defaults

    @saving_defaults.setter
    def saving_defaults(self, saving_defaults: bool) -> None:
        self._store.saving_defaults = saving_defaults

    @property
    def auto_trim(self) -> bool:
        """Whether raw values are stripped of surrounding whitespace when read."""
        return self._auto_trim

    @auto_trim.setter
    def auto_trim(self, auto_trim: bool) -> None:
        self._auto_trim = auto_trim

    @property
    def comment(self) -> Optional[str]:
        """Comment written at the top of the file on save."""
        return self._comment

    @comment.setter
    def comment(self, comment: Optional[str]) -> None:
        self._comment = comment

    # ========== LISTENERS ==========

    def add_listener(self, listener: PropertyListener) -> None:
        self._listeners.add(listener)

    def remove_listener(self, listener: PropertyListener) -> None:
        self._listeners.remove(listener)

    def _fire(self, event_type: PropertyEventType, key: Optional[K] = None) -> None:
        self._listeners.fire(PropertyEvent(self, event_type, key))

    def get_managed_property(self, key: K) -> 'ManagedProperty[K]':
        """Per-key view of this manager; one instance per key."""
        from managedprops.managed_property import ManagedProperty

        with self._managed_properties_lock:
            managed = self._managed_properties.get(key)
            if managed is None:
                managed = ManagedProperty(key, self)
                self._managed_properties[key] = managed
            return managed

    # ========== LOAD / SAVE ==========

    def _load_task(self, reload: bool) -> bool:
        with self._io_lock:
            if not reload and self._store.loaded:
                return False
            values = self._codec.read(self._path)
            self._store.load(values)
        logger.info(f"Loaded {len(values)} value(s) from {self._path}")
        return True

    def _save_task(self) -> bool:
        with self._io_lock:
            values = self._store.save(lambda snapshot: self._codec.write(self._path, snapshot, self._comment))
        logger.info(f"Saved {len(values)} value(s) to {self._path}")
        return True

    def _submit(self, fn: Callable[..., bool], *args: Any) -> 'Future[bool]':
        """Run fn on the executor, or inline when already inside an I/O event callback."""
        if not getattr(self._local, 'in_io', False):
            return self._executor.submit(fn, *args)

        future: 'Future[bool]' = Future()
        try:
            future.set_result(fn(*args))
        except Exception as e:
            future.set_exception(e)
        return future

    def _fire_after(self, event_type: PropertyEventType, future: 'Future[bool]') -> None:
        if future.cancelled() or future.exception() is not None or not future.result():
            return
        # Listeners may run on the worker; nested load/save calls must not queue behind themselves
        in_io = getattr(self._local, 'in_io', False)
        self._local.in_io = True
        try:
            self._fire(event_type)
        finally:
            self._local.in_io = in_io

    def _wait(self, future: 'Future[bool]', action: str, event_type: PropertyEventType) -> None:
        try:
            done = future.result()
        except PropertyError:
            raise
        except Exception as e:
            logger.error(f"{action} of {self._path} failed: {e}")
            raise PropertyError(f"{action} of {self._path} failed: {e}") from e
        if done:
            self._fire(event_type)

    def load(self) -> None:
        """Load the file unless a load already completed."""
        if self._store.loaded:
            return
        self._wait(self._submit(self._load_task, False), "Loading", PropertyEventType.LOADED)

    def reload_nb(self) -> 'Future[bool]':
        """Schedule a reload; the returned future completes once values are replaced.

        LOADED fires from a done callback, on whichever thread completes the future.
        """
        future = self._submit(self._load_task, True)
        future.add_done_callback(partial(self._fire_after, PropertyEventType.LOADED))
        return future

    def reload(self) -> None:
        """Replace all values with the file contents, blocking until done."""
        self._wait(self._submit(self._load_task, True), "Reloading", PropertyEventType.LOADED)

    def save_nb(self) -> 'Future[bool]':
        """Schedule a save; the returned future completes once the file is written.

        Loads first if needed, so unloaded file contents are not overwritten.
        SAVED fires from a done callback, like LOADED for reload_nb().
        """
        self._ensure_loaded()
        future = self._submit(self._save_task)
        future.add_done_callback(partial(self._fire_after, PropertyEventType.SAVED))
        return future

    def save(self) -> None:
        """Write the current values to the file, blocking until done."""
        self._ensure_loaded()
        self._wait(self._submit(self._save_task), "Saving", PropertyEventType.SAVED)

    def save_property(self, key: K, value: Any) -> None:
        """Set one value and save the file."""
        self.set(key, value)
        self.save()

    def _ensure_loaded(self) -> None:
        if self._store.loaded:
            return
        if not self._config.auto_load:
            raise StoreNotReadyError(f"Properties from {self._path} have not been loaded yet")
        self.load()

    def close(self) -> None:
        """Shut down the executor if this manager created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> 'PropertiesManager[K]':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ========== RAW ACCESS ==========

    def _name(self, key: K) -> str:
        return self._translator.get_property_name(key)

    def _trim(self, value: Optional[str]) -> Optional[str]:
        if value is not None and self._auto_trim:
            return value.strip()
        return value

    def _retrieve(self, name: str) -> Optional[str]:
        return self._trim(self._store.get(name))

    def get_raw(self, key: K) -> Optional[str]:
        """Stored value of key before reference expansion, or None if unknown."""
        self._ensure_loaded()
        return self._retrieve(self._name(key))

    def get_default_raw(self, key: K) -> Optional[str]:
        return self._trim(self._store.get_default(self._name(key)))

    # ========== EVALUATED ACCESS ==========

    def get(self, key: K) -> Optional[str]:
        """Value of key with references expanded, or None if unknown."""
        self._ensure_loaded()
        name = self._name(key)
        return self._value_cache.get_or_compute(
            CacheKey.from_args(name, self._auto_trim),
            lambda: self._evaluator.evaluate(self._retrieve(name), self._retrieve, name),
        )

    def get_default(self, key: K) -> Optional[str]:
        """Default of key with references expanded against the current values."""
        self._ensure_loaded()
        return self._evaluator.evaluate(self.get_default_raw(key), self._retrieve, self._name(key))

    def _require(self, key: K) -> str:
        value = self.get(key)
        if value is None:
            raise UnknownKeyError(self._name(key))
        return value

    def _parse(self, key: K, parser: Callable[[str], T]) -> T:
        """Parse the value of key, falling back to the parsed default on failure."""
        value = self._require(key)
        try:
            return parser(value)
        except (ValueError, KeyError) as e:
            default = self.get_default(key)
            if default is None:
                raise
            logger.info(f"Property {self._name(key)}: cannot parse {value!r} ({e}), using default {default!r}")
            return parser(default)

    def get_bool(self, key: K) -> bool:
        """True only for a case-insensitive "true"."""
        return self._require(key).strip().lower() == 'true'

    def get_int(self, key: K) -> int:
        return self._parse(key, lambda value: int(value.strip()))

    def get_float(self, key: K) -> float:
        return self._parse(key, lambda value: float(value.strip()))

    def get_enum(self, key: K, enum_type: Type[E]) -> E:
        """Enum member named by the value (case-insensitive)."""
        def parse(value: str) -> E:
            try:
                return enum_type[value.strip().upper()]
            except KeyError:
                raise ValueError(f"{value!r} is not a {enum_type.__name__} member") from None
        return self._parse(key, parse)

    # ========== MUTATION ==========

    def set(self, key: K, value: Any) -> bool:
        """Set key to value (enums by lower-case name, bools as true/false, else str).

        Returns:
            True if the stored value changed.

        Raises:
            InvalidValueError: if value is None.
        """
        text = to_property_value(value)
        self._ensure_loaded()
        changed = self._store.set(self._name(key), text)
        if changed:
            self._fire(PropertyEventType.CHANGED, key)
        return changed

    def reset(self, key: K) -> bool:
        """Restore the default of key; keys without default are removed."""
        self._ensure_loaded()
        changed = self._store.reset_to_default(self._name(key))
        if changed:
            self._fire(PropertyEventType.RESET, key)
        return changed

    def reset_all(self) -> bool:
        """Restore every default and remove every key without one."""
        self._ensure_loaded()
        changed = self._store.reset_all()
        if changed:
            self._fire(PropertyEventType.RESET)
        return changed

    def undo(self, key: K) -> Optional[str]:
        """Step key back one value; returns the new raw value."""
        self._ensure_loaded()
        name = self._name(key)
        before = self._store.get(name)
        after = self._store.undo(name)
        if after != before:
            self._fire(PropertyEventType.CHANGED, key)
        return after

    def redo(self, key: K) -> Optional[str]:
        """Step key forward one value; returns the new raw value."""
        self._ensure_loaded()
        name = self._name(key)
        before = self._store.get(name)
        after = self._store.redo(name)
        if after != before:
            self._fire(PropertyEventType.CHANGED, key)
        return after

    def can_undo(self, key: K) -> bool:
        self._ensure_loaded()
        return self._store.can_undo(self._name(key))

    def can_redo(self, key: K) -> bool:
        self._ensure_loaded()
        return self._store.can_redo(self._name(key))

    # ========== QUERIES ==========

    def is_default(self, key: K) -> bool:
        """Whether the raw value of key equals its raw default."""
        raw = self.get_raw(key)
        default = self.get_default_raw(key)
        if raw is None and default is None:
            raise UnknownKeyError(self._name(key))
        return raw == default

    def is_modified(self, key: Optional[K] = None) -> bool:
        """Whether key (or, with no key, anything) differs from the saved state."""
        self._ensure_loaded()
        return self._store.is_modified(self._name(key) if key is not None else None)

    def is_referencing(self, key: K, other: K) -> bool:
        """Whether the value of key depends on other, directly or transitively."""
        return self._evaluator.is_referencing(self.get_raw(key), self._name(other), self._retrieve)

    def reference_at(self, key: K, position: int) -> Optional[Reference]:
        """Reference starting at position in the raw value of key."""
        return self._evaluator.reference_at(self.get_raw(key), position, self._retrieve)

    def key_set(self) -> Set[K]:
        """Keys of every known property; names without a key are skipped."""
        self._ensure_loaded()
        names = self._key_cache.get_or_compute(self._store.key_names)

        keys: Set[K] = set()
        for name in names:
            try:
                keys.add(self._translator.get_property_key(name))
            except (KeyError, ValueError):
                logger.debug(f"No key for property '{name}' in {self._path}")
        return keys

    def get_properties(self) -> Dict[str, str]:
        """Raw values of every known property, defaults included."""
        self._ensure_loaded()
        return self._store.snapshot(include_defaults=True)

"""
Token-based cache invalidation.

Caches values derived from a PropertyStore (evaluated values, key sets) and
drops them whenever the store's mutation token moves on.
"""

from dataclasses import dataclass
import threading
from typing import Any, Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

T = TypeVar('T')


@dataclass(frozen=True)
class CacheKey:
    """Immutable cache key that can include multiple components."""
    components: Tuple[Hashable, ...]

    @classmethod
    def from_args(cls, *args: Hashable) -> 'CacheKey':
        """Create cache key from variable arguments."""
        return cls(components=args)


class TokenCache(Generic[T]):
    """
    Keyed cache cleared whenever the token changes.

    Example:
        cache = TokenCache(lambda: store.token)
        value = cache.get_or_compute(
            CacheKey.from_args('evaluated', name),
            lambda: evaluator.evaluate(store.get(name), store.get, name),
        )
    """

    def __init__(self, token_provider: Callable[[], int], enabled: bool = True):
        """
        Args:
            token_provider: Function returning the current token value.
            enabled: When False every lookup recomputes.
        """
        self._token_provider = token_provider
        self._cache: Dict[CacheKey, T] = {}
        self._last_token: int = -1
        self._lock = threading.Lock()
        self.enabled = enabled

    def _check_token(self) -> int:
        current_token = self._token_provider()
        if current_token != self._last_token:
            self._cache.clear()
            self._last_token = current_token
        return current_token

    def get_or_compute(self, key: CacheKey, compute_fn: Callable[[], T]) -> T:
        """Return the cached value for key, computing and storing it on a miss.

        The token is read before computing; a value computed while the token
        moved is returned but not cached.
        """
        if not self.enabled:
            return compute_fn()

        with self._lock:
            token = self._check_token()
            if key in self._cache:
                return self._cache[key]

        value = compute_fn()

        with self._lock:
            if self._token_provider() == token:
                self._cache[key] = value
        return value

    def get(self, key: CacheKey) -> Optional[T]:
        """Cached value for key, or None if absent or invalidated."""
        with self._lock:
            self._check_token()
            return self._cache.get(key)

    def put(self, key: CacheKey, value: T) -> None:
        with self._lock:
            self._check_token()
            self._cache[key] = value

    def invalidate(self) -> None:
        """Manually invalidate the entire cache."""
        with self._lock:
            self._cache.clear()
            self._last_token = -1

    def __len__(self) -> int:
        with self._lock:
            self._check_token()
            return len(self._cache)


class SingleValueTokenCache(Generic[T]):
    """
    Token cache for a single value (no key needed).

    Example:
        names = SingleValueTokenCache(lambda: store.token)
        keys = names.get_or_compute(store.key_names)
    """

    _EMPTY: Any = object()

    def __init__(self, token_provider: Callable[[], int], enabled: bool = True):
        self._token_provider = token_provider
        self._cached_value: Any = self._EMPTY
        self._cached_token: int = -1
        self._lock = threading.Lock()
        self.enabled = enabled

    def get_or_compute(self, compute_fn: Callable[[], T]) -> T:
        if not self.enabled:
            return compute_fn()

        with self._lock:
            token = self._token_provider()
            if token == self._cached_token and self._cached_value is not self._EMPTY:
                return self._cached_value

        value = compute_fn()

        with self._lock:
            if self._token_provider() == token:
                self._cached_value = value
                self._cached_token = token
        return value

    def invalidate(self) -> None:
        """Manually invalidate the cache."""
        with self._lock:
            self._cached_value = self._EMPTY
            self._cached_token = -1

"""
Bounded in-memory LRU cache with per-entry expiry, plus a memoize decorator.
"""

import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from functools import wraps
from typing import Any, Generic, TypeVar

V = TypeVar("V")

_MISSING = object()


class TTLCache(Generic[V]):
    """
    Least-recently-used cache that also forgets entries older than `ttl` seconds.
    """

    def __init__(self, max_size: int = 1000, ttl: float = 600.0):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.ttl = ttl
        self._entries: OrderedDict[Hashable, tuple[V, float]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable, default: Any = None) -> V | Any:
        item = self._entries.get(key, _MISSING)
        if item is _MISSING:
            self.misses += 1
            return default

        value, expires_at = item
        if time.monotonic() >= expires_at:
            del self._entries[key]
            self.misses += 1
            return default

        self._entries.move_to_end(key)
        self.hits += 1
        return value

    def set(self, key: Hashable, value: V) -> None:
        self._entries[key] = (value, time.monotonic() + self.ttl)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0


def memoize(
    cache: TTLCache, key_fn: Callable[..., Hashable] | None = None
) -> Callable[[Callable[..., V]], Callable[..., V]]:
    """
    Caches a function's results in `cache`. Exceptions are not cached.

    Args:
        cache: The cache instance backing the decorated function.
        key_fn: Builds the cache key from the call arguments; defaults to the
            positional and keyword arguments themselves.
    """

    def decorator(func: Callable[..., V]) -> Callable[..., V]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> V:
            key = (
                key_fn(*args, **kwargs)
                if key_fn
                else (args, tuple(sorted(kwargs.items())))
            )
            cached = cache.get(key, _MISSING)
            if cached is not _MISSING:
                return cached
            result = func(*args, **kwargs)
            cache.set(key, result)
            return result

        wrapper.cache = cache  # type: ignore[attr-defined]
        return wrapper

    return decorator

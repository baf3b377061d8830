"""LRU memoisation for derived views keyed by immutable inputs."""

from __future__ import annotations

from collections import OrderedDict
import threading
from typing import Callable, Generic, Hashable, TypeVar

_K = TypeVar("_K", bound=Hashable)
_V = TypeVar("_V")

DEFAULT_CACHE_SIZE = 32

__all__ = ["DEFAULT_CACHE_SIZE", "LRUCache", "resolve_cache_size"]


def resolve_cache_size(cache_size: int | None) -> int:
    """Normalise cache sizes read from configuration."""

    if cache_size is None:
        return DEFAULT_CACHE_SIZE
    return max(0, int(cache_size))


class _LRUCache(Generic[_K, _V]):
    """Minimal LRU cache."""

    __slots__ = ("_maxsize", "_data", "_lock")

    def __init__(self, maxsize: int) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._maxsize = int(maxsize)
        self._data: "OrderedDict[_K, _V]" = OrderedDict()
        self._lock = threading.RLock()

    def get_or_create(self, key: _K, factory: Callable[[], _V]) -> _V:
        with self._lock:
            try:
                value = self._data.pop(key)
            except KeyError:
                value = factory()
            else:
                self._data[key] = value
                return value
            self._data[key] = value
            if len(self._data) > self._maxsize:
                self._data.popitem(last=False)
            return value

    def __len__(self) -> int:
        return len(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class LRUCache(Generic[_K, _V]):
    """Public wrapper around :class:`_LRUCache` supporting ``maxsize >= 0``.

    A zero capacity disables memoisation: every lookup calls the factory.
    """

    __slots__ = ("_maxsize", "_cache")

    def __init__(self, *, maxsize: int) -> None:
        size = int(maxsize)
        if size < 0:
            raise ValueError("maxsize must be >= 0")
        self._maxsize = size
        self._cache: _LRUCache[_K, _V] | None = None
        if size > 0:
            self._cache = _LRUCache(maxsize=size)

    @property
    def maxsize(self) -> int:
        return self._maxsize

    def __len__(self) -> int:
        return 0 if self._cache is None else len(self._cache)

    def get_or_create(self, key: _K, factory: Callable[[], _V]) -> _V:
        """Return the cached value for ``key`` or materialise it via ``factory``."""

        cache = self._cache
        if cache is None:
            return factory()
        return cache.get_or_create(key, factory)

    def clear(self) -> None:
        cache = self._cache
        if cache is None:
            return
        cache.clear()

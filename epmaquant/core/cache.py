"""
Caching utilities for atomic data lookups.
"""

from functools import wraps
from typing import Callable, Any, Dict, Hashable, Tuple
import threading
from collections import OrderedDict

from epmaquant.core.logging_config import get_logger

logger = get_logger("core.cache")

_MISSING = object()


class LRUCache:
    """
    Thread-safe Least Recently Used (LRU) cache with a size limit.

    Keys are built directly from the (hashable) call arguments so lookups stay
    cheap enough to sit inside the iteration loop. A lock guards every access
    because batch quantification shares the caches between worker threads.
    """

    def __init__(self, max_size: int = 128):
        """
        Initialize LRU cache.

        Parameters
        ----------
        max_size : int
            Maximum number of items to cache
        """
        self.max_size = max_size
        self.cache: "OrderedDict[Hashable, Any]" = OrderedDict()
        self.hits = 0
        self.misses = 0
        self._lock = threading.Lock()

    @staticmethod
    def _make_key(*args, **kwargs) -> Tuple:
        """Create cache key from arguments."""
        if kwargs:
            return args + tuple(sorted(kwargs.items()))
        return args

    def get(self, key: Hashable, default: Any = None) -> Any:
        """
        Get item from cache.

        Parameters
        ----------
        key : hashable
            Cache key
        default : Any
            Value returned when the key is absent

        Returns
        -------
        Any
            Cached value, or ``default`` if not found
        """
        with self._lock:
            if key not in self.cache:
                self.misses += 1
                return default
            self.cache.move_to_end(key)
            self.hits += 1
            return self.cache[key]

    def set(self, key: Hashable, value: Any) -> None:
        """
        Set item in cache.

        Parameters
        ----------
        key : hashable
            Cache key
        value : Any
            Value to cache
        """
        with self._lock:
            if key in self.cache:
                self.cache.move_to_end(key)
            self.cache[key] = value

            # Evict if over size limit
            if len(self.cache) > self.max_size:
                oldest_key, _ = self.cache.popitem(last=False)
                logger.debug(f"Evicted cache entry: {oldest_key}")

    def clear(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            self.cache.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns
        -------
        dict
            Cache statistics
        """
        with self._lock:
            total = self.hits + self.misses
            hit_rate = self.hits / total if total > 0 else 0.0

            return {
                "size": len(self.cache),
                "max_size": self.max_size,
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": hit_rate,
            }


# Global cache instances
_atomic_data_cache = LRUCache(max_size=4096)
_mac_cache = LRUCache(max_size=16384)


def _cached_with(cache: LRUCache) -> Callable:
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = (func.__qualname__,) + cache._make_key(*args[1:], **kwargs)
            cached = cache.get(cache_key, _MISSING)
            if cached is not _MISSING:
                return cached

            result = func(*args, **kwargs)
            cache.set(cache_key, result)
            return result

        return wrapper

    return decorator


def cached_atomic_data(func: Callable) -> Callable:
    """
    Decorator to cache edge, line and yield lookups.

    Intended for methods; the first positional argument (``self``) is not part
    of the key.
    """
    return _cached_with(_atomic_data_cache)(func)


def cached_mac(func: Callable) -> Callable:
    """Decorator to cache mass absorption coefficient lookups (method form)."""
    return _cached_with(_mac_cache)(func)


def get_cache_stats() -> Dict[str, Dict[str, Any]]:
    """
    Get statistics for all caches.

    Returns
    -------
    dict
        Dictionary mapping cache name to statistics
    """
    return {
        "atomic_data": _atomic_data_cache.stats(),
        "mac": _mac_cache.stats(),
    }


def clear_all_caches() -> None:
    """Clear all caches."""
    _atomic_data_cache.clear()
    _mac_cache.clear()
    logger.info("All caches cleared")

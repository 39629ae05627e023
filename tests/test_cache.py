"""
Tests for the atomic data caches.
"""

import pytest

from epmaquant.core.cache import (
    LRUCache,
    cached_atomic_data,
    clear_all_caches,
    get_cache_stats,
)


def test_lru_eviction():
    cache = LRUCache(max_size=2)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.get("a") == 1
    cache.set("c", 3)
    # 'b' was least recently used
    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.get("c") == 3


def test_stats():
    cache = LRUCache(max_size=4)
    cache.set("a", 1)
    cache.get("a")
    cache.get("missing", 0)
    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 0.5
    cache.clear()
    assert cache.stats()["size"] == 0


def test_cached_method_ignores_self():
    calls = []

    class Source:
        @cached_atomic_data
        def edge(self, z, shell):
            calls.append((z, shell))
            return z * 100.0

    clear_all_caches()
    assert Source().edge(14, "K") == 1400.0
    assert Source().edge(14, "K") == 1400.0
    assert calls == [(14, "K")]
    assert get_cache_stats()["atomic_data"]["hits"] >= 1


def test_cached_none_result():
    """None is a valid cached value."""
    calls = []

    class Source:
        @cached_atomic_data
        def missing(self, z):
            calls.append(z)
            return None

    clear_all_caches()
    assert Source().missing(3) is None
    assert Source().missing(3) is None
    assert len(calls) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

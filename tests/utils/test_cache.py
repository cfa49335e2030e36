"""Tests for caching utilities."""

import aiocache
import pytest

from anistream.utils.cache import gattl_cache, generic_hash


def test_generic_hash_order_insensitive_for_dicts():
    """Test that generic_hash produces the same hash for dicts in different orders."""
    data_one = {"b": [1, 2], "a": {"x": 1}}
    data_two = {"a": {"x": 1}, "b": [1, 2]}

    assert generic_hash(data_one) == generic_hash(data_two)


def test_generic_hash_handles_cycles():
    """Test that generic_hash can handle cyclic data structures."""
    cyclic = []
    cyclic.append(cyclic)

    result = generic_hash(cyclic)

    assert isinstance(result, int)


def test_generic_hash_distinguishes_keyword_arguments():
    """Keyword arguments take part in the hash."""
    assert generic_hash(1, url="a") != generic_hash(1, url="b")


@pytest.mark.asyncio
async def test_gattl_cache_caches_async_functions():
    """Test that gattl_cache caches async results with unhashable arguments."""
    call_count = 0

    @gattl_cache(ttl=60)
    async def fetch(value):
        nonlocal call_count
        call_count += 1
        return value

    assert await fetch(["a", "b"]) == ["a", "b"]
    assert await fetch(["a", "b"]) == ["a", "b"]
    assert call_count == 1

    assert await fetch(["c"]) == ["c"]
    assert call_count == 2

    aiocache.caches._caches.clear()


@pytest.mark.asyncio
async def test_gattl_cache_can_skip_none_results():
    """With cache_none=False only real results are cached."""
    results = [None, "found", "stale"]

    @gattl_cache(ttl=60, cache_none=False)
    async def lookup(key):
        return results.pop(0)

    assert await lookup("a") is None
    assert await lookup("a") == "found"
    assert await lookup("a") == "found"
    assert results == ["stale"]

    aiocache.caches._caches.clear()

"""Tests for the analysis cache and the bounded TTL cache."""

import asyncio

import pytest

from docintel.core.cache import AnalysisCache, TTLCache, analysis_key


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


# =============================================================================
# AnalysisCache
# =============================================================================


def test_analysis_key_is_order_independent():
    """Test that the key depends on the id set, not its order."""
    assert analysis_key(["b", "a"], "across") == analysis_key(["a", "b", "a"], "across")
    assert analysis_key(["a", "b"], "across") != analysis_key(["a", "b"], "within")
    assert analysis_key(["b", "a"], "across").canonical == "across:a,b"


def test_get_returns_copy():
    """Test callers cannot mutate the stored entry."""
    cache = AnalysisCache()
    key = analysis_key(["a"])
    cache.set(key, {"cached": False, "items": [1]})

    value = cache.get(key)
    value["cached"] = True
    value["items"].append(2)

    assert cache.get(key) == {"cached": False, "items": [1]}


def test_invalidate_removes_only_intersecting_entries():
    """Test deleting a document purges every analysis that involved it."""
    cache = AnalysisCache()
    cache.set(analysis_key(["a"]), "within-a")
    cache.set(analysis_key(["a", "b"], "across"), "a-vs-b")
    cache.set(analysis_key(["b", "c"], "across"), "b-vs-c")

    removed = cache.invalidate(["a"])

    assert removed == 2
    assert cache.get(analysis_key(["a"])) is None
    assert cache.get(analysis_key(["a", "b"], "across")) is None
    assert cache.get(analysis_key(["c", "b"], "across")) == "b-vs-c"


def test_invalidate_all():
    cache = AnalysisCache()
    cache.set(analysis_key(["a"]), 1)
    cache.set(analysis_key(["b"]), 2)

    assert cache.invalidate() == 2
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_get_or_compute_caches_until_forced():
    """Test a hit skips computation and force recomputes."""
    cache = AnalysisCache()
    key = analysis_key(["a"])
    calls = []

    async def compute():
        calls.append(1)
        return len(calls)

    assert await cache.get_or_compute(key, compute) == (1, False)
    assert await cache.get_or_compute(key, compute) == (1, True)
    assert await cache.get_or_compute(key, compute, force=True) == (2, False)
    assert await cache.get_or_compute(key, compute) == (2, True)


@pytest.mark.asyncio
async def test_concurrent_requests_share_one_computation():
    """Test two simultaneous misses for the same key compute once."""
    cache = AnalysisCache()
    key = analysis_key(["a", "b"], "across")
    calls = []

    async def compute():
        calls.append(1)
        await asyncio.sleep(0.01)
        return "result"

    results = await asyncio.gather(
        cache.get_or_compute(key, compute),
        cache.get_or_compute(key, compute),
    )

    assert len(calls) == 1
    assert sorted(from_cache for _, from_cache in results) == [False, True]
    assert all(value == "result" for value, _ in results)


@pytest.mark.asyncio
async def test_result_invalidated_mid_compute_is_not_stored():
    """Test a deletion during computation prevents caching the stale result."""
    cache = AnalysisCache()
    key = analysis_key(["a"])

    async def compute():
        cache.invalidate(["a"])
        return "stale"

    value, from_cache = await cache.get_or_compute(key, compute)

    assert value == "stale"
    assert from_cache is False
    assert cache.get(key) is None


@pytest.mark.asyncio
async def test_failed_compute_is_not_cached():
    cache = AnalysisCache()
    key = analysis_key(["a"])

    async def compute():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await cache.get_or_compute(key, compute)
    assert len(cache) == 0


# =============================================================================
# TTLCache
# =============================================================================


def test_ttl_cache_expires_entries():
    """Test entries vanish once their TTL has elapsed."""
    clock = FakeClock()
    cache = TTLCache(max_size=10, default_ttl=60, clock=clock)
    cache.set("q", [0.1])

    clock.now += 59
    assert cache.get("q") == [0.1]

    clock.now += 1
    assert cache.get("q") is None
    assert len(cache) == 0


def test_ttl_cache_per_entry_ttl():
    clock = FakeClock()
    cache = TTLCache(max_size=10, default_ttl=60, clock=clock)
    cache.set("short", 1, ttl=5)
    cache.set("long", 2)

    clock.now += 10
    assert cache.get("short") is None
    assert cache.get("long") == 2


def test_ttl_cache_evicts_oldest_when_full():
    """Test the oldest insertion is evicted at capacity."""
    cache = TTLCache(max_size=2, default_ttl=60, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3
    assert len(cache) == 2


def test_ttl_cache_overwrite_does_not_evict():
    cache = TTLCache(max_size=2, default_ttl=60, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("b", 20)

    assert cache.get("a") == 1
    assert cache.get("b") == 20


def test_ttl_cache_delete_and_clear():
    cache = TTLCache(max_size=5, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)

    cache.delete("a")
    cache.delete("missing")
    assert cache.get("a") is None

    cache.clear()
    assert len(cache) == 0


def test_ttl_cache_rejects_zero_size():
    with pytest.raises(ValueError):
        TTLCache(max_size=0)

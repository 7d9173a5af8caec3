"""
Tests for the two-tier stale-while-revalidate cache.
"""

import asyncio

from travel_rag.cache.tiered_cache import CacheStatus, TieredCache
from travel_rag.resilience.background import BackgroundTasks

from tests.fakes import BrokenRedis, connected_store


def make_cache(clock, store=None, monitor=None, **kwargs):
    return TieredCache(
        "rag", store, fresh_ms=1000, stale_ms=2000, max_size=10,
        background=BackgroundTasks(), monitor=monitor, clock=clock, **kwargs,
    )


class TestFreshness:
    async def test_fresh_then_stale_then_miss(self, clock):
        cache = make_cache(clock)
        await cache.set("k", ["hotel"])

        clock.advance(0.5)
        lookup = await cache.get("k")
        assert lookup.status is CacheStatus.FRESH
        assert lookup.value == ["hotel"]

        clock.advance(0.5)
        lookup = await cache.get("k")
        assert lookup.status is CacheStatus.STALE
        assert lookup.value == ["hotel"]

        clock.advance(1.75)
        assert (await cache.get("k")).status is CacheStatus.STALE

        clock.advance(0.25)
        lookup = await cache.get("k")
        assert lookup.status is CacheStatus.MISS
        assert not lookup.hit

    async def test_stale_read_revalidates_once(self, clock, monitor):
        cache = make_cache(clock, monitor=monitor)
        await cache.set("k", "old")
        clock.advance(1.5)

        release = asyncio.Event()
        calls = []

        async def revalidate():
            calls.append(1)
            await release.wait()
            await cache.set("k", "new")

        await cache.get("k", revalidate=revalidate)
        await cache.get("k", revalidate=revalidate)
        release.set()
        await cache.background.drain()

        assert calls == [1]
        lookup = await cache.get("k")
        assert lookup.status is CacheStatus.FRESH
        assert lookup.value == "new"
        assert monitor.counter_value("rag.cache_stale") == 2
        assert monitor.counter_value("rag.cache_hit") == 1

    async def test_failed_revalidation_keeps_serving_stale(self, clock):
        cache = make_cache(clock)
        await cache.set("k", "old")
        clock.advance(1.5)

        async def revalidate():
            raise RuntimeError("vector index down")

        lookup = await cache.get("k", revalidate=revalidate)
        await cache.background.drain()
        assert lookup.value == "old"
        assert (await cache.get("k")).value == "old"


class TestTiers:
    async def test_durable_hit_is_shared_across_instances(self, clock, store):
        writer = make_cache(clock, store)
        reader = make_cache(clock, store)
        await writer.set("k", {"hotels": [1]})

        lookup = await reader.get("k")
        assert lookup.status is CacheStatus.FRESH
        assert lookup.tier == "l2"
        # mirrored into L1
        assert reader.stats()["l1_size"] == 1

    async def test_durable_ttl_covers_fresh_and_stale(self, clock, store, fake_redis):
        cache = make_cache(clock, store)
        await cache.set("k", 1, fresh_ms=1500, stale_ms=1000)
        assert fake_redis.ttls["k"]["ex"] == 3

    async def test_l1_only_without_store(self, clock):
        cache = make_cache(clock)
        await cache.set("k", 1)
        assert (await cache.get("k")).tier == "l1"

    async def test_unreachable_durable_tier_is_a_miss(self, clock, monitor):
        store = await connected_store(BrokenRedis())
        cache = make_cache(clock, store, monitor=monitor)

        assert (await cache.get("k")).status is CacheStatus.MISS
        await cache.set("k", "value")
        lookup = await cache.get("k")
        assert lookup.status is CacheStatus.FRESH
        assert lookup.tier == "l1"
        assert monitor.counter_value("rag.durable_error") >= 2

    async def test_newer_l1_entry_beats_older_durable_entry(self, clock, store, fake_redis):
        other = make_cache(clock, store)
        await other.set("k", "durable")
        clock.advance(1.2)

        cache = make_cache(clock, store)
        # durable write fails, so only L1 has the newer value
        store._available = False
        await cache.set("k", "local")
        store._available = True

        lookup = await cache.get("k")
        assert lookup.value == "local"
        assert lookup.tier == "l1"

    async def test_malformed_durable_entry_is_ignored(self, clock, store, fake_redis):
        fake_redis.data["k"] = '{"unexpected": true}'
        cache = make_cache(clock, store)
        assert (await cache.get("k")).status is CacheStatus.MISS


class TestLastResort:
    async def test_get_any_serves_expired_entries(self, clock):
        cache = make_cache(clock)
        await cache.set("k", "ancient")
        clock.advance(10)

        assert (await cache.get("k")).status is CacheStatus.MISS
        assert await cache.get_any("k") == "ancient"
        assert cache.stats()["expired_size"] == 1

    async def test_set_clears_expired_copy(self, clock):
        cache = make_cache(clock)
        await cache.set("k", "ancient")
        clock.advance(10)
        await cache.get("k")

        await cache.set("k", "fresh")
        assert cache.stats()["expired_size"] == 0
        assert await cache.get_any("k") == "fresh"

    async def test_get_any_unknown_key(self, clock):
        assert await make_cache(clock).get_any("nope") is None

    async def test_peek_durable_fresh_only(self, clock, store):
        cache = make_cache(clock, store)
        await cache.set("k", "v")
        assert await cache.peek_durable("k", fresh_only=True) == "v"

        clock.advance(1.5)
        assert await cache.peek_durable("k") == "v"
        assert await cache.peek_durable("k", fresh_only=True) is None

    async def test_invalidate(self, clock, store, fake_redis):
        cache = make_cache(clock, store)
        await cache.set("k", "v")
        await cache.invalidate("k")
        assert "k" not in fake_redis.data
        assert (await cache.get("k")).status is CacheStatus.MISS

"""
Tests for RedisStore: JSON get/set, lock primitive and failure wrapping.
"""

import pytest

from travel_rag.cache.redis_client import RedisStore
from travel_rag.errors import CacheUnavailableError

from tests.fakes import BrokenRedis, connected_store


class TestRedisStore:
    async def test_json_and_ttl(self, store, fake_redis):
        await store.set_json("rag:search:v1:abc:top5", {"hotels": [1, 2]}, ttl_seconds=900)

        assert await store.get_json("rag:search:v1:abc:top5") == {"hotels": [1, 2]}
        assert fake_redis.ttls["rag:search:v1:abc:top5"]["ex"] == 900
        assert await store.get_json("missing") is None

    async def test_lock_is_exclusive_and_owner_checked(self, store, fake_redis):
        assert await store.acquire_lock("rag:search:lock:abc", "token-a", 5000)
        assert not await store.acquire_lock("rag:search:lock:abc", "token-b", 5000)
        assert fake_redis.ttls["rag:search:lock:abc"]["px"] == 5000

        assert not await store.release_lock("rag:search:lock:abc", "token-b")
        assert "rag:search:lock:abc" in fake_redis.data

        assert await store.release_lock("rag:search:lock:abc", "token-a")
        assert "rag:search:lock:abc" not in fake_redis.data

    async def test_unreachable_at_connect_is_silent(self):
        store = RedisStore("redis://fake", client=BrokenRedis(ping_ok=False), timeout_ms=100, enabled=True)

        assert await store.connect() is False
        assert not store.available
        assert store.client is None
        assert await store.ping() is False
        with pytest.raises(CacheUnavailableError):
            await store.get_json("key")

    async def test_disabled(self):
        store = RedisStore("redis://fake", enabled=False)
        assert await store.connect() is False
        assert not store.available

    async def test_command_failures_are_wrapped(self):
        store = await connected_store(BrokenRedis())
        assert store.available

        with pytest.raises(CacheUnavailableError):
            await store.get_json("key")
        with pytest.raises(CacheUnavailableError):
            await store.set_json("key", {"a": 1}, 60)
        with pytest.raises(CacheUnavailableError):
            await store.acquire_lock("lock", "t", 1000)

    async def test_unreadable_json_is_wrapped(self, store, fake_redis):
        fake_redis.data["bad"] = "{not json"
        with pytest.raises(CacheUnavailableError):
            await store.get_json("bad")

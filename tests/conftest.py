"""Pytest configuration for the Travel RAG Assistant tests."""

import pytest
import pytest_asyncio

from travel_rag.utils.performance import PerformanceMonitor

from tests.fakes import FakeClock, FakeRedis, connected_store


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def monitor():
    return PerformanceMonitor()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest_asyncio.fixture
async def store(fake_redis):
    """RedisStore connected to an in-memory FakeRedis"""
    store = await connected_store(fake_redis)
    yield store
    await store.close()

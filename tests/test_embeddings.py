"""
Tests for the cached EmbeddingService and provider selection.
"""

import asyncio
import hashlib
import math
from types import SimpleNamespace

import pytest

from travel_rag.cache.embeddings import (
    EmbeddingService,
    OllamaEmbeddingProvider,
    OpenAIEmbeddingProvider,
    create_embedding_provider,
)
from travel_rag.cache.single_flight import SingleFlightCoordinator
from travel_rag.cache.tiered_cache import TieredCache
from travel_rag.config import Settings
from travel_rag.errors import DependencyError, OperationTimeoutError

from tests.fakes import FakeEmbeddingProvider, fake_vector


def make_service(provider, store=None, monitor=None, timeout_ms=500):
    cache = TieredCache("embed", store, fresh_ms=30 * 24 * 3600 * 1000, stale_ms=0, max_size=100)
    return EmbeddingService(provider, cache, SingleFlightCoordinator(store), timeout_ms=timeout_ms, monitor=monitor)


class TestEmbeddingService:
    def test_content_key(self):
        expected = "embed:" + hashlib.sha256("hotels in tulum".encode("utf-8")).hexdigest()
        assert EmbeddingService.content_key("hotels in tulum") == expected

    async def test_second_call_is_served_from_cache(self):
        provider = FakeEmbeddingProvider()
        service = make_service(provider)

        first = await service.embed("beach resorts")
        second = await service.embed("beach resorts")

        assert first == second == fake_vector("beach resorts")
        assert provider.calls == ["beach resorts"]

    async def test_cache_is_shared_through_redis(self, store):
        provider = FakeEmbeddingProvider()
        await make_service(provider, store).embed("spa hotels")
        await make_service(provider, store).embed("spa hotels")
        assert provider.calls == ["spa hotels"]

    async def test_concurrent_requests_share_one_call(self):
        provider = FakeEmbeddingProvider(delay=0.01)
        service = make_service(provider)

        vectors = await asyncio.gather(*(service.embed("tulum") for _ in range(5)))
        assert provider.calls == ["tulum"]
        assert all(v == vectors[0] for v in vectors)

    async def test_timeout_is_counted_and_raised(self, monitor):
        provider = FakeEmbeddingProvider(delay=0.5)
        service = make_service(provider, monitor=monitor, timeout_ms=20)

        with pytest.raises(OperationTimeoutError):
            await service.embed("slow")
        assert monitor.counter_value("embed.timeout") == 1

    async def test_provider_error_becomes_dependency_error(self):
        service = make_service(FakeEmbeddingProvider(error=RuntimeError("quota exceeded")))
        with pytest.raises(DependencyError) as exc_info:
            await service.embed("anything")
        assert exc_info.value.dependency == "embedding"

    async def test_invalid_vector_is_rejected_and_not_cached(self):
        provider = FakeEmbeddingProvider(vector=[0.1, math.nan])
        service = make_service(provider)

        with pytest.raises(DependencyError):
            await service.embed("bad")
        with pytest.raises(DependencyError):
            await service.embed("bad")
        assert len(provider.calls) == 2

    async def test_embed_batch_keeps_order(self):
        service = make_service(FakeEmbeddingProvider())
        texts = ["cancun", "tulum", "cabo"]
        assert await service.embed_batch(texts) == [fake_vector(t) for t in texts]


class TestProviders:
    async def test_openai_provider(self):
        requests = []

        async def create(model, input):
            requests.append((model, input))
            return SimpleNamespace(data=[SimpleNamespace(embedding=[0.1, 0.2])])

        client = SimpleNamespace(embeddings=SimpleNamespace(create=create))
        provider = OpenAIEmbeddingProvider("sk-test", client=client)

        assert await provider.embed("tulum") == [0.1, 0.2]
        assert requests == [("text-embedding-3-small", "tulum")]

    async def test_ollama_provider(self):
        async def embeddings(model, prompt):
            return {"embedding": [0.3, 0.4]}

        provider = OllamaEmbeddingProvider("http://localhost:11434", client=SimpleNamespace(embeddings=embeddings))
        assert await provider.embed("cabo") == [0.3, 0.4]

    def test_provider_selection(self):
        config = Settings()
        config.OPENAI_API_KEY = "sk-test"
        assert isinstance(create_embedding_provider(config), OpenAIEmbeddingProvider)

        config.OPENAI_API_KEY = ""
        assert isinstance(create_embedding_provider(config), OllamaEmbeddingProvider)

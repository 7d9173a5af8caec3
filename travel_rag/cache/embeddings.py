"""
Embedding Service
OpenAI or Ollama embeddings behind a content-hash cache
"""

import asyncio
import hashlib
from typing import List, Optional

import numpy as np
import ollama
from openai import AsyncOpenAI
from loguru import logger

from ..config import Settings, settings as default_settings
from ..errors import DependencyError, OperationTimeoutError
from ..resilience.timeout import with_timeout
from ..utils.performance import PerformanceMonitor
from .single_flight import SingleFlightCoordinator
from .tiered_cache import TieredCache


class OpenAIEmbeddingProvider:
    """text-embedding-3-small (1536 dimensions) through the OpenAI API"""

    def __init__(self, api_key: str, model: str = "text-embedding-3-small", client: Optional[AsyncOpenAI] = None):
        self.model = model
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def embed(self, text: str) -> List[float]:
        response = await self.client.embeddings.create(model=self.model, input=text)
        return list(response.data[0].embedding)


class OllamaEmbeddingProvider:
    """
    Local embeddings through Ollama

    Run `ollama pull mxbai-embed-large` first (1024 dimensions).
    """

    def __init__(self, host: str, model: str = "mxbai-embed-large", client: Optional[ollama.AsyncClient] = None):
        self.model = model
        self.client = client or ollama.AsyncClient(host=host)

    async def embed(self, text: str) -> List[float]:
        response = await self.client.embeddings(model=self.model, prompt=text)
        return list(response["embedding"])


def create_embedding_provider(config: Settings = default_settings):
    """OpenAI when a key is configured, Ollama otherwise"""
    if config.use_openai:
        logger.info(f"Embedding provider: OpenAI ({config.OPENAI_EMBEDDING_MODEL})")
        return OpenAIEmbeddingProvider(config.OPENAI_API_KEY, config.OPENAI_EMBEDDING_MODEL)
    logger.info(f"Embedding provider: Ollama ({config.OLLAMA_EMBEDDING_MODEL})")
    return OllamaEmbeddingProvider(config.OLLAMA_BASE_URL, config.OLLAMA_EMBEDDING_MODEL)


class EmbeddingService:
    """
    Cached text embeddings

    Features:
    - Cache key is the sha256 of the exact text (text -> vector is stable)
    - 30-day freshness by default, shared across processes through Redis
    - Concurrent requests for the same text share one provider call
    - Provider call bounded by `timeout_ms`; the late result is discarded

    Usage:
        service = EmbeddingService(provider, cache, single_flight, timeout_ms=3000)
        vector = await service.embed("beachfront hotels in tulum")
    """

    def __init__(
        self,
        provider,
        cache: TieredCache,
        single_flight: SingleFlightCoordinator,
        timeout_ms: int = 3000,
        monitor: Optional[PerformanceMonitor] = None,
    ):
        self.provider = provider
        self.cache = cache
        self.single_flight = single_flight
        self.timeout_ms = timeout_ms
        self.monitor = monitor

    @staticmethod
    def content_key(text: str) -> str:
        return "embed:" + hashlib.sha256(text.encode("utf-8")).hexdigest()

    async def embed(self, text: str) -> List[float]:
        """
        Embedding for `text`, from cache when possible

        Raises:
            OperationTimeoutError: Provider exceeded the deadline
            DependencyError: Provider failed or returned an invalid vector
        """
        key = self.content_key(text)
        lookup = await self.cache.get(key)
        if lookup.hit:
            return lookup.value
        return await self.single_flight.run(key, lambda: self._compute(key, text))

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        return list(await asyncio.gather(*(self.embed(t) for t in texts)))

    async def _compute(self, key: str, text: str) -> List[float]:
        try:
            vector = await with_timeout(self.provider.embed(text), self.timeout_ms, "embedding")
        except OperationTimeoutError:
            self._increment("embed.timeout")
            logger.warning(f"Embedding timed out after {self.timeout_ms}ms")
            raise
        except Exception as e:
            self._increment("embed.error")
            raise DependencyError("embedding", str(e)) from e

        vector = self._validate(vector)
        self._increment("embed.computed")
        logger.debug(f"Generated embedding for: '{text[:50]}' ({len(vector)} dims)")
        await self.cache.set(key, vector)
        return vector

    @staticmethod
    def _validate(vector) -> List[float]:
        arr = np.asarray(vector, dtype=float)
        if arr.ndim != 1 or arr.size == 0 or not np.all(np.isfinite(arr)):
            raise DependencyError("embedding", f"invalid vector of shape {arr.shape}")
        return arr.tolist()

    def _increment(self, event: str):
        if self.monitor is not None:
            self.monitor.increment(event)

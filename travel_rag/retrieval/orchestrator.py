"""
Retrieval Orchestrator
Hotel search: tiered cache -> single-flight -> embed -> vector query -> TripAdvisor fallback
"""

import hashlib
from contextlib import nullcontext
from typing import Any, Dict, List, Optional

from loguru import logger

from ..cache.embeddings import EmbeddingService
from ..cache.single_flight import SingleFlightCoordinator
from ..cache.tiered_cache import TieredCache
from ..errors import CircuitOpenError, DependencyError, ExhaustedFallbackError, RetrievalError
from ..resilience.background import BackgroundTasks
from ..resilience.circuit_breaker import CircuitBreaker
from ..resilience.timeout import with_timeout
from ..schemas.ai_schemas import Hotel
from ..utils.hotel_formatting import format_vector_match, hotel_index_metadata, hotel_search_text
from ..utils.performance import PerformanceMonitor
from .locations import extract_destination, matches_location
from .tripadvisor import TripAdvisorClient
from .vector_index import VectorIndex, VectorRecord


CACHE_KEY_VERSION = "v1"


def normalize_query(query: str) -> str:
    """
    Lowercase, trim and collapse whitespace

    Example:
        >>> normalize_query("  Hotels   in CANCUN ")
        'hotels in cancun'
    """
    return " ".join(query.lower().split())


def query_hash(normalized: str) -> str:
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def search_cache_key(normalized: str, top_k: int) -> str:
    return f"rag:search:{CACHE_KEY_VERSION}:{query_hash(normalized)}:top{top_k}"


def search_lock_key(normalized: str) -> str:
    return f"rag:search:lock:{query_hash(normalized)}"


class RetrievalOrchestrator:
    """
    Cached, deduplicated hotel retrieval with graceful degradation.

    Pipeline per query:
        1. Cache: fresh -> return; stale -> return and revalidate detached
        2. Single-flight slot (in-process task sharing + Redis lock)
        3. Embed the normalized query (cached by content hash)
        4. Vector query for top_k * overfetch candidates, filtered by the
           destination's city; relevance order is kept
        5. TripAdvisor fallback when 3/4 failed, or when a known destination
           has no local match; guarded by a circuit breaker and rate limiter
        6. Write non-empty results through both cache tiers

    If every source fails, any previously cached result for the key is
    served regardless of age. Only ExhaustedFallbackError escapes.

    Usage:
        hotels = await orchestrator.search_hotels("beach resorts in tulum", top_k=5)
    """

    def __init__(
        self,
        embeddings: EmbeddingService,
        index: VectorIndex,
        cache: TieredCache,
        single_flight: SingleFlightCoordinator,
        breaker: CircuitBreaker,
        external: Optional[TripAdvisorClient] = None,
        background: Optional[BackgroundTasks] = None,
        monitor: Optional[PerformanceMonitor] = None,
        vector_query_timeout_ms: int = 1500,
        external_timeout_ms: int = 1500,
        overfetch: int = 3,
        index_batch_size: int = 100,
    ):
        self.embeddings = embeddings
        self.index = index
        self.cache = cache
        self.single_flight = single_flight
        self.breaker = breaker
        self.external = external
        self.background = background if background is not None else cache.background
        self.monitor = monitor
        self.vector_query_timeout_ms = vector_query_timeout_ms
        self.external_timeout_ms = external_timeout_ms
        self.overfetch = overfetch
        self.index_batch_size = index_batch_size

    # ============================================
    # Search
    # ============================================

    async def search_hotels(self, query: str, top_k: int = 5) -> List[Hotel]:
        """
        Hotels relevant to `query`, most relevant first

        Args:
            query: Free-text user query
            top_k: Number of hotels wanted

        Returns:
            List[Hotel]: Possibly empty when the index has nothing

        Raises:
            ExhaustedFallbackError: No cache tier or data source could answer
        """
        normalized = normalize_query(query)
        if not normalized:
            return []
        key = search_cache_key(normalized, top_k)

        lookup = await self.cache.get(key, revalidate=lambda: self._load(normalized, top_k))
        if lookup.hit:
            return self._to_hotels(lookup.value)

        with self._timer("rag.search"):
            payload = await self._load(normalized, top_k)
        return self._to_hotels(payload)

    async def _load(self, normalized: str, top_k: int) -> List[Dict[str, Any]]:
        key = search_cache_key(normalized, top_k)
        return await self.single_flight.run(
            key,
            lambda: self._compute(normalized, top_k, key),
            lock_key=search_lock_key(normalized),
            poll=lambda: self.cache.peek_durable(key, fresh_only=True),
        )

    async def _compute(self, normalized: str, top_k: int, key: str) -> List[Dict[str, Any]]:
        destination = extract_destination(normalized)
        target = destination.normalized if destination else None

        candidates: Optional[List[Hotel]] = None
        vector_error: Optional[RetrievalError] = None
        try:
            candidates = await self._vector_candidates(normalized, top_k, target)
        except RetrievalError as e:
            vector_error = e
            self._increment("rag.vector_failed")
            logger.warning(f"Vector search failed for '{normalized}': {e}")

        results: Optional[List[Hotel]] = None
        if candidates is not None:
            local = candidates
            if target:
                local = [h for h in candidates if matches_location(h.city, h.location, target)]
            if local:
                results = local[:top_k]

        external_error: Optional[RetrievalError] = None
        if results is None and target:
            try:
                hotels = await self._external_search(target, top_k)
                results = hotels or None
            except RetrievalError as e:
                external_error = e
                logger.warning(f"TripAdvisor fallback failed for {target}: {e}")

        if results is None and candidates is not None:
            # nothing local for the destination; keep relevance order unfiltered
            results = candidates[:top_k]

        if results is None:
            previous = await self.cache.get_any(key)
            if previous is not None:
                self._increment("rag.served_expired")
                logger.warning(f"All sources failed for '{normalized}', serving previously cached result")
                return previous
            self._increment("rag.exhausted")
            cause = external_error or vector_error
            raise ExhaustedFallbackError(normalized, cause) from cause

        payload = [h.to_payload() for h in results]
        if payload:
            await self.cache.set(key, payload, query=normalized)
        return payload

    async def _vector_candidates(self, normalized: str, top_k: int, target: Optional[str]) -> List[Hotel]:
        vector = await self.embeddings.embed(normalized)
        try:
            matches = await with_timeout(
                self.index.query(vector, top_k * self.overfetch),
                self.vector_query_timeout_ms,
                "vector_query",
            )
        except RetrievalError:
            self._increment("vector.failed")
            raise
        return [format_vector_match(m, i, target) for i, m in enumerate(matches)]

    async def _external_search(self, destination: str, top_k: int) -> List[Hotel]:
        if self.external is None or not self.external.configured:
            logger.debug("TripAdvisor not configured, skipping fallback")
            return []
        if self.breaker.is_open():
            self._increment("tripadvisor.skipped")
            raise CircuitOpenError("tripadvisor", self.breaker.retry_in_ms())

        try:
            hotels = await with_timeout(
                self.external.search_by_destination(destination, top_k),
                self.external_timeout_ms,
                "tripadvisor",
            )
        except Exception as e:
            self.breaker.record_failure()
            self._increment("tripadvisor.failure")
            if isinstance(e, RetrievalError):
                raise
            raise DependencyError("tripadvisor", str(e)) from e

        self.breaker.record_success()
        self._increment("tripadvisor.success")
        if hotels:
            self.background.spawn(self.index_hotels(hotels), name=f"index:tripadvisor:{destination}")
        return hotels

    # ============================================
    # Indexing
    # ============================================

    async def index_hotels(self, hotels: List[Hotel]) -> int:
        """
        Embed hotels and upsert them into the vector index

        Args:
            hotels: Hotels to (re)index; ids make this idempotent

        Returns:
            int: Number of hotels upserted
        """
        total = 0
        for start in range(0, len(hotels), self.index_batch_size):
            batch = hotels[start:start + self.index_batch_size]
            vectors = await self.embeddings.embed_batch([hotel_search_text(h) for h in batch])
            records = [
                VectorRecord(id=h.id, vector=v, metadata=hotel_index_metadata(h))
                for h, v in zip(batch, vectors)
            ]
            await self.index.upsert(records)
            total += len(records)
        logger.info(f"Indexed {total} hotels")
        return total

    async def drain(self):
        """Wait for detached revalidations and upserts"""
        await self.background.drain()

    # ============================================
    # Helpers
    # ============================================

    @staticmethod
    def _to_hotels(payload: List[Dict[str, Any]]) -> List[Hotel]:
        return [Hotel.model_validate(item) for item in payload]

    def _increment(self, event: str):
        if self.monitor is not None:
            self.monitor.increment(event)

    def _timer(self, operation: str):
        if self.monitor is not None:
            return self.monitor.timer(operation)
        return nullcontext()

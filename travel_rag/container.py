"""
Service Container
Builds every long-lived collaborator once per process and tears them down at shutdown
"""

from typing import Any, Dict, Optional

from loguru import logger

from .agents.concierge import ConciergeAgent
from .cache.embeddings import EmbeddingService, create_embedding_provider
from .cache.redis_client import RedisStore
from .cache.single_flight import SingleFlightCoordinator
from .cache.tiered_cache import TieredCache
from .config import Settings, settings as default_settings
from .interfaces.conversation_store import ConversationStore
from .interfaces.session_store import SessionStore
from .llm.responder import ResponseGenerator
from .resilience.background import BackgroundTasks
from .resilience.circuit_breaker import CircuitBreaker
from .resilience.rate_limiter import RateLimiter
from .retrieval.orchestrator import RetrievalOrchestrator
from .retrieval.tripadvisor import TripAdvisorClient
from .retrieval.vector_index import VectorIndex
from .utils.performance import PerformanceMonitor


class ServiceContainer:
    """
    Owns the state containers of one service instance.

    Nothing here is a module-level singleton: the FastAPI lifespan calls
    `create()` on startup and `shutdown()` on exit, and tests build a
    container from fakes with the plain constructor.

    Usage:
        container = await ServiceContainer.create()
        response = await container.concierge.process_message("hotels in cancun")
        await container.shutdown()
    """

    def __init__(
        self,
        config: Settings,
        monitor: PerformanceMonitor,
        store: RedisStore,
        background: BackgroundTasks,
        search_cache: TieredCache,
        embedding_cache: TieredCache,
        breaker: CircuitBreaker,
        index: VectorIndex,
        orchestrator: RetrievalOrchestrator,
        responder: ResponseGenerator,
        concierge: ConciergeAgent,
        external: Optional[TripAdvisorClient] = None,
    ):
        self.config = config
        self.monitor = monitor
        self.store = store
        self.background = background
        self.search_cache = search_cache
        self.embedding_cache = embedding_cache
        self.breaker = breaker
        self.index = index
        self.orchestrator = orchestrator
        self.responder = responder
        self.concierge = concierge
        self.external = external

    @classmethod
    async def create(cls, config: Settings = default_settings) -> "ServiceContainer":
        """Wire the production collaborators from settings"""
        monitor = PerformanceMonitor()

        store = RedisStore(config.REDIS_URL, timeout_ms=config.DURABLE_TIMEOUT_MS, enabled=config.REDIS_ENABLED)
        await store.connect()

        background = BackgroundTasks(on_error=lambda name, exc: monitor.increment("background.error"))

        search_cache = TieredCache(
            "rag",
            store,
            fresh_ms=config.CACHE_FRESH_MS,
            stale_ms=config.CACHE_STALE_MS,
            max_size=config.CACHE_MAX_SIZE,
            background=background,
            monitor=monitor,
        )
        embedding_cache = TieredCache(
            "embed",
            store,
            fresh_ms=config.EMBEDDING_CACHE_FRESH_MS,
            stale_ms=0,
            max_size=config.EMBEDDING_CACHE_MAX_SIZE,
            background=background,
            monitor=monitor,
        )
        single_flight = SingleFlightCoordinator(
            store,
            lock_ttl_ms=config.LOCK_TTL_MS,
            lock_wait_timeout_ms=config.LOCK_WAIT_TIMEOUT_MS,
            lock_poll_interval_ms=config.LOCK_POLL_INTERVAL_MS,
            monitor=monitor,
        )
        embeddings = EmbeddingService(
            create_embedding_provider(config),
            embedding_cache,
            single_flight,
            timeout_ms=config.EMBEDDING_TIMEOUT_MS,
            monitor=monitor,
        )
        index = VectorIndex(config.QDRANT_URL, config.QDRANT_COLLECTION, api_key=config.QDRANT_API_KEY)

        external = TripAdvisorClient(
            config.TRIP_ADVISOR_API,
            base_url=config.TRIPADVISOR_BASE_URL,
            rate_limiter=RateLimiter(config.TRIPADVISOR_MAX_REQUESTS, config.TRIPADVISOR_WINDOW_MS),
        )
        breaker = CircuitBreaker(
            "tripadvisor",
            failure_threshold=config.TRIPADVISOR_FAILURE_THRESHOLD,
            reset_timeout_ms=config.TRIPADVISOR_RESET_MS,
            on_open=lambda b: monitor.increment("tripadvisor.circuit_open"),
        )

        orchestrator = RetrievalOrchestrator(
            embeddings,
            index,
            search_cache,
            single_flight,
            breaker,
            external=external,
            background=background,
            monitor=monitor,
            vector_query_timeout_ms=config.VECTOR_QUERY_TIMEOUT_MS,
            external_timeout_ms=config.TRIPADVISOR_TIMEOUT_MS,
            overfetch=config.VECTOR_OVERFETCH,
        )

        responder = ResponseGenerator(config, monitor=monitor)
        concierge = ConciergeAgent(
            orchestrator,
            responder,
            SessionStore(
                store.client,
                ttl_hours=config.SESSION_TTL_HOURS,
                max_hotels=config.MAX_SESSION_RESULTS,
                timeout_ms=config.DURABLE_TIMEOUT_MS,
            ),
            ConversationStore(
                store.client,
                ttl_hours=config.SESSION_TTL_HOURS,
                max_messages=config.MAX_HISTORY_MESSAGES,
                timeout_ms=config.DURABLE_TIMEOUT_MS,
            ),
            monitor=monitor,
            top_k=config.DEFAULT_TOP_K,
        )

        logger.info(f"Service container ready (LLM: {responder.provider}, Redis: {store.available})")
        return cls(
            config=config,
            monitor=monitor,
            store=store,
            background=background,
            search_cache=search_cache,
            embedding_cache=embedding_cache,
            breaker=breaker,
            index=index,
            orchestrator=orchestrator,
            responder=responder,
            concierge=concierge,
            external=external,
        )

    async def health(self) -> Dict[str, Any]:
        """Component status for /api/ai/health"""
        redis_ok = await self.store.ping()
        qdrant_ok = await self.index.ping()
        llm_ok = await self.responder.ping()
        return {
            "redis": "connected" if redis_ok else "unavailable",
            "qdrant": "connected" if qdrant_ok else "unavailable",
            "llm": self.responder.provider.lower() if llm_ok else "unavailable",
            "tripadvisor": {
                "configured": bool(self.external and self.external.configured),
                "circuit": self.breaker.snapshot(),
            },
            "caches": [self.search_cache.stats(), self.embedding_cache.stats()],
            "background_tasks": len(self.background),
        }

    async def shutdown(self):
        """Let detached work finish, then close connections"""
        await self.background.drain()
        if self.external is not None:
            await self.external.close()
        await self.index.close()
        await self.store.close()
        logger.info("Service container shut down")

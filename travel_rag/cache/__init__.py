"""
Cache Module
Tiered (Redis + in-process) caching, single-flight and cached embeddings
"""

from .redis_client import RedisStore
from .lru import LRUCache
from .tiered_cache import TieredCache, CacheEntry, CacheLookup, CacheStatus
from .single_flight import SingleFlightCoordinator
from .embeddings import EmbeddingService, create_embedding_provider

__all__ = [
    "RedisStore",
    "LRUCache",
    "TieredCache",
    "CacheEntry",
    "CacheLookup",
    "CacheStatus",
    "SingleFlightCoordinator",
    "EmbeddingService",
    "create_embedding_provider",
]

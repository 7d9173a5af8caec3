"""
Tiered Cache
Stale-while-revalidate cache over Redis (L2) and an in-process LRU (L1)
"""

import math
import time
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from loguru import logger

from ..errors import CacheUnavailableError
from ..resilience.background import BackgroundTasks
from ..utils.performance import PerformanceMonitor
from .lru import LRUCache
from .redis_client import RedisStore


class CacheStatus(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    MISS = "miss"


@dataclass
class CacheEntry:
    """A cached payload and the windows it was written with"""
    key: str
    payload: Any
    created_at: float  # epoch seconds
    fresh_ms: int
    stale_ms: int
    query: Optional[str] = None  # normalized text the payload was computed from

    def age_ms(self, now: float) -> float:
        return (now - self.created_at) * 1000.0

    def status(self, now: float) -> CacheStatus:
        age = self.age_ms(now)
        if age < self.fresh_ms:
            return CacheStatus.FRESH
        if age < self.fresh_ms + self.stale_ms:
            return CacheStatus.STALE
        return CacheStatus.MISS

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "CacheEntry":
        return cls(**data)


@dataclass
class CacheLookup:
    """Result of TieredCache.get"""
    status: CacheStatus
    value: Any = None
    tier: Optional[str] = None  # "l1" or "l2"
    entry: Optional[CacheEntry] = None

    @property
    def hit(self) -> bool:
        return self.status is not CacheStatus.MISS


class TieredCache:
    """
    Two-tier stale-while-revalidate cache.

    Reading order is durable (L2) first, then in-process (L1). A durable
    hit is mirrored into L1. Writes go to both tiers; the L2 TTL covers the
    fresh and stale windows so Redis expires entries in step with the
    staleness policy. Redis failures count as a miss and are only logged.

    Entries evicted from L1 for age are kept in a small side LRU so that
    `get_any` can still serve them when every data source is down.

    Usage:
        cache = TieredCache("rag", store, fresh_ms=300000, stale_ms=600000)
        lookup = await cache.get(key, revalidate=lambda: recompute(query))
        if lookup.hit:
            return lookup.value
        await cache.set(key, results, query=query)
    """

    def __init__(
        self,
        name: str,
        store: Optional[RedisStore] = None,
        fresh_ms: int = 300000,
        stale_ms: int = 600000,
        max_size: int = 1000,
        expired_max_size: Optional[int] = None,
        background: Optional[BackgroundTasks] = None,
        monitor: Optional[PerformanceMonitor] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self.store = store
        self.fresh_ms = fresh_ms
        self.stale_ms = stale_ms
        self.background = background if background is not None else BackgroundTasks()
        self.monitor = monitor
        self._clock = clock
        self._l1: LRUCache[str, CacheEntry] = LRUCache(max_size)
        self._expired: LRUCache[str, CacheEntry] = LRUCache(expired_max_size or max_size)
        self._stats = {"hits": 0, "stale": 0, "misses": 0, "durable_errors": 0}

    # ============================================
    # Reads
    # ============================================

    async def get(
        self,
        key: str,
        revalidate: Optional[Callable[[], Awaitable[Any]]] = None,
    ) -> CacheLookup:
        """
        Look a key up in both tiers.

        Args:
            key: Cache key
            revalidate: Called (detached) when the entry is stale

        Returns:
            CacheLookup with status FRESH, STALE or MISS
        """
        now = self._clock()
        entry, tier = await self._freshest(key, now)

        if entry is None:
            self._count("misses", "cache_miss")
            return CacheLookup(CacheStatus.MISS)

        status = entry.status(now)
        if status is CacheStatus.FRESH:
            self._count("hits", "cache_hit")
            logger.debug(f"[{self.name}] {tier} fresh hit: {key}")
        else:
            self._count("stale", "cache_stale")
            logger.debug(f"[{self.name}] {tier} stale hit: {key}")
            if revalidate is not None:
                self._schedule_revalidation(key, revalidate)
        return CacheLookup(status, entry.payload, tier, entry)

    async def _freshest(self, key: str, now: float) -> Tuple[Optional[CacheEntry], Optional[str]]:
        durable = await self._durable_entry(key)
        if durable is not None and durable.status(now) is CacheStatus.MISS:
            durable = None

        if durable is not None and durable.status(now) is CacheStatus.FRESH:
            self._l1.set(key, durable)
            return durable, "l2"

        local = self._l1.get(key)
        if local is not None and local.status(now) is CacheStatus.MISS:
            self._evict_expired(key, local)
            local = None

        # L1 may hold a newer entry when the last durable write failed
        if local is not None and (durable is None or local.created_at > durable.created_at):
            return local, "l1"
        if durable is not None:
            self._l1.set(key, durable)
            return durable, "l2"
        return None, None

    def _evict_expired(self, key: str, entry: CacheEntry):
        self._l1.pop(key)
        self._expired.set(key, entry)

    async def _durable_entry(self, key: str) -> Optional[CacheEntry]:
        doc = await self._durable_doc(key)
        if doc is None:
            return None
        try:
            return CacheEntry.from_dict(doc)
        except TypeError as e:
            logger.warning(f"[{self.name}] Discarding malformed durable entry {key}: {e}")
            self._count("durable_errors", "durable_error")
            return None

    async def _durable_doc(self, key: str) -> Optional[Dict]:
        if self.store is None or not self.store.available:
            return None
        try:
            doc = await self.store.get_json(key)
        except CacheUnavailableError as e:
            logger.warning(f"[{self.name}] Durable cache read failed, treating as miss: {e}")
            self._count("durable_errors", "durable_error")
            return None
        return doc if isinstance(doc, dict) else None

    async def peek_durable(self, key: str, fresh_only: bool = False) -> Optional[Any]:
        """L2 payload without counters or L1 mirroring (lock-wait polling)"""
        entry = await self._durable_entry(key)
        if entry is None:
            return None
        status = entry.status(self._clock())
        if status is CacheStatus.MISS or (fresh_only and status is not CacheStatus.FRESH):
            return None
        return entry.payload

    async def get_any(self, key: str) -> Optional[Any]:
        """
        Any payload ever cached for `key`, regardless of age.

        Last resort when no data source can answer.
        """
        live = self._l1.peek(key)
        if live is not None:
            return live.payload
        durable = await self._durable_entry(key)
        if durable is not None:
            return durable.payload
        expired = self._expired.peek(key)
        if expired is not None:
            return expired.payload
        return None

    # ============================================
    # Writes
    # ============================================

    async def set(
        self,
        key: str,
        value: Any,
        fresh_ms: Optional[int] = None,
        stale_ms: Optional[int] = None,
        query: Optional[str] = None,
    ) -> CacheEntry:
        """
        Write through both tiers.

        Args:
            key: Cache key
            value: JSON-serializable payload
            fresh_ms: Freshness window (defaults to the cache's)
            stale_ms: Stale grace window (defaults to the cache's)
            query: Normalized text the value was computed from
        """
        entry = CacheEntry(
            key=key,
            payload=value,
            created_at=self._clock(),
            fresh_ms=self.fresh_ms if fresh_ms is None else fresh_ms,
            stale_ms=self.stale_ms if stale_ms is None else stale_ms,
            query=query,
        )
        self._l1.set(key, entry)
        self._expired.pop(key)

        if self.store is not None and self.store.available:
            ttl_seconds = math.ceil((entry.fresh_ms + entry.stale_ms) / 1000)
            try:
                await self.store.set_json(key, entry.to_dict(), ttl_seconds)
            except CacheUnavailableError as e:
                logger.warning(f"[{self.name}] Durable cache write failed: {e}")
                self._count("durable_errors", "durable_error")
        return entry

    async def invalidate(self, key: str):
        self._l1.pop(key)
        self._expired.pop(key)
        if self.store is not None and self.store.available:
            try:
                await self.store.delete(key)
            except CacheUnavailableError as e:
                logger.warning(f"[{self.name}] Durable cache delete failed: {e}")

    def clear(self):
        """Drop the in-process tiers"""
        self._l1.clear()
        self._expired.clear()

    # ============================================
    # Internals
    # ============================================

    def _schedule_revalidation(self, key: str, revalidate: Callable[[], Awaitable[Any]]):
        task_key = f"revalidate:{self.name}:{key}"
        if self.background.is_running(task_key):
            return
        self.background.spawn(revalidate(), name=task_key, key=task_key)

    def _count(self, stat: str, event: str):
        self._stats[stat] += 1
        if self.monitor is not None:
            self.monitor.increment(f"{self.name}.{event}")

    def stats(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "l1_size": len(self._l1),
            "l1_max_size": self._l1.max_size,
            "expired_size": len(self._expired),
            "durable_available": bool(self.store and self.store.available),
            **self._stats,
        }

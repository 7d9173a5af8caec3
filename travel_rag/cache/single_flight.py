"""
Single-flight coordination
One computation per key per process, best-effort one per key across processes
"""

import asyncio
import secrets
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger

from ..errors import CacheUnavailableError
from ..utils.performance import PerformanceMonitor
from .redis_client import RedisStore


class SingleFlightCoordinator:
    """
    Deduplicates concurrent computations of the same key.

    In-process:
        Concurrent `run` calls for one key share a single task. The task is
        shielded, so a caller that is cancelled does not cancel the work the
        others are waiting on. The registry entry is dropped when it settles.

    Cross-process (when a lock key is passed and Redis is up):
        The first process to SET NX the lock computes and then releases it
        with an owner-checked delete. Others poll the durable cache every
        `lock_poll_interval_ms` for up to `lock_wait_timeout_ms`, and compute
        themselves if nothing shows up. Duplicate work under contention is
        an accepted outcome; results are idempotent.

    Usage:
        flights = SingleFlightCoordinator(store)
        results = await flights.run(
            cache_key,
            lambda: compute(query),
            lock_key=lock_key,
            poll=lambda: cache.peek_durable(cache_key),
        )
    """

    def __init__(
        self,
        store: Optional[RedisStore] = None,
        lock_ttl_ms: int = 300000,
        lock_wait_timeout_ms: int = 3000,
        lock_poll_interval_ms: int = 200,
        monitor: Optional[PerformanceMonitor] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.lock_ttl_ms = lock_ttl_ms
        self.lock_wait_timeout_ms = lock_wait_timeout_ms
        self.lock_poll_interval_ms = lock_poll_interval_ms
        self.monitor = monitor
        self._clock = clock
        self._in_flight: Dict[str, asyncio.Future] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._in_flight

    def __len__(self) -> int:
        return len(self._in_flight)

    async def run(
        self,
        key: str,
        compute: Callable[[], Awaitable[Any]],
        lock_key: Optional[str] = None,
        poll: Optional[Callable[[], Awaitable[Optional[Any]]]] = None,
    ) -> Any:
        """
        Run `compute` once for `key`, sharing the outcome with concurrent callers.

        Args:
            key: In-process dedup key
            compute: Zero-argument callable returning an awaitable
            lock_key: Distributed lock key; omit for in-process only
            poll: Reads a peer's result from the durable tier while waiting

        Returns:
            The computation's result (or a peer's result found by `poll`)
        """
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._execute(key, compute, lock_key, poll))
            self._in_flight[key] = task
            task.add_done_callback(lambda t, k=key: self._settled(k, t))
        else:
            self._increment("singleflight.shared")
            logger.debug(f"Joining in-flight computation: {key}")
        return await asyncio.shield(task)

    def _settled(self, key: str, task: asyncio.Future):
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled():
            # mark retrieved; every waiter already got it through the shield
            task.exception()

    async def _execute(
        self,
        key: str,
        compute: Callable[[], Awaitable[Any]],
        lock_key: Optional[str],
        poll: Optional[Callable[[], Awaitable[Optional[Any]]]],
    ) -> Any:
        if lock_key is None or self.store is None or not self.store.available:
            return await compute()

        token = secrets.token_hex(16)
        try:
            acquired = await self.store.acquire_lock(lock_key, token, self.lock_ttl_ms)
        except CacheUnavailableError as e:
            logger.warning(f"Distributed lock unavailable, computing locally: {e}")
            return await compute()

        if acquired:
            try:
                return await compute()
            finally:
                await self._release(lock_key, token)

        self._increment("singleflight.lock_contended")
        logger.debug(f"Lock {lock_key} held elsewhere, waiting for a peer result")
        if poll is not None:
            value = await self._wait_for_peer(poll)
            if value is not None:
                self._increment("singleflight.peer_result")
                return value

        logger.info(f"No peer result for {key} within {self.lock_wait_timeout_ms}ms, computing independently")
        return await compute()

    async def _wait_for_peer(self, poll: Callable[[], Awaitable[Optional[Any]]]) -> Optional[Any]:
        deadline = self._clock() + self.lock_wait_timeout_ms / 1000.0
        interval = self.lock_poll_interval_ms / 1000.0
        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                return None
            await asyncio.sleep(min(interval, remaining))
            value = await poll()
            if value is not None:
                return value

    async def _release(self, lock_key: str, token: str):
        try:
            released = await self.store.release_lock(lock_key, token)
        except CacheUnavailableError as e:
            logger.warning(f"Lock release failed, it will expire by TTL: {e}")
            return
        if not released:
            logger.warning(f"Lock {lock_key} expired before release")

    def _increment(self, event: str):
        if self.monitor is not None:
            self.monitor.increment(event)

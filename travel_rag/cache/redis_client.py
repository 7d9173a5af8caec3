"""
Redis Client Management
Durable L2 cache tier and distributed lock primitive
"""

import json
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from loguru import logger

from ..config import settings
from ..errors import CacheUnavailableError, OperationTimeoutError
from ..resilience.timeout import with_timeout


# Deletes the lock only if it is still held by the caller's token
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

_DURABLE_ERRORS = (RedisError, OSError, OperationTimeoutError, TypeError, ValueError)


class RedisStore:
    """
    Async JSON store backed by Redis.

    Features:
    - Every call bounded by `timeout_ms`
    - Unreachable at connect time -> `available` is False and callers skip it
    - Failures surface as CacheUnavailableError, never as raw Redis errors
    - Atomic SET NX PX lock with owner-checked release

    Usage:
        store = RedisStore(settings.REDIS_URL)
        await store.connect()
        await store.set_json("rag:search:v1:...", payload, ttl_seconds=900)
        doc = await store.get_json("rag:search:v1:...")
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        client: Optional[redis.Redis] = None,
        timeout_ms: Optional[int] = None,
        enabled: Optional[bool] = None,
    ):
        self.redis_url = redis_url or settings.REDIS_URL
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.DURABLE_TIMEOUT_MS
        self.enabled = settings.REDIS_ENABLED if enabled is None else enabled
        self._client = client
        self._available = False
        self._initialized = False

    @property
    def available(self) -> bool:
        return self._available

    @property
    def client(self) -> Optional[redis.Redis]:
        """Underlying client when connected (shared by the session stores)"""
        return self._client if self._available else None

    async def connect(self) -> bool:
        """
        Connect and ping once.

        Returns:
            bool: True if Redis is reachable
        """
        if self._initialized:
            return self._available
        self._initialized = True

        if not self.enabled:
            logger.info("Redis disabled, durable cache tier off")
            return False

        try:
            if self._client is None:
                self._client = redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
            await with_timeout(self._client.ping(), self.timeout_ms, "redis.ping")
            self._available = True
            logger.info(f"Redis connected: {self.redis_url}")
        except _DURABLE_ERRORS as e:
            logger.warning(f"Redis is not available, using in-process caching only: {e}")
            self._available = False
        return self._available

    def _require_client(self) -> redis.Redis:
        if not self._available or self._client is None:
            raise CacheUnavailableError("Redis not connected")
        return self._client

    async def get_json(self, key: str) -> Optional[Any]:
        client = self._require_client()
        try:
            raw = await with_timeout(client.get(key), self.timeout_ms, "redis.get")
            return json.loads(raw) if raw is not None else None
        except _DURABLE_ERRORS as e:
            raise CacheUnavailableError(f"get {key}: {e}") from e

    async def set_json(self, key: str, value: Any, ttl_seconds: int):
        client = self._require_client()
        try:
            raw = json.dumps(value)
            await with_timeout(client.set(key, raw, ex=max(1, int(ttl_seconds))), self.timeout_ms, "redis.set")
        except _DURABLE_ERRORS as e:
            raise CacheUnavailableError(f"set {key}: {e}") from e

    async def delete(self, key: str):
        client = self._require_client()
        try:
            await with_timeout(client.delete(key), self.timeout_ms, "redis.delete")
        except _DURABLE_ERRORS as e:
            raise CacheUnavailableError(f"delete {key}: {e}") from e

    async def acquire_lock(self, lock_key: str, token: str, ttl_ms: int) -> bool:
        """
        Atomically take a lock if nobody holds it.

        Args:
            lock_key: Lock key
            token: Random owner token
            ttl_ms: Lock lifetime; it self-expires if the holder dies

        Returns:
            bool: True if this caller now holds the lock
        """
        client = self._require_client()
        try:
            acquired = await with_timeout(
                client.set(lock_key, token, nx=True, px=int(ttl_ms)),
                self.timeout_ms,
                "redis.lock",
            )
            return bool(acquired)
        except _DURABLE_ERRORS as e:
            raise CacheUnavailableError(f"lock {lock_key}: {e}") from e

    async def release_lock(self, lock_key: str, token: str) -> bool:
        """Delete the lock only if `token` still owns it"""
        client = self._require_client()
        try:
            released = await with_timeout(
                client.eval(RELEASE_LOCK_SCRIPT, 1, lock_key, token),
                self.timeout_ms,
                "redis.unlock",
            )
            return bool(released)
        except _DURABLE_ERRORS as e:
            raise CacheUnavailableError(f"unlock {lock_key}: {e}") from e

    async def ping(self) -> bool:
        """Health check, never raises"""
        if self._client is None or not self._available:
            return False
        try:
            await with_timeout(self._client.ping(), self.timeout_ms, "redis.ping")
            return True
        except _DURABLE_ERRORS as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    async def close(self):
        if self._client is not None:
            try:
                await self._client.aclose()
            except _DURABLE_ERRORS as e:
                logger.warning(f"Error closing Redis connection: {e}")
            logger.info("Redis connection closed")
        self._available = False

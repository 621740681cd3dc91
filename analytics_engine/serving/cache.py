"""
Redis Cache Module

Short-lived response cache for the platform-wide reads (dashboard and
trends). Values are stored as JSON under ``<namespace>:<key>`` with a TTL.

The cache is optional: until ``init_redis`` succeeds, and whenever Redis
errors, ``CacheManager.get_or_set`` computes the value directly.
Engagement counters are never cached.
"""

import json
from typing import Any, Awaitable, Callable, Optional

import structlog
from redis.asyncio import Redis, ConnectionPool
from redis.exceptions import RedisError

from analytics_engine.config import get_settings

logger = structlog.get_logger(__name__)

_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


async def init_redis() -> Redis:
    """
    Connect to Redis and verify the connection.

    Raises:
        RedisError: If Redis does not answer a PING
    """
    global _redis_pool, _redis_client

    if _redis_client is not None:
        return _redis_client

    redis_settings = get_settings().redis
    pool = ConnectionPool.from_url(
        redis_settings.get_url(),
        max_connections=redis_settings.max_connections,
        socket_timeout=redis_settings.socket_timeout,
        decode_responses=redis_settings.decode_responses,
    )
    client = Redis(connection_pool=pool)

    try:
        await client.ping()
    except RedisError as e:
        logger.error("Redis connection failed", error=str(e))
        await pool.disconnect()
        raise

    _redis_pool, _redis_client = pool, client
    logger.info("Redis connection established", host=redis_settings.host)
    return client


async def close_redis() -> None:
    global _redis_pool, _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
    if _redis_pool is not None:
        await _redis_pool.disconnect()
        logger.info("Redis connection closed")

    _redis_pool = _redis_client = None


def is_cache_ready() -> bool:
    return _redis_client is not None


def get_redis() -> Redis:
    """
    Raises:
        RuntimeError: If Redis is not initialized
    """
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


class CacheManager:
    """
    JSON cache scoped to one key namespace.

    Example:
        cache = CacheManager("analytics", default_ttl=60)
        payload = await cache.get_or_set("dashboard", compute_dashboard)
    """

    def __init__(self, namespace: str, default_ttl: int = 60):
        self.namespace = namespace
        self.default_ttl = default_ttl

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Return the cached value, or compute it with ``factory`` and store it.

        Redis failures are logged and fall through to ``factory``; errors
        raised by ``factory`` itself propagate.
        """
        if not is_cache_ready():
            return await factory()

        client = get_redis()
        full_key = self._key(key)

        try:
            cached = await client.get(full_key)
        except RedisError as e:
            logger.warning("Cache read failed", key=full_key, error=str(e))
            return await factory()

        if cached is not None:
            logger.debug("Cache hit", key=full_key)
            return json.loads(cached)

        value = await factory()
        try:
            await client.setex(full_key, ttl or self.default_ttl, json.dumps(value, default=str))
        except RedisError as e:
            logger.warning("Cache write failed", key=full_key, error=str(e))
        return value


analytics_cache = CacheManager("analytics")

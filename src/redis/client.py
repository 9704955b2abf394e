"""Shared async Redis client for rate limiting."""

import redis.asyncio as redis

from src.utils.settings.redis import RedisSettings
from src.utils.logger import get_logger

logger = get_logger(__name__)

_redis_pool: redis.ConnectionPool | None = None


def _ensure_redis_pool() -> redis.ConnectionPool:
    global _redis_pool
    if _redis_pool is None:
        settings = RedisSettings()
        _redis_pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
        )
        logger.info(
            "Redis connection pool created",
            max_connections=settings.REDIS_MAX_CONNECTIONS,
        )
    return _redis_pool


async def get_redis_client() -> redis.Redis:
    """FastAPI dependency returning a client on the shared pool."""
    return redis.Redis(connection_pool=_ensure_redis_pool())


async def close_redis_pool() -> None:
    """Close Redis connection pool - called during app shutdown."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.disconnect()
        _redis_pool = None
        logger.info("Redis connection pool closed")

"""Redis connection pool for session records."""

import logging

import redis

from app.core.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.Redis.from_url(
    settings.REDIS_URL,
    encoding="utf-8",
    decode_responses=True,
    socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC,
    socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC,
    health_check_interval=30,
)


def get_redis() -> redis.Redis:
    """Dependency returning the shared Redis client (the pool is safe for concurrent use)."""
    return redis_client


def check_cache_connected(client: redis.Redis) -> bool:
    """Ping Redis to verify the cache is reachable."""
    try:
        return bool(client.ping())
    except redis.RedisError as e:
        logger.warning("Redis ping failed: %s", e)
        return False

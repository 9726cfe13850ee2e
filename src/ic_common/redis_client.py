"""Shared Redis connection, created lazily for CACHE_BACKEND=redis.

Redis holds nothing but derived balance snapshots, so losing or flushing it
costs a few extra account reads and nothing else.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings

logger = logging.getLogger(__name__)

_client: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    global _client  # noqa: PLW0603
    if _client is None:
        _client = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            health_check_interval=30,
        )
    return _client


async def redis_available() -> bool:
    """PING the shared client; False when Redis is unreachable."""
    try:
        return bool(await (await get_redis()).ping())
    except RedisError as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None

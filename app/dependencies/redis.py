"""Shared Upstash client for room, game and presence keys."""

import logging
from urllib.parse import urlparse

from upstash_redis.asyncio import Redis

from app.config import get_settings

logger = logging.getLogger(__name__)

_redis_client: Redis | None = None


def get_redis_client() -> Redis:
    """Process-wide async client, created on first use."""
    global _redis_client
    if _redis_client is None:
        settings = get_settings()
        _redis_client = Redis(
            url=settings.UPSTASH_REDIS_REST_URL,
            token=settings.UPSTASH_REDIS_REST_TOKEN,
        )
        logger.info("Upstash client ready for %s", urlparse(settings.UPSTASH_REDIS_REST_URL).hostname)
    return _redis_client


async def redis_available() -> bool:
    """Round-trip a PING so /health can report whether room state is reachable."""
    try:
        reply = await get_redis_client().ping()
    except Exception as e:
        logger.warning("Redis health check failed: %s", e)
        return False
    return str(reply).upper() == "PONG"


async def close_redis_client() -> None:
    """Drop the shared client on shutdown; the next get_redis_client() makes a new one."""
    global _redis_client
    client, _redis_client = _redis_client, None
    if client is not None:
        await client.close()
        logger.info("Upstash client closed")

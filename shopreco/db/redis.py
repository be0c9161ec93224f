# shopreco/db/redis.py
import logging
import redis.asyncio as redis
from shopreco.core.config import get_settings

logger = logging.getLogger(__name__)
redis_client: redis.Redis | None = None


async def connect():
    """
    Connect Redis if REDIS_URL is set.
    Redis only holds derived data (result cache, A/B counters), so a missing
    or unreachable server is logged and the service runs uncached.
    """
    global redis_client
    settings = get_settings()
    if not settings.REDIS_URL:
        logger.warning("No REDIS_URL configured, recommendations will not be cached")
        redis_client = None
        return

    try:
        redis_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.read_timeout_s,
            socket_connect_timeout=settings.read_timeout_s,
        )
        await redis_client.ping()
        logger.info("Redis connection successful")
    except Exception as e:
        logger.warning("Failed to connect to Redis, running uncached: %s", e)
        redis_client = None


async def disconnect():
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
        logger.info("Redis disconnected")


def get_redis() -> redis.Redis | None:
    """Redis client, or None when not configured/unreachable. Callers handle None."""
    return redis_client

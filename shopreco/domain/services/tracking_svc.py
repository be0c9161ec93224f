import logging
from typing import Any, Dict, Optional

from redis.asyncio import Redis

logger = logging.getLogger(__name__)

FIELD_CLICKS = "clicks"
FIELD_PURCHASES = "purchases"


class RecommendationTracker:
    """
    Fire-and-forget A/B counters per algorithm tag:
      HINCRBY {prefix}:{algorithm}            clicks|purchases 1
      HINCRBY {prefix}:{algorithm}:{user_id}  clicks|purchases 1
    The recommendation path never reads these; failures are logged and dropped.
    """

    def __init__(self, redis: Optional[Redis], prefix: str = "rec_performance"):
        self.redis = redis
        self.prefix = prefix

    async def _incr(self, user_id: str, algorithm: str, field: str) -> bool:
        if self.redis is None:
            logger.debug("tracking skipped (no redis) algorithm=%s field=%s", algorithm, field)
            return False
        try:
            pipe = self.redis.pipeline(transaction=False)
            pipe.hincrby(f"{self.prefix}:{algorithm}", field, 1)
            pipe.hincrby(f"{self.prefix}:{algorithm}:{user_id}", field, 1)
            await pipe.execute()
            return True
        except Exception as e:
            logger.warning("tracking %s error algorithm=%s user_id=%s err=%s", field, algorithm, user_id, e)
            return False

    async def record_click(self, user_id: str, product_id: str, algorithm: str) -> bool:
        logger.debug("tracking click user_id=%s product_id=%s algorithm=%s", user_id, product_id, algorithm)
        return await self._incr(user_id, algorithm, FIELD_CLICKS)

    async def record_purchase(self, user_id: str, product_id: str, algorithm: str) -> bool:
        logger.debug("tracking purchase user_id=%s product_id=%s algorithm=%s", user_id, product_id, algorithm)
        return await self._incr(user_id, algorithm, FIELD_PURCHASES)

    async def get_performance(self, algorithm: str) -> Dict[str, Any]:
        """Aggregated counters for one algorithm tag (offline comparison)."""
        stats: Dict[str, Any] = {"algorithm": algorithm, FIELD_CLICKS: 0, FIELD_PURCHASES: 0}
        raw: Dict[Any, Any] = {}
        if self.redis is not None:
            try:
                raw = await self.redis.hgetall(f"{self.prefix}:{algorithm}") or {}
            except Exception as e:
                logger.warning("tracking performance read error algorithm=%s err=%s", algorithm, e)
        for field in (FIELD_CLICKS, FIELD_PURCHASES):
            value = raw.get(field)
            if value is None:
                value = raw.get(field.encode(), 0)
            stats[field] = int(value or 0)
        clicks = stats[FIELD_CLICKS]
        stats["conversion_rate"] = round(stats[FIELD_PURCHASES] / clicks, 4) if clicks else 0.0
        return stats

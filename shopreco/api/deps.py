# shopreco/api/deps.py
import logging
from typing import Optional
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from shopreco.core.config import Settings, get_settings
from shopreco.db.mongo import get_db
from shopreco.db.redis import get_redis
from shopreco.domain.repositories.cache_repo import CacheStore, NullCacheStore, RedisCacheStore
from shopreco.domain.repositories.catalog_repo import CatalogReader, MongoCatalogRepo, UnavailableCatalogReader
from shopreco.domain.services.resolver_svc import RecommendationResolver
from shopreco.domain.services.tracking_svc import RecommendationTracker

logger = logging.getLogger(__name__)


# Dependency for injecting the MongoDB database into endpoints/services (None when not connected)
async def mongo_db() -> Optional[AsyncIOMotorDatabase]:
    try:
        return get_db()
    except AssertionError:
        return None


# Dependency for injecting the Redis client into endpoints/services
def redis_dep():
    return get_redis()


def catalog_reader(db = Depends(mongo_db)) -> CatalogReader:
    if db is None:
        logger.warning("Mongo not connected, recommendations degrade to the unavailable answer")
        return UnavailableCatalogReader()
    return MongoCatalogRepo(db)


def cache_store(redis = Depends(redis_dep)) -> CacheStore:
    return RedisCacheStore(redis) if redis is not None else NullCacheStore()


def resolver_dep(
    reader: CatalogReader = Depends(catalog_reader),
    cache: CacheStore = Depends(cache_store),
    settings: Settings = Depends(get_settings),
) -> RecommendationResolver:
    return RecommendationResolver(reader, cache, settings)


def tracker_dep(
    redis = Depends(redis_dep),
    settings: Settings = Depends(get_settings),
) -> RecommendationTracker:
    return RecommendationTracker(redis, prefix=settings.tracking_prefix)

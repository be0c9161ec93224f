from abc import ABC, abstractmethod
from typing import Iterable, Optional
from shopreco.domain.models.recommendation import RecommendationResult
import hashlib
import json


def _h(category_filter: Optional[Iterable[str]]) -> str:
    """
    Short hash of the optional category filter, order-insensitive.
    """
    s = json.dumps(sorted(set(category_filter or [])), separators=(",", ":"))
    return hashlib.sha1(s.encode()).hexdigest()[:10]


def result_cache_key(
    prefix: str,
    *,
    subject_type: str,
    strategy: str,
    subject_id: str,
    limit: int,
    include_already_interacted: bool,
    category_filter: Optional[Iterable[str]] = None,
) -> str:
    """
    Build the cache key for one resolved request.
    Same request shape -> same key, so repeated calls inside the TTL hit the cache.
    """
    include = "1" if include_already_interacted else "0"
    return f"{prefix}:{subject_type}:{strategy}:{subject_id}:{limit}:{include}:{_h(category_filter)}"


class CacheStore(ABC):
    """
    Key-value store with per-key TTL, used read-through by the resolver.
    Entries are never invalidated on data change; they only expire.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[RecommendationResult]:
        ...

    @abstractmethod
    async def set_with_ttl(self, key: str, value: RecommendationResult, ttl_seconds: int) -> None:
        ...


class RedisCacheStore(CacheStore):
    """
    Adapter for caching RecommendationResult objects in Redis.
    No business logic here, just serialization and SET ... EX.
    """

    def __init__(self, redis):
        self.cache = redis

    async def get(self, key: str) -> Optional[RecommendationResult]:
        raw = await self.cache.get(key)
        if raw:
            return RecommendationResult.model_validate_json(raw)
        return None

    async def set_with_ttl(self, key: str, value: RecommendationResult, ttl_seconds: int) -> None:
        await self.cache.set(key, value.model_dump_json(), ex=ttl_seconds)


class NullCacheStore(CacheStore):
    """Used when Redis is not configured: every lookup misses, writes are dropped."""

    async def get(self, key: str) -> Optional[RecommendationResult]:
        return None

    async def set_with_ttl(self, key: str, value: RecommendationResult, ttl_seconds: int) -> None:
        return None

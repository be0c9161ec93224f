# shopreco/domain/services/resolver_svc.py
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from shopreco.core.config import Settings, get_settings
from shopreco.core.exceptions import RequestValidationError, UpstreamUnavailableError
from shopreco.domain.models.recommendation import (
    RecommendationRequest,
    RecommendationResult,
    Strategy,
    SubjectType,
)
from shopreco.domain.repositories.cache_repo import CacheStore, result_cache_key
from shopreco.domain.repositories.catalog_repo import CatalogReader
from shopreco.domain.services.constants import ALGO_TRENDING, REASON_UNAVAILABLE
from shopreco.domain.services.content_svc import content_based_recommendations
from shopreco.domain.services.cooccurrence_svc import get_item_based_recommendations
from shopreco.domain.services.fusion_svc import hybrid_recommendation
from shopreco.domain.services.similarity_svc import collaborative_recommendations
from shopreco.domain.services.trending_svc import get_trending

logger = logging.getLogger(__name__)

_USER_STRATEGIES = {Strategy.HYBRID, Strategy.COLLABORATIVE, Strategy.CONTENT, Strategy.TRENDING}
_PRODUCT_STRATEGIES = {Strategy.ITEM_BASED, Strategy.TRENDING}

# subject used for context-free trending requests
ANONYMOUS_SUBJECT = "anonymous"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecommendationResolver:
    """
    Top-level entry point: validate -> cache lookup -> strategy dispatch -> cache store.

    Stateless apart from the injected cache; safe to share across concurrent
    requests. Any failure inside a non-trending strategy degrades to the
    trending list, so a well-formed request always gets a result.
    Cached results are never invalidated on catalog/order changes; they
    expire after `reco_cache_ttl` seconds.
    """

    def __init__(
        self,
        reader: CatalogReader,
        cache: CacheStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.reader = reader
        self.cache = cache
        self.settings = settings or get_settings()
        self.clock = clock

    # ----- public API -------------------------------------------------------

    async def resolve(self, request: RecommendationRequest) -> RecommendationResult:
        strategy = self._validate(request)
        t0 = time.perf_counter()
        key = result_cache_key(
            self.settings.reco_cache_prefix,
            subject_type=request.subject_type.value,
            strategy=strategy.value,
            subject_id=request.subject_id,
            limit=request.limit,
            include_already_interacted=request.include_already_interacted,
            category_filter=request.category_filter,
        )
        logger.debug("resolve cache_key=%s", key)

        cached = await self._cache_get(key)
        if cached is not None:
            logger.info("resolve cache_hit key=%s items=%s", key, cached.count)
            return cached
        logger.info(
            "resolve cache_miss subject=%s:%s strategy=%s limit=%s",
            request.subject_type.value, request.subject_id, strategy.value, request.limit,
        )

        degraded = False
        try:
            result = await asyncio.wait_for(self._dispatch(request, strategy), timeout=self.settings.read_timeout_s)
        except asyncio.TimeoutError:
            logger.warning(
                "resolve strategy=%s timed out after %.1fs; falling back to trending",
                strategy.value, self.settings.read_timeout_s,
            )
            result, degraded = await self._fallback(request, strategy), True
        except UpstreamUnavailableError as e:
            logger.warning("resolve strategy=%s upstream error: %s; falling back to trending", strategy.value, e.message)
            result, degraded = await self._fallback(request, strategy), True
        except Exception as e:
            logger.exception("resolve strategy=%s failed (%s); falling back to trending", strategy.value, type(e).__name__)
            result, degraded = await self._fallback(request, strategy), True

        result = self._finalize(result, request)

        # degraded answers are not cached so the next request retries the real strategy
        if not degraded:
            await self._cache_set(key, result)

        logger.info(
            "resolve done algorithm=%s items=%s confidence=%.1f degraded=%s total_time=%.3fs",
            result.algorithm, result.count, result.confidence, degraded, time.perf_counter() - t0,
        )
        return result

    async def recommend_for_user(
        self,
        user_id: str,
        *,
        strategy: Strategy = Strategy.HYBRID,
        limit: Optional[int] = None,
        include_already_interacted: bool = False,
        category_filter: Optional[List[str]] = None,
    ) -> RecommendationResult:
        return await self.resolve(RecommendationRequest(
            subject_type=SubjectType.USER,
            subject_id=user_id,
            strategy=strategy,
            limit=self.settings.default_limit if limit is None else limit,
            include_already_interacted=include_already_interacted,
            category_filter=category_filter,
        ))

    async def recommend_for_product(self, product_id: str, *, limit: Optional[int] = None) -> RecommendationResult:
        return await self.resolve(RecommendationRequest(
            subject_type=SubjectType.PRODUCT,
            subject_id=product_id,
            strategy=Strategy.ITEM_BASED,
            limit=self.settings.default_limit if limit is None else limit,
        ))

    async def trending(
        self,
        *,
        limit: Optional[int] = None,
        category_filter: Optional[List[str]] = None,
    ) -> RecommendationResult:
        return await self.recommend_for_user(
            ANONYMOUS_SUBJECT,
            strategy=Strategy.TRENDING,
            limit=limit,
            category_filter=category_filter,
        )

    # ----- steps ------------------------------------------------------------

    def _validate(self, request: RecommendationRequest) -> Strategy:
        """Check the request shape and return the effective strategy."""
        if not request.subject_id or not request.subject_id.strip():
            raise RequestValidationError("subject_id must be a non-empty string", field="subject_id")
        if isinstance(request.limit, bool) or request.limit < 1:
            raise RequestValidationError("limit must be >= 1", field="limit")
        if request.limit > self.settings.max_limit:
            raise RequestValidationError(f"limit must be <= {self.settings.max_limit}", field="limit")

        strategy = request.strategy
        if request.subject_type == SubjectType.PRODUCT:
            if strategy == Strategy.HYBRID:  # default strategy for a product page
                strategy = Strategy.ITEM_BASED
            if strategy not in _PRODUCT_STRATEGIES:
                raise RequestValidationError(
                    f"strategy {strategy.value} needs a USER subject", field="strategy"
                )
        elif strategy not in _USER_STRATEGIES:
            raise RequestValidationError(f"strategy {strategy.value} needs a PRODUCT subject", field="strategy")
        return strategy

    async def _dispatch(self, request: RecommendationRequest, strategy: Strategy) -> RecommendationResult:
        subject, limit = request.subject_id, request.limit

        if strategy == Strategy.TRENDING:
            return await self._trending(request)

        if strategy == Strategy.ITEM_BASED:
            return await get_item_based_recommendations(self.reader, subject, limit, self.settings)

        if strategy == Strategy.COLLABORATIVE:
            result = await collaborative_recommendations(
                self.reader, subject, limit,
                include_already_interacted=request.include_already_interacted,
                settings=self.settings,
            )
            return result if result is not None else await self._trending(request)

        if strategy == Strategy.CONTENT:
            result = await content_based_recommendations(
                self.reader, subject, limit,
                include_already_interacted=request.include_already_interacted,
                category_filter=request.category_filter,
            )
            return result if result is not None else await self._trending(request)

        return await hybrid_recommendation(
            self.reader, subject, limit,
            include_already_interacted=request.include_already_interacted,
            category_filter=request.category_filter,
            settings=self.settings,
            now=self.clock(),
        )

    async def _trending(self, request: RecommendationRequest) -> RecommendationResult:
        return await get_trending(
            self.reader, request.limit, request.category_filter,
            settings=self.settings, now=self.clock(),
        )

    async def _fallback(self, request: RecommendationRequest, failed: Strategy) -> RecommendationResult:
        if failed != Strategy.TRENDING:
            try:
                return await asyncio.wait_for(self._trending(request), timeout=self.settings.read_timeout_s)
            except Exception as e:
                logger.error("resolve trending fallback failed too: %s: %s", type(e).__name__, e)
        return RecommendationResult(products=[], algorithm=ALGO_TRENDING, confidence=0, reason=REASON_UNAVAILABLE)

    def _finalize(self, result: RecommendationResult, request: RecommendationRequest) -> RecommendationResult:
        """
        Enforce the result invariants whatever the strategy produced:
        no subject, no duplicates, score desc (stable), at most `limit`.
        """
        seen = {request.subject_id}
        products = []
        for p in sorted(result.products, key=lambda p: -p.recommendation_score):
            if p.product_id in seen:
                continue
            seen.add(p.product_id)
            products.append(p)
        products = products[: request.limit]
        if len(products) == len(result.products) and products == list(result.products):
            return result
        return result.model_copy(update={"products": products})

    async def _cache_get(self, key: str) -> Optional[RecommendationResult]:
        try:
            return await self.cache.get(key)
        except Exception as e:
            logger.warning("resolve cache.get error key=%s err=%s", key, e)
            return None

    async def _cache_set(self, key: str, result: RecommendationResult) -> None:
        try:
            await self.cache.set_with_ttl(key, result, self.settings.reco_cache_ttl)
            logger.debug("resolve cache_set key=%s ttl=%s items=%s", key, self.settings.reco_cache_ttl, result.count)
        except Exception as e:
            logger.warning("resolve cache.set error key=%s err=%s", key, e)

# shopreco/api/v1/routers/recommendations.py
from fastapi import APIRouter, Depends, Query
from typing import List, Optional
import time
import logging

from shopreco.api.deps import resolver_dep
from shopreco.domain.models.recommendation import RecommendationRequest, RecommendationResult, Strategy
from shopreco.domain.services.resolver_svc import RecommendationResolver

logger = logging.getLogger(__name__)

router = APIRouter(tags=["recommendations"])


@router.post("/recommendations/resolve", response_model=RecommendationResult)
async def resolve_recommendations(
    request: RecommendationRequest,
    resolver: RecommendationResolver = Depends(resolver_dep),
) -> RecommendationResult:
    """Generic entry point: any subject, any strategy."""
    t0 = time.perf_counter()
    result = await resolver.resolve(request)
    logger.info(
        "Response: resolve subject=%s:%s strategy=%s count=%s elapsed_time=%.4fs",
        request.subject_type.value, request.subject_id, request.strategy.value, result.count, time.perf_counter() - t0,
    )
    return result


@router.get("/users/{user_id}/recommendations", response_model=RecommendationResult)
async def user_recommendations(
    user_id: str,
    strategy: Strategy = Query(Strategy.HYBRID),
    limit: int = Query(10, description="Max number of products (>= 1)"),
    include_already_interacted: bool = Query(False, description="Keep products the user already bought"),
    category_id: Optional[List[str]] = Query(None, description="Restrict trending/content candidates"),
    resolver: RecommendationResolver = Depends(resolver_dep),
) -> RecommendationResult:
    logger.info(
        "Request: user_recommendations user_id=%s strategy=%s limit=%s include=%s category_id=%s",
        user_id, strategy.value, limit, include_already_interacted, category_id,
    )
    return await resolver.recommend_for_user(
        user_id,
        strategy=strategy,
        limit=limit,
        include_already_interacted=include_already_interacted,
        category_filter=category_id,
    )


@router.get("/products/{product_id}/recommendations", response_model=RecommendationResult)
async def product_recommendations(
    product_id: str,
    limit: int = Query(10),
    resolver: RecommendationResolver = Depends(resolver_dep),
) -> RecommendationResult:
    """Item-based: bought together, same category, shared tags, similar price."""
    logger.info("Request: product_recommendations product_id=%s limit=%s", product_id, limit)
    return await resolver.recommend_for_product(product_id, limit=limit)


@router.get("/recommendations/trending", response_model=RecommendationResult)
async def trending(
    limit: int = Query(10),
    category_id: Optional[List[str]] = Query(None),
    resolver: RecommendationResolver = Depends(resolver_dep),
) -> RecommendationResult:
    return await resolver.trending(limit=limit, category_filter=category_id)

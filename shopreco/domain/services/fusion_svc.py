import logging
import time
from datetime import datetime
from typing import Dict, List, Optional

from shopreco.core.config import Settings, get_settings
from shopreco.domain.models.product import ScoredProduct
from shopreco.domain.models.recommendation import RecommendationResult
from shopreco.domain.repositories.catalog_repo import CatalogReader
from shopreco.domain.services.constants import (
    ALGO_HYBRID,
    REASON_HYBRID,
    WEIGHT_COLLABORATIVE,
    WEIGHT_CONTENT,
)
from shopreco.domain.services.content_svc import content_based_recommendations
from shopreco.domain.services.ranking import gather_reads, guarded, position_weighted_merge, rank
from shopreco.domain.services.similarity_svc import collaborative_recommendations
from shopreco.domain.services.trending_svc import get_trending

logger = logging.getLogger(__name__)


def fuse(
    collaborative: Optional[RecommendationResult],
    content: Optional[RecommendationResult],
    limit: int,
) -> RecommendationResult:
    """
    Position-weighted merge of two ranked lists: collaborative 0.6, content 0.4.
    A product present in only one list keeps that list's points.
    """
    collab_products = collaborative.products if collaborative else []
    content_products = content.products if content else []

    scores = position_weighted_merge([
        ([p.product_id for p in collab_products], WEIGHT_COLLABORATIVE),
        ([p.product_id for p in content_products], WEIGHT_CONTENT),
    ])
    by_id: Dict[str, ScoredProduct] = {}
    for p in (*content_products, *collab_products):
        by_id[p.product_id] = p  # collaborative copy wins

    products = [
        ScoredProduct.from_product(by_id[pid], score)
        for pid, score in rank(scores)[:limit]
    ]
    confidence = max(
        collaborative.confidence if collaborative else 0.0,
        content.confidence if content else 0.0,
    )
    return RecommendationResult(products=products, algorithm=ALGO_HYBRID, confidence=confidence, reason=REASON_HYBRID)


async def hybrid_recommendation(
    reader: CatalogReader,
    user_id: str,
    limit: int,
    *,
    include_already_interacted: bool = False,
    category_filter: Optional[List[str]] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> RecommendationResult:
    """
    Collaborative + content-based, each asked for 2 * limit candidates, fused.
    A user with no purchase history gets the trending list instead.
    """
    settings = settings or get_settings()
    t0 = time.perf_counter()

    records = await guarded("get_completed_orders", reader.get_completed_orders(user_id))
    if not records:
        logger.info("hybrid user_id=%s no history -> trending", user_id)
        return await get_trending(reader, limit, category_filter, settings=settings, now=now)

    collaborative, content = await gather_reads(
        collaborative_recommendations(
            reader, user_id, limit * 2,
            include_already_interacted=include_already_interacted,
            settings=settings,
            records=records,
        ),
        content_based_recommendations(
            reader, user_id, limit * 2,
            include_already_interacted=include_already_interacted,
            category_filter=category_filter,
            records=records,
        ),
    )
    result = fuse(collaborative, content, limit)
    logger.info(
        "hybrid done user_id=%s collab=%s content=%s items=%s confidence=%.1f total_time=%.3fs",
        user_id,
        collaborative.count if collaborative else 0,
        content.count if content else 0,
        result.count, result.confidence, time.perf_counter() - t0,
    )
    return result

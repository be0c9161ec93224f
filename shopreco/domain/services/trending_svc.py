import logging
import time
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from shopreco.core.config import Settings, get_settings
from shopreco.domain.models.recommendation import RecommendationResult
from shopreco.domain.repositories.catalog_repo import CatalogReader
from shopreco.domain.services.constants import ALGO_TRENDING, REASON_TRENDING
from shopreco.domain.services.ranking import guarded, with_rank_scores

logger = logging.getLogger(__name__)


async def get_trending(
    reader: CatalogReader,
    limit: int,
    category_filter: Optional[List[str]] = None,
    *,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> RecommendationResult:
    """
    Context-free "popular right now" list, the universal fallback.

    Active products (optionally within `category_filter`) ranked by orders in
    the trailing window, then review count, then newest in catalog.
    Confidence is a fixed heuristic.
    """
    settings = settings or get_settings()
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=settings.trending_window_days)
    t0 = time.perf_counter()
    logger.info("trending start limit=%s category_filter=%s since=%s", limit, category_filter, since.isoformat())

    products = await guarded(
        "get_trending_products",
        reader.get_trending_products(since, limit, category_filter or None),
    )
    # ranked and bounded by the reader
    ranked = [p for p in products if p.is_active][:limit]

    logger.info("trending done items=%s total_time=%.3fs", len(ranked), time.perf_counter() - t0)
    return RecommendationResult(
        products=with_rank_scores(ranked),
        algorithm=ALGO_TRENDING,
        confidence=settings.trending_confidence,
        reason=REASON_TRENDING,
    )

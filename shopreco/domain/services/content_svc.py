import logging
import time
from typing import List, Optional

from shopreco.domain.models.product import InteractionRecord
from shopreco.domain.models.recommendation import PreferenceProfile, RecommendationResult
from shopreco.domain.repositories.catalog_repo import CatalogReader
from shopreco.domain.services.constants import ALGO_CONTENT, ORDERS_FOR_FULL_CONFIDENCE, REASON_CONTENT
from shopreco.domain.services.profile_svc import build_profile
from shopreco.domain.services.ranking import confidence_ratio, guarded, with_rank_scores

logger = logging.getLogger(__name__)


def _categories(profile: PreferenceProfile, category_filter: Optional[List[str]]) -> List[str]:
    """Preferred categories narrowed to the filter; the filter alone if nothing overlaps."""
    if not category_filter:
        return list(profile.top_categories)
    allowed = set(category_filter)
    narrowed = [c for c in profile.top_categories if c in allowed]
    return narrowed or sorted(allowed)


async def content_based_recommendations(
    reader: CatalogReader,
    user_id: str,
    limit: int,
    *,
    include_already_interacted: bool = False,
    category_filter: Optional[List[str]] = None,
    records: Optional[List[InteractionRecord]] = None,
) -> Optional[RecommendationResult]:
    """
    Catalog query shaped by the user's preference profile: top categories,
    price range and top tags, already purchased items excluded unless asked.
    Returns None for a user without completed orders.
    """
    t0 = time.perf_counter()
    profile = await build_profile(reader, user_id, records)
    if profile is None:
        return None

    exclude = [] if include_already_interacted else sorted(profile.excluded_product_ids)
    products = await guarded(
        "find_products",
        reader.find_products(
            category_ids=_categories(profile, category_filter),
            min_price=profile.price_range.min,
            max_price=profile.price_range.max,
            tags=list(profile.top_tags),
            exclude_ids=exclude,
            limit=limit,
        ),
    )
    excluded = set(exclude)
    products = [p for p in products if p.is_active and p.product_id not in excluded][:limit]

    logger.info(
        "content done user_id=%s items=%s orders=%s total_time=%.3fs",
        user_id, len(products), profile.order_count, time.perf_counter() - t0,
    )
    return RecommendationResult(
        products=with_rank_scores(products),
        algorithm=ALGO_CONTENT,
        confidence=confidence_ratio(profile.order_count, ORDERS_FOR_FULL_CONFIDENCE),
        reason=REASON_CONTENT,
    )

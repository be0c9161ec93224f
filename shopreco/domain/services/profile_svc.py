import logging
import statistics
import time
from typing import Dict, List, Optional

from shopreco.domain.models.product import InteractionRecord
from shopreco.domain.models.recommendation import PreferenceProfile, PriceRange
from shopreco.domain.repositories.catalog_repo import CatalogReader
from shopreco.domain.services.constants import TOP_CATEGORIES, TOP_TAGS
from shopreco.domain.services.ranking import guarded

logger = logging.getLogger(__name__)


def _top(counts: Dict[str, int], first_seen: Dict[str, int], k: int) -> List[str]:
    # first_seen indexes the recent-first line items, so lower = more recent
    return sorted(counts, key=lambda key: (-counts[key], first_seen[key], key))[:k]


def profile_from_records(records: List[InteractionRecord], products: Dict) -> Optional[PreferenceProfile]:
    """
    Pure part of the builder. `records` must be recent first; `products`
    maps product_id -> ProductRef for the purchased items.
    """
    if not records:
        return None

    category_count: Dict[str, int] = {}
    category_seen: Dict[str, int] = {}
    tag_count: Dict[str, int] = {}
    tag_seen: Dict[str, int] = {}
    prices: List[float] = []

    for i, rec in enumerate(records):
        product = products.get(rec.product_id)
        if product is not None:
            if product.category_id:
                category_count[product.category_id] = category_count.get(product.category_id, 0) + 1
                category_seen.setdefault(product.category_id, i)
            for tag in product.tags:
                tag_count[tag] = tag_count.get(tag, 0) + 1
                tag_seen.setdefault(tag, i)
        price = rec.unit_price if rec.unit_price > 0 else (product.price if product is not None else 0.0)
        prices.append(price)

    mean = statistics.fmean(prices)
    stddev = statistics.pstdev(prices, mu=mean)

    return PreferenceProfile(
        order_count=len({r.order_id for r in records}),
        top_categories=_top(category_count, category_seen, TOP_CATEGORIES),
        top_tags=_top(tag_count, tag_seen, TOP_TAGS),
        price_range=PriceRange(min=max(0.0, mean - stddev), max=mean + stddev),
        excluded_product_ids=frozenset(r.product_id for r in records),
    )


async def build_profile(
    reader: CatalogReader,
    user_id: str,
    records: Optional[List[InteractionRecord]] = None,
) -> Optional[PreferenceProfile]:
    """
    Category/tag/price affinities from the user's own completed orders.
    Returns None when the user has no completed order (cold start).
    """
    t0 = time.perf_counter()
    if records is None:
        records = await guarded("get_completed_orders", reader.get_completed_orders(user_id))
    if not records:
        logger.info("profile user_id=%s no completed orders (cold start)", user_id)
        return None

    products = await guarded("get_products", reader.get_products({r.product_id for r in records}))
    profile = profile_from_records(records, {p.product_id: p for p in products})
    logger.info(
        "profile user_id=%s orders=%s categories=%s tags=%s price=[%.2f, %.2f] time=%.3fs",
        user_id, profile.order_count, profile.top_categories, profile.top_tags,
        profile.price_range.min, profile.price_range.max, time.perf_counter() - t0,
    )
    return profile

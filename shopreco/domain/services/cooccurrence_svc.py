# shopreco/domain/services/cooccurrence_svc.py
import logging
import time
from typing import Dict, List, Optional

from shopreco.core.config import Settings, get_settings
from shopreco.core.logging import json_preview
from shopreco.domain.models.product import ProductRef
from shopreco.domain.models.recommendation import RecommendationResult
from shopreco.domain.repositories.catalog_repo import CatalogReader
from shopreco.domain.services.constants import (
    ALGO_ITEM_BASED,
    REASON_ITEM_BASED,
    REASON_PRODUCT_NOT_FOUND,
    WEIGHT_CATEGORY,
    WEIGHT_CO_BOUGHT,
    WEIGHT_PRICE_BAND,
    WEIGHT_TAG,
)
from shopreco.domain.services.ranking import (
    confidence_ratio,
    gather_reads,
    guarded,
    hydrate,
    position_weighted_merge,
    rank,
    ts,
)

logger = logging.getLogger(__name__)

# --- candidate lists ---------------------------------------------------------

async def co_bought_product_ids(reader: CatalogReader, product_id: str, cap: int) -> List[str]:
    """
    Other products found in orders containing `product_id`, by number of
    shared orders desc, then product id.
    """
    baskets = await guarded("get_order_baskets_with", reader.get_order_baskets_with(product_id))
    counts: Dict[str, int] = {}
    for basket in baskets:
        if product_id not in basket:
            continue
        for other in basket:
            if other != product_id:
                counts[other] = counts.get(other, 0) + 1
    ordered = sorted(counts, key=lambda pid: (-counts[pid], pid))
    return ordered[:cap]


def _without(items: List[ProductRef], src: ProductRef) -> List[ProductRef]:
    # the source would otherwise take a position (and points) in its own lists
    return [p for p in items if p.product_id != src.product_id]


async def _same_category(reader: CatalogReader, src: ProductRef, limit: int) -> List[ProductRef]:
    if not src.category_id:
        return []
    items = await guarded("get_products_by_category", reader.get_products_by_category(src.category_id, limit + 1))
    return sorted(_without(items, src), key=lambda p: (-p.sales_count, p.product_id))[:limit]


async def _tag_overlap(reader: CatalogReader, src: ProductRef, limit: int) -> List[ProductRef]:
    if not src.tags:
        return []
    items = await guarded("get_products_by_tag_overlap", reader.get_products_by_tag_overlap(src.tags, limit + 1))
    return sorted(_without(items, src), key=lambda p: (-p.review_count, p.product_id))[:limit]


async def _price_band(reader: CatalogReader, src: ProductRef, limit: int, ratio: float) -> List[ProductRef]:
    band = src.price * ratio
    items = await guarded(
        "get_products_by_price_band",
        reader.get_products_by_price_band(src.price - band, src.price + band, limit + 1),
    )
    return sorted(_without(items, src), key=lambda p: (-ts(p.updated_at), p.product_id))[:limit]


# --- item-based recommendations ---------------------------------------------

async def get_item_based_recommendations(
    reader: CatalogReader,
    product_id: str,
    limit: int,
    settings: Optional[Settings] = None,
) -> RecommendationResult:
    """
    Related products for a product page.

    Four candidate lists are fetched concurrently, each scored by position
    ((len - index) * weight) and summed per product:
      co-bought 0.4, same category 0.3, shared tag 0.2, price band (+/-30%) 0.1.
    The source product never appears in its own result.
    """
    settings = settings or get_settings()
    t0 = time.perf_counter()
    logger.info("item_based start product_id=%s limit=%s", product_id, limit)

    src = await guarded("get_product", reader.get_product(product_id))
    if src is None:
        logger.info("item_based no source product found for product_id=%s", product_id)
        return RecommendationResult(products=[], algorithm=ALGO_ITEM_BASED, confidence=0, reason=REASON_PRODUCT_NOT_FOUND)

    co_bought, category, tagged, priced = await gather_reads(
        co_bought_product_ids(reader, product_id, settings.co_bought_cap),
        _same_category(reader, src, limit),
        _tag_overlap(reader, src, limit),
        _price_band(reader, src, limit, settings.price_band_ratio),
    )
    logger.debug(
        "item_based lists co_bought=%s category=%s tag=%s price=%s",
        json_preview(co_bought), len(category), len(tagged), len(priced),
    )

    scores = position_weighted_merge([
        (co_bought, WEIGHT_CO_BOUGHT),
        ([p.product_id for p in category], WEIGHT_CATEGORY),
        ([p.product_id for p in tagged], WEIGHT_TAG),
        ([p.product_id for p in priced], WEIGHT_PRICE_BAND),
    ])
    scores.pop(product_id, None)

    known = {p.product_id: p for p in (*category, *tagged, *priced)}
    products = await hydrate(reader, rank(scores), limit, known=known)

    logger.info(
        "item_based done product_id=%s items=%s total_time=%.3fs",
        product_id, len(products), time.perf_counter() - t0,
    )
    return RecommendationResult(
        products=products,
        algorithm=ALGO_ITEM_BASED,
        confidence=confidence_ratio(len(products), limit),
        reason=REASON_ITEM_BASED,
    )

"""Shared scoring helpers for the recommendation engines.

Every ranked list in the service goes through `rank()`, so ties are always
broken the same way: higher score first, then product/user id ascending.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from shopreco.core.exceptions import UpstreamUnavailableError
from shopreco.domain.models.product import ProductRef, ScoredProduct
from shopreco.domain.repositories.catalog_repo import CatalogReader

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Float sums such as 0.8 + 0.6 must compare equal to 1.4
SCORE_PRECISION = 6


async def guarded(operation: str, aw: Awaitable[T]) -> T:
    """Await an upstream read, re-raising any failure as UpstreamUnavailableError."""
    try:
        return await aw
    except UpstreamUnavailableError:
        raise
    except Exception as e:
        raise UpstreamUnavailableError(operation, e) from e


async def gather_reads(*aws: Awaitable[Any]) -> List[Any]:
    """
    Run upstream reads concurrently. The first failure cancels the reads still
    in flight before it propagates, so a failed strategy leaves nothing running.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def position_weighted_merge(weighted_lists: Iterable[Tuple[Sequence[str], float]]) -> Dict[str, float]:
    """
    Position-weighted points: the item at `index` of a list of length n earns
    (n - index) * weight. Points for the same id accumulate across lists;
    absence from a list costs nothing.
    """
    scores: Dict[str, float] = {}
    for ids, weight in weighted_lists:
        n = len(ids)
        for index, item_id in enumerate(ids):
            scores[item_id] = scores.get(item_id, 0.0) + (n - index) * weight
    return {k: round(v, SCORE_PRECISION) for k, v in scores.items()}


def rank(scores: Mapping[str, float]) -> List[Tuple[str, float]]:
    """Sort (id, score) pairs by score desc, id asc."""
    return sorted(scores.items(), key=lambda kv: (-kv[1], kv[0]))


def confidence_ratio(numerator: float, saturation: float) -> float:
    """min(numerator / saturation, 1) * 100, clamped into [0, 100]."""
    if saturation <= 0:
        return 0.0
    return round(max(0.0, min(numerator / saturation, 1.0)) * 100, 2)


def ts(value: Optional[datetime]) -> float:
    """Sortable timestamp; missing dates sort last in descending order."""
    return value.timestamp() if value else float("-inf")


def with_rank_scores(products: Sequence[ProductRef]) -> List[ScoredProduct]:
    """Score an already ordered list by position: n, n-1, ..., 1."""
    n = len(products)
    return [ScoredProduct.from_product(p, n - i) for i, p in enumerate(products)]


async def hydrate(
    reader: CatalogReader,
    ranked: Sequence[Tuple[str, float]],
    limit: int,
    *,
    known: Optional[Mapping[str, ProductRef]] = None,
) -> List[ScoredProduct]:
    """
    Turn ranked (product_id, score) pairs into ScoredProducts, keeping the
    order, dropping products that are missing or not active, and stopping at `limit`.
    """
    known = dict(known or {})
    missing = [pid for pid, _ in ranked if pid not in known]
    if missing:
        fetched = await guarded("get_products", reader.get_products(missing))
        known.update({p.product_id: p for p in fetched})

    out: List[ScoredProduct] = []
    for pid, score in ranked:
        product = known.get(pid)
        if product is None or not product.is_active:
            continue
        out.append(ScoredProduct.from_product(product, score))
        if len(out) >= limit:
            break
    logger.debug("hydrate ranked=%s kept=%s limit=%s", len(ranked), len(out), limit)
    return out

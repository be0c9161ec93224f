import logging
import time
from typing import AbstractSet, Dict, List, Mapping, Optional, Set

from shopreco.core.config import Settings, get_settings
from shopreco.domain.models.product import InteractionRecord
from shopreco.domain.models.recommendation import RecommendationResult, SimilarUser
from shopreco.domain.repositories.catalog_repo import CatalogReader
from shopreco.domain.services.constants import (
    ALGO_COLLABORATIVE,
    REASON_COLLABORATIVE,
    SIMILAR_USERS_FOR_FULL_CONFIDENCE,
)
from shopreco.domain.services.ranking import SCORE_PRECISION, confidence_ratio, guarded, hydrate, rank

logger = logging.getLogger(__name__)


def jaccard(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    """|a ∩ b| / |a ∪ b|; 0.0 when both sets are empty."""
    union = len(a | b)
    return len(a & b) / union if union else 0.0


def similar_users_from_pool(
    user_id: str,
    purchased: AbstractSet[str],
    pool: Mapping[str, AbstractSet[str]],
    *,
    threshold: float,
    cap: int,
) -> List[SimilarUser]:
    """
    Keep users whose similarity is strictly above `threshold`, best first,
    ties by user id ascending, at most `cap` of them.
    """
    scored = []
    for other_id, other_products in pool.items():
        if other_id == user_id:
            continue
        sim = jaccard(purchased, other_products)
        if sim > threshold:
            scored.append((other_id, sim))
    scored.sort(key=lambda x: (-x[1], x[0]))
    return [SimilarUser(user_id=uid, similarity=sim) for uid, sim in scored[:cap]]


async def find_similar_users(
    reader: CatalogReader,
    user_id: str,
    purchased_product_ids: AbstractSet[str],
    settings: Optional[Settings] = None,
) -> List[SimilarUser]:
    settings = settings or get_settings()
    pool = await guarded(
        "get_candidate_buyers",
        reader.get_candidate_buyers(purchased_product_ids, exclude_user_id=user_id),
    )
    return similar_users_from_pool(
        user_id,
        purchased_product_ids,
        pool,
        threshold=settings.similarity_threshold,
        cap=settings.similar_users_cap,
    )


async def collaborative_recommendations(
    reader: CatalogReader,
    user_id: str,
    limit: int,
    *,
    include_already_interacted: bool = False,
    settings: Optional[Settings] = None,
    records: Optional[List[InteractionRecord]] = None,
) -> Optional[RecommendationResult]:
    """
    User-based collaborative filtering.
    A candidate's score is the summed similarity of the similar users who
    bought it. Returns None for a user without completed orders.
    `records` lets a caller that already read the order history pass it in.
    """
    settings = settings or get_settings()
    t0 = time.perf_counter()

    if records is None:
        records = await guarded("get_completed_orders", reader.get_completed_orders(user_id))
    if not records:
        logger.info("collaborative user_id=%s no history", user_id)
        return None
    purchased: Set[str] = {r.product_id for r in records}

    pool = await guarded(
        "get_candidate_buyers",
        reader.get_candidate_buyers(purchased, exclude_user_id=user_id),
    )
    similar = similar_users_from_pool(
        user_id, purchased, pool,
        threshold=settings.similarity_threshold,
        cap=settings.similar_users_cap,
    )
    logger.info("collaborative user_id=%s pool=%s similar=%s", user_id, len(pool), len(similar))

    scores: Dict[str, float] = {}
    for su in similar:
        for pid in pool.get(su.user_id, ()):
            if pid in purchased and not include_already_interacted:
                continue
            scores[pid] = scores.get(pid, 0.0) + su.similarity
    scores = {pid: round(s, SCORE_PRECISION) for pid, s in scores.items()}

    products = await hydrate(reader, rank(scores), limit)
    logger.info(
        "collaborative done user_id=%s items=%s total_time=%.3fs",
        user_id, len(products), time.perf_counter() - t0,
    )
    return RecommendationResult(
        products=products,
        algorithm=ALGO_COLLABORATIVE,
        confidence=confidence_ratio(len(similar), SIMILAR_USERS_FOR_FULL_CONFIDENCE),
        reason=REASON_COLLABORATIVE,
    )

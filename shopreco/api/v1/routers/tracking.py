# shopreco/api/v1/routers/tracking.py
from fastapi import APIRouter, Depends, status
import logging

from shopreco.api.deps import tracker_dep
from shopreco.api.v1.schemas.reco import PerformanceOut, TrackAck, TrackEventIn
from shopreco.domain.services.tracking_svc import RecommendationTracker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recommendations", tags=["tracking"])


@router.post("/track/click", response_model=TrackAck, status_code=status.HTTP_202_ACCEPTED)
async def track_click(event: TrackEventIn, tracker: RecommendationTracker = Depends(tracker_dep)) -> TrackAck:
    recorded = await tracker.record_click(event.user_id, event.product_id, event.algorithm)
    return TrackAck(recorded=recorded)


@router.post("/track/purchase", response_model=TrackAck, status_code=status.HTTP_202_ACCEPTED)
async def track_purchase(event: TrackEventIn, tracker: RecommendationTracker = Depends(tracker_dep)) -> TrackAck:
    recorded = await tracker.record_purchase(event.user_id, event.product_id, event.algorithm)
    return TrackAck(recorded=recorded)


@router.get("/performance/{algorithm}", response_model=PerformanceOut)
async def performance(algorithm: str, tracker: RecommendationTracker = Depends(tracker_dep)) -> PerformanceOut:
    stats = await tracker.get_performance(algorithm)
    logger.info("Response: performance algorithm=%s clicks=%s purchases=%s", algorithm, stats["clicks"], stats["purchases"])
    return PerformanceOut(**stats)

# shopreco/api/v1/routers/health.py
import asyncio
import time
from fastapi import APIRouter
from shopreco.core.config import get_settings
from shopreco.db import mongo
from shopreco.db.redis import get_redis

router = APIRouter(tags=["health"])
START_TIME = time.time()


async def _check_mongo(timeout: float) -> str:
    try:
        db = mongo.get_db()
    except AssertionError:
        return "not_configured"
    try:
        await asyncio.wait_for(db.command("ping"), timeout=timeout)
        return "ok"
    except Exception as e:
        return f"error: {type(e).__name__}: {e}"


async def _check_redis(timeout: float) -> str:
    r = get_redis()
    if r is None:
        return "skipped"
    try:
        await asyncio.wait_for(r.ping(), timeout=timeout)
        return "ok"
    except Exception as e:
        return f"error: {type(e).__name__}: {e}"


@router.get("/health")
async def health():
    """
    Mongo is required: without it every strategy degrades to an empty list.
    Redis is optional: 'skipped' means results are computed on every request
    and tracking counters are dropped.
    """
    settings = get_settings()
    mongodb, redis = await asyncio.gather(
        _check_mongo(settings.read_timeout_s),
        _check_redis(settings.read_timeout_s),
    )
    return {
        "status": "ok" if mongodb == "ok" and redis in ("ok", "skipped") else "degraded",
        "checks": {"mongodb": mongodb, "redis": redis},
        "service": {
            "app_name": settings.APP_NAME,
            "env": settings.APP_ENV,
            "version": settings.GIT_SHA,
            "uptime_seconds": int(time.time() - START_TIME),
            "cache_ttl_seconds": settings.reco_cache_ttl,
            "read_timeout_s": settings.read_timeout_s,
        },
    }

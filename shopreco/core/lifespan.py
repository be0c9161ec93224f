# shopreco/core/lifespan.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from shopreco.db import mongo, redis as r
from shopreco.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    # Mongo is the source of every recommendation
    if settings.MONGO_URI:
        await mongo.connect()
    else:
        logger.warning("No MONGO_URI provided, skipping Mongo connection")

    # Redis optional (cache + tracking)
    await r.connect()

    yield

    # --- Shutdown ---
    await r.disconnect()
    await mongo.disconnect()

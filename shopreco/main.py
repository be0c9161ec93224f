from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging, os

from shopreco.core.config import get_settings
from shopreco.core.exceptions import RecommendationException
from shopreco.core.lifespan import lifespan
from shopreco.core.logging import configure_logging
from shopreco.api.v1.routers.health import router as health_router
from shopreco.api.v1.routers.recommendations import router as recommendations_router
from shopreco.api.v1.routers.tracking import router as tracking_router

settings = get_settings()
configure_logging(debug=settings.DEBUG)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- CORS -------
# ALLOWED_ORIGINS is a CSV list, e.g. "https://shop.example.com,https://www.shop.example.com"
allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
allowed_origins = [o.strip() for o in allowed_origins_env.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)


@app.exception_handler(RecommendationException)
async def recommendation_exception_handler(request: Request, exc: RecommendationException):
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "details": exc.details})


# ------- Routes -------
app.include_router(health_router)
app.include_router(recommendations_router)    # resolve / user / product / trending
app.include_router(tracking_router)           # A/B click + purchase counters

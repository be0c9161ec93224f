from functools import lru_cache
from typing import Literal
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "ShopReco"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Mongo (catalog + orders, read-only)
    MONGO_URI: str = ""
    MONGO_DB: str = "shop"

    # Redis (result cache + tracking counters)
    REDIS_URL: str = ""

    # Result cache
    reco_cache_ttl: int = 30 * 60                # 30 minutes, expires passively
    reco_cache_prefix: str = "rec"               # redis key namespace
    tracking_prefix: str = "rec_performance"

    # Upstream reads
    read_timeout_s: float = 5.0                  # per strategy, seconds

    # Trending
    trending_window_days: int = 30
    trending_confidence: float = 85.0

    # Collaborative filtering
    similarity_threshold: float = 0.10           # strictly greater than
    similar_users_cap: int = 10

    # Item-based
    co_bought_cap: int = 10
    price_band_ratio: float = 0.30               # +/- 30% of the source price

    # Request shape
    default_limit: int = 10
    max_limit: int = 100

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )

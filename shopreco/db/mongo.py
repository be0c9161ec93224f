# shopreco/db/mongo.py
import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from shopreco.core.config import get_settings
import certifi

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


def get_db() -> AsyncIOMotorDatabase:
    assert _db is not None, "Mongo DB not initialized"
    return _db


async def connect():
    """
    Create the Motor client used by the catalog/order reader.
    A failed startup ping is not fatal: the client stays lazy and the first
    real query retries; meanwhile the resolver degrades to whatever it can read.
    """
    global _client, _db
    settings = get_settings()

    def _new_client() -> AsyncIOMotorClient:
        kwargs = dict(
            uuidRepresentation="standard",
            tz_aware=True,                      # order timestamps compared against UTC windows
            serverSelectionTimeoutMS=int(settings.read_timeout_s * 1000),
            connectTimeoutMS=int(settings.read_timeout_s * 1000),
        )
        if settings.MONGO_URI.startswith("mongodb+srv"):
            kwargs["tlsCAFile"] = certifi.where()  # Atlas from containers
        return AsyncIOMotorClient(settings.MONGO_URI, **kwargs)

    _client = _new_client()
    _db = _client[settings.MONGO_DB]
    try:
        await _client.admin.command("ping")
        logger.info("Mongo connected (ping ok) db=%s", settings.MONGO_DB)
    except Exception as e:
        logger.warning("Mongo ping at startup failed, keeping lazy client: %s", e)


async def disconnect():
    global _client, _db
    if _client:
        _client.close()
        logger.info("Mongo disconnected")
    _client = None
    _db = None

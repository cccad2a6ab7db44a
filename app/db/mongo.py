"""
app/db/mongo.py

Purpose: MongoDB connection setup

- One Motor client per process (tz-aware, pooled)
- Flat collections: users, receipts, retailers, products, pdfs, shops,
  crop_diagnosis, soil_analysis, agronomist_requests
- Startup connect retries with exponential backoff
- Ping-based health check for /health and /ready
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

CONNECT_ATTEMPTS = 3

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


def _new_client() -> AsyncIOMotorClient:
    return AsyncIOMotorClient(
        settings.MONGODB_URL,
        maxPoolSize=50,
        serverSelectionTimeoutMS=5000,
        connectTimeoutMS=10000,
        retryWrites=True,
        retryReads=True,
        tz_aware=True,
    )


async def connect_to_mongo():
    """
    Connects and pings the server; called during application startup.

    Raises:
        ConnectionError: server unreachable after CONNECT_ATTEMPTS tries
    """
    global _client, _database

    if _client is not None:
        logger.warning("MongoDB client already initialized")
        return

    retrying = AsyncRetrying(
        retry=retry_if_exception_type((ConnectionFailure, ServerSelectionTimeoutError)),
        stop=stop_after_attempt(CONNECT_ATTEMPTS),
        wait=wait_exponential(multiplier=2, min=2, max=8),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )

    try:
        async for attempt in retrying:
            with attempt:
                client = _new_client()
                try:
                    await client.admin.command("ping")
                except Exception:
                    client.close()
                    raise
    except RetryError as e:
        logger.critical(f"❌ MongoDB unreachable after {CONNECT_ATTEMPTS} attempts")
        raise ConnectionError("Could not establish MongoDB connection") from e.last_attempt.exception()

    _client = client
    _database = client[settings.MONGODB_DB_NAME]
    logger.info(f"✅ Connected to MongoDB: {settings.MONGODB_DB_NAME}")


async def close_mongo_connection():
    global _client, _database

    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


async def check_database_health() -> bool:
    """
    Returns:
        True if the server answers a ping
    """
    if _client is None:
        logger.error("MongoDB client not initialized")
        return False
    try:
        await _client.admin.command("ping")
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


def get_collection(name: str) -> AsyncIOMotorCollection:
    """
    Raises:
        RuntimeError: connect_to_mongo() has not run
    """
    if _database is None:
        raise RuntimeError("Database not initialized. Call connect_to_mongo() during startup.")
    return _database[name]

"""
MongoDB and Redis connections.

This module provides:
- MongoDB client connection via Motor (async driver)
- Redis client connection (refund policy source)
- Health check and shutdown utilities
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from betsettler.config import Settings

from .exceptions import StoreConnectionError

logger = logging.getLogger(__name__)

# Global client instances
_client: Optional[AsyncIOMotorClient] = None
_database_name: Optional[str] = None
_redis: Optional[Redis] = None


async def connect_mongo(settings: Settings) -> AsyncIOMotorDatabase:
    """
    Connect to MongoDB and verify the server answers a ping.

    Raises StoreConnectionError when the server is unreachable; the worker
    must not start in that case.
    """
    global _client, _database_name

    if _client is not None:
        return get_database()

    client = AsyncIOMotorClient(
        settings.mongo.uri,
        serverSelectionTimeoutMS=settings.mongo.server_selection_timeout_ms,
    )
    try:
        await client.admin.command("ping")
    except PyMongoError as e:
        client.close()
        raise StoreConnectionError("mongodb", str(e)) from e

    _client = client
    _database_name = settings.mongo.database
    logger.info(
        f"Connected to MongoDB {sanitize_mongodb_url(settings.mongo.uri)} "
        f"(database={_database_name})"
    )
    return get_database()


async def connect_redis(settings: Settings) -> Redis:
    """Connect to Redis and verify it answers a ping."""
    global _redis

    if _redis is not None:
        return _redis

    client = Redis(
        host=settings.redis.host,
        port=settings.redis.port,
        username=settings.redis.username,
        password=settings.redis.password,
        decode_responses=True,
    )
    try:
        await client.ping()
    except RedisError as e:
        await client.aclose()
        raise StoreConnectionError("redis", str(e)) from e

    _redis = client
    logger.info(f"Connected to Redis {settings.redis.host}:{settings.redis.port}")
    return _redis


def get_database() -> AsyncIOMotorDatabase:
    """
    Get the MongoDB database instance.
    """
    if _client is None or _database_name is None:
        raise RuntimeError("MongoDB not connected. Call connect_mongo() first.")
    return _client[_database_name]


def get_redis() -> Redis:
    """
    Get the Redis client instance.
    """
    if _redis is None:
        raise RuntimeError("Redis not connected. Call connect_redis() first.")
    return _redis


async def close_connections() -> None:
    """
    Close MongoDB and Redis connections.
    """
    global _client, _database_name, _redis

    if _client is not None:
        _client.close()
        _client = None
        _database_name = None
        logger.info("MongoDB disconnected")

    if _redis is not None:
        try:
            await _redis.aclose()
            logger.info("Redis disconnected")
        except RedisError as e:
            logger.error(f"Error closing Redis connection: {e}")
        finally:
            _redis = None


def sanitize_mongodb_url(url: str) -> str:
    """
    Hide password in MongoDB URL for safe logging.
    """
    if "@" not in url or "://" not in url:
        return url

    protocol, rest = url.split("://", 1)
    credentials, host = rest.rsplit("@", 1)
    if ":" in credentials:
        username = credentials.split(":", 1)[0]
        return f"{protocol}://{username}:***@{host}"
    return url

"""
Shared MongoDB Connection

Provides a process-wide Motor client so every repository context in the same
process shares one connection pool.

Usage:
    from mdb_repo.database import get_database

    db = get_database()  # uses MONGO_URI / DB_NAME
    ctx = RepositoryContext(db)
"""

import logging
import threading

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConfigurationError as PyMongoConfigurationError
from pymongo.errors import ConnectionFailure, OperationFailure, ServerSelectionTimeoutError

from ..config import RepositorySettings, get_settings

logger = logging.getLogger(__name__)

_shared_client: AsyncIOMotorClient | None = None
# threading.Lock: the client may be requested from several threads before a loop runs
_init_lock = threading.Lock()


def get_mongo_client(settings: RepositorySettings | None = None) -> AsyncIOMotorClient:
    """
    Get or create the shared Motor client.

    Args:
        settings: Connection settings (``get_settings()`` when omitted)

    Raises:
        ConfigurationError: If the URI or database name is missing
    """
    global _shared_client

    if _shared_client is not None:
        return _shared_client

    settings = settings or get_settings()
    settings.validate_connection()

    with _init_lock:
        if _shared_client is not None:
            return _shared_client

        logger.info(
            f"Creating shared MongoDB client (max_pool_size={settings.max_pool_size}, "
            f"min_pool_size={settings.min_pool_size})"
        )
        try:
            _shared_client = AsyncIOMotorClient(
                settings.mongo_uri,
                serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
                appname="MDB_REPO",
                maxPoolSize=settings.max_pool_size,
                minPoolSize=settings.min_pool_size,
                maxIdleTimeMS=settings.max_idle_time_ms,
                tz_aware=True,
            )
        except (PyMongoConfigurationError, ValueError, TypeError) as e:
            logger.error(f"Failed to create shared MongoDB client: {e}", exc_info=True)
            _shared_client = None
            raise

    return _shared_client


def get_database(settings: RepositorySettings | None = None) -> AsyncIOMotorDatabase:
    """Database named by ``settings.db_name`` on the shared client."""
    settings = settings or get_settings()
    return get_mongo_client(settings)[settings.db_name]


async def verify_connection() -> bool:
    """
    Ping the shared client.

    Returns:
        True if the server answered, False otherwise
    """
    if _shared_client is None:
        logger.warning("Shared MongoDB client is None - cannot verify")
        return False

    try:
        await _shared_client.admin.command("ping")
        return True
    except (ConnectionFailure, ServerSelectionTimeoutError, OperationFailure) as e:
        logger.error(f"Shared MongoDB client verification failed: {e}")
        return False


def close_mongo_client() -> None:
    """Close the shared client; the next ``get_mongo_client`` creates a new one."""
    global _shared_client

    with _init_lock:
        if _shared_client is not None:
            _shared_client.close()
            _shared_client = None
            logger.info("Closed shared MongoDB client")

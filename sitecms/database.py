"""
MongoDB connection gateway for the CMS handlers
"""
from typing import Any, Callable, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from loguru import logger

from .config import settings


class Collections:
    """Physical collection names"""

    YOUTUBE = "youtube_videos"
    PDF = "pdfs"
    LOGO = "logo"
    SITE_NAME = "site_name"
    PAGE_CONTROL = "page_control"
    PLANS = "subscription_plans"
    USERS = "users"
    WELCOME = "welcome_note"


class DatabaseUnavailable(Exception):
    """Raised when the MongoDB client cannot be created"""


class MongoGateway:
    """Lazily created, process-wide MongoDB client.

    The first ``get_database`` call builds the pooled client and every later
    call reuses it. ``invalidate`` drops the cached client so the next call
    reconnects; the handler boundary calls it when a connection failure
    escapes an operation.
    """

    def __init__(
        self,
        connection_string: str,
        database_name: str,
        client_factory: Callable[..., Any] = AsyncIOMotorClient,
        **client_options: Any,
    ):
        self.connection_string = connection_string
        self.database_name = database_name
        self.client_factory = client_factory
        self.client_options = client_options
        self.client: Optional[Any] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    @property
    def is_connected(self) -> bool:
        return self.client is not None

    def get_database(self) -> AsyncIOMotorDatabase:
        if self.database is not None:
            return self.database

        try:
            client = self.client_factory(self.connection_string, **self.client_options)
            database = client[self.database_name]
        except Exception as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise DatabaseUnavailable("Database connection failed") from e

        self.client = client
        self.database = database
        logger.info(f"MongoDB client created for database: {self.database_name}")
        return database

    def collection(self, name: str) -> AsyncIOMotorCollection:
        return self.get_database()[name]

    def invalidate(self):
        """Close and forget the cached client"""
        client = self.client
        self.client = None
        self.database = None
        if client is None:
            return
        try:
            client.close()
        except Exception as e:
            logger.warning(f"MongoDB client close failed: {e}")
        logger.info("MongoDB connection closed")

    def close(self):
        self.invalidate()


# Global gateway instance
gateway = MongoGateway(
    settings.MONGO_URI,
    settings.MONGO_DB_NAME,
    maxPoolSize=settings.MONGO_MAX_POOL_SIZE,
    minPoolSize=settings.MONGO_MIN_POOL_SIZE,
    socketTimeoutMS=settings.MONGO_SOCKET_TIMEOUT_MS,
    serverSelectionTimeoutMS=settings.MONGO_SERVER_SELECTION_TIMEOUT_MS,
    heartbeatFrequencyMS=settings.MONGO_HEARTBEAT_FREQUENCY_MS,
    connectTimeoutMS=settings.MONGO_CONNECT_TIMEOUT_MS,
)


def get_gateway() -> MongoGateway:
    """FastAPI dependency returning the shared gateway"""
    return gateway

"""
MongoDB Connection Management
============================

Centralized MongoDB connection management with connection pooling,
health checks and index management.

Features:
- Connection pooling configured from settings
- Ping-based health check
- Unique indexes on every external identifier used as an upsert key
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Dict, Any, List

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import IndexModel, ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure
import structlog

from fanpage_service.config.settings import Settings, get_settings

logger = structlog.get_logger(__name__)


# Collection names
FANPAGES = "fanpages"
POSTS = "posts"
COMMENTS = "comments"
MESSAGES = "messages"
NOTIFICATIONS = "notifications"
USERS = "users"
PACKAGES = "packages"


@dataclass
class MongoDBConfig:
    """MongoDB configuration with secure defaults"""
    uri: str = "mongodb://localhost:27017"
    database_name: str = "fanpage_service"

    # Connection pool settings
    max_pool_size: int = 100
    min_pool_size: int = 10
    max_idle_time_ms: int = 30000

    # Timeout settings
    connect_timeout_ms: int = 10000
    socket_timeout_ms: int = 5000
    server_selection_timeout_ms: int = 5000

    # Reliability settings
    retry_writes: bool = True
    retry_reads: bool = True

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MongoDBConfig":
        """Build the configuration from application settings."""
        settings = settings or get_settings()
        return cls(
            uri=settings.MONGODB_URI,
            database_name=settings.MONGODB_DATABASE,
            max_pool_size=settings.MONGODB_MAX_CONNECTIONS,
            min_pool_size=settings.MONGODB_MIN_CONNECTIONS,
        )

    def get_client_options(self) -> Dict[str, Any]:
        """
        Get client options for AsyncIOMotorClient

        Returns:
            Dictionary of client options
        """
        return {
            'maxPoolSize': self.max_pool_size,
            'minPoolSize': self.min_pool_size,
            'maxIdleTimeMS': self.max_idle_time_ms,
            'connectTimeoutMS': self.connect_timeout_ms,
            'socketTimeoutMS': self.socket_timeout_ms,
            'serverSelectionTimeoutMS': self.server_selection_timeout_ms,
            'retryWrites': self.retry_writes,
            'retryReads': self.retry_reads
        }


class MongoDBConnectionManager:
    """
    MongoDB connection manager
    """

    def __init__(self, config: MongoDBConfig):
        self.config = config
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self._connection_lock = asyncio.Lock()

    async def connect(self) -> AsyncIOMotorDatabase:
        """
        Establish connection to MongoDB

        Returns:
            MongoDB database instance

        Raises:
            ConnectionFailure: If connection cannot be established
        """
        async with self._connection_lock:
            if self.client is None:
                try:
                    logger.info("Connecting to MongoDB", database=self.config.database_name)

                    self.client = AsyncIOMotorClient(
                        self.config.uri,
                        **self.config.get_client_options()
                    )
                    self.database = self.client[self.config.database_name]

                    await self.client.admin.command('ping')

                    logger.info("Successfully connected to MongoDB")

                except Exception as e:
                    logger.error("Failed to connect to MongoDB", error=str(e))
                    if self.client is not None:
                        self.client.close()
                    self.client = None
                    self.database = None
                    raise ConnectionFailure(f"Failed to connect to MongoDB: {e}")

            return self.database

    async def disconnect(self) -> None:
        """Disconnect from MongoDB"""
        async with self._connection_lock:
            if self.client:
                self.client.close()
                self.client = None
                self.database = None
                logger.info("Disconnected from MongoDB")

    async def health_check(self) -> Dict[str, Any]:
        """
        Ping the server and report latency.

        Returns:
            Health status information
        """
        health_info = {
            "connected": False,
            "healthy": False,
            "database": self.config.database_name,
        }

        if self.client is None:
            health_info["error"] = "MongoDB not connected"
            return health_info

        try:
            loop = asyncio.get_running_loop()
            start_time = loop.time()
            await self.client.admin.command('ping')
            health_info.update({
                "connected": True,
                "healthy": True,
                "response_time_ms": round((loop.time() - start_time) * 1000, 2),
            })
        except Exception as e:
            health_info["error"] = str(e)

        return health_info


# Index Management
class MongoIndexManager:
    """MongoDB index management utilities"""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.logger = structlog.get_logger("MongoIndexManager")

    def index_definitions(self) -> Dict[str, List[IndexModel]]:
        """Indexes per collection. Unique keys back idempotent upserts."""
        return {
            FANPAGES: [
                IndexModel([("page_id", ASCENDING)], unique=True),
                IndexModel([("user_id", ASCENDING), ("is_connected", ASCENDING)]),
            ],
            POSTS: [
                IndexModel([("post_id", ASCENDING)], unique=True),
                IndexModel([("fanpage_id", ASCENDING), ("created_time", DESCENDING)]),
            ],
            COMMENTS: [
                IndexModel([("comment_id", ASCENDING)], unique=True),
                IndexModel([("post_id", ASCENDING), ("created_time", DESCENDING)]),
                IndexModel([("fanpage_id", ASCENDING)]),
            ],
            MESSAGES: [
                IndexModel([("message_id", ASCENDING)], unique=True),
                IndexModel([("conversation_id", ASCENDING), ("created_time", DESCENDING)]),
                IndexModel([("fanpage_id", ASCENDING), ("conversation_id", ASCENDING)]),
            ],
            NOTIFICATIONS: [
                IndexModel([("user_id", ASCENDING), ("created_at", DESCENDING)]),
                IndexModel([("user_id", ASCENDING), ("is_read", ASCENDING)]),
            ],
            USERS: [
                IndexModel([("facebook_token", ASCENDING)], sparse=True),
            ],
        }

    async def create_all_indexes(self) -> None:
        """Create all required indexes"""
        for collection_name, indexes in self.index_definitions().items():
            try:
                await self.database[collection_name].create_indexes(indexes)
            except Exception as e:
                self.logger.error(
                    "Failed to create indexes",
                    collection=collection_name,
                    error=str(e)
                )
                raise
        self.logger.info("All MongoDB indexes created successfully")


# Global connection manager instance
_connection_manager: Optional[MongoDBConnectionManager] = None


async def initialize_mongodb(config: Optional[MongoDBConfig] = None) -> AsyncIOMotorDatabase:
    """
    Initialize MongoDB connection

    Args:
        config: MongoDB configuration (built from settings if None)

    Returns:
        MongoDB database instance
    """
    global _connection_manager

    if config is None:
        config = MongoDBConfig.from_settings()

    if _connection_manager is None:
        _connection_manager = MongoDBConnectionManager(config)

    return await _connection_manager.connect()


async def close_mongodb() -> None:
    """Close MongoDB connection"""
    global _connection_manager

    if _connection_manager:
        await _connection_manager.disconnect()
        _connection_manager = None


async def mongodb_health_check() -> Dict[str, Any]:
    """
    Get MongoDB health status
    """
    if _connection_manager:
        return await _connection_manager.health_check()
    return {
        "connected": False,
        "healthy": False,
        "error": "MongoDB not initialized"
    }


async def setup_mongodb_indexes(database: AsyncIOMotorDatabase) -> None:
    """Setup all required MongoDB indexes"""
    await MongoIndexManager(database).create_all_indexes()

"""
Database package for Fanpage Service.

MongoDB is the only store; see ``mongodb.py`` for connection and index
management.
"""

from fanpage_service.database.mongodb import (
    MongoDBConfig,
    MongoDBConnectionManager,
    MongoIndexManager,
    initialize_mongodb,
    close_mongodb,
    mongodb_health_check,
    setup_mongodb_indexes,
)

__all__ = [
    "MongoDBConfig",
    "MongoDBConnectionManager",
    "MongoIndexManager",
    "initialize_mongodb",
    "close_mongodb",
    "mongodb_health_check",
    "setup_mongodb_indexes",
]

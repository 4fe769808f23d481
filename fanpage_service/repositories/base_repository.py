"""
Base Repository Pattern Implementation
=====================================

Provides the MongoDB base repository shared by every collection.

Key Features:
- Generic type support for type safety
- Standardized pagination
- Atomic insert-or-overwrite by natural key that reports whether the
  document was created
- Consistent error handling and timing logs
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TypeVar, Generic, Optional, List, Dict, Any, Tuple, Type

import structlog
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo import ReturnDocument, DESCENDING
from pymongo.errors import DuplicateKeyError

from fanpage_service.config.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from fanpage_service.models.base_model import BaseMongoModel, to_object_id
from fanpage_service.repositories.exceptions import (
    DuplicateEntityError, EntityNotFoundError, QueryError, RepositoryError
)
from fanpage_service.utils.date_utils import utc_now

# Generic type variable for entities
T = TypeVar('T', bound=BaseMongoModel)

SortSpec = List[Tuple[str, int]]


@dataclass
class Pagination:
    """
    Pagination parameters with validation and utility methods

    Attributes:
        page: Page number (1-based)
        page_size: Number of items per page
    """
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        """Calculate offset for database queries"""
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        """Alias for page_size for clarity"""
        return self.page_size

    def validate(self) -> None:
        """
        Validate pagination parameters

        Raises:
            ValueError: If parameters are invalid
        """
        if self.page < 1:
            raise ValueError("Page must be >= 1")
        if self.page_size < 1 or self.page_size > MAX_PAGE_SIZE:
            raise ValueError(f"Page size must be between 1 and {MAX_PAGE_SIZE}")


@dataclass
class PaginatedResult(Generic[T]):
    """
    Container for paginated query results with metadata

    Type Parameters:
        T: Type of items in the result set
    """
    items: List[T]
    total: int
    page: int
    page_size: int
    has_next: bool
    has_previous: bool
    total_pages: int

    @classmethod
    def create(
            cls,
            items: List[T],
            total: int,
            pagination: Pagination
    ) -> "PaginatedResult[T]":
        """
        Create paginated result from items and pagination info

        Args:
            items: List of items for current page
            total: Total number of items across all pages
            pagination: Pagination parameters used

        Returns:
            PaginatedResult instance with calculated metadata
        """
        total_pages = (total + pagination.page_size - 1) // pagination.page_size

        return cls(
            items=items,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            has_next=pagination.page < total_pages,
            has_previous=pagination.page > 1,
            total_pages=total_pages
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses"""
        return {
            "items": [
                item.to_api_dict() if hasattr(item, 'to_api_dict') else item
                for item in self.items
            ],
            "pagination": {
                "total": self.total,
                "page": self.page,
                "page_size": self.page_size,
                "total_pages": self.total_pages,
                "has_next": self.has_next,
                "has_previous": self.has_previous
            }
        }


@dataclass
class UpsertResult(Generic[T]):
    """Outcome of an insert-or-overwrite keyed by a natural identifier"""
    document: T
    created: bool


class BaseRepository(Generic[T]):
    """
    Base repository for one MongoDB collection

    Type Parameters:
        T: Document model this repository manages

    Subclasses set ``collection_name``, ``model`` and ``default_sort``.
    """

    collection_name: str = ""
    model: Type[T] = BaseMongoModel
    default_sort: SortSpec = [("created_at", DESCENDING)]

    def __init__(self, database: AsyncIOMotorDatabase):
        """
        Initialize repository

        Args:
            database: MongoDB database instance
        """
        self.database = database
        self.collection: AsyncIOMotorCollection = database[self.collection_name]
        self.logger = structlog.get_logger(self.__class__.__name__)

    # Reads

    async def get_by_id(self, entity_id: Any) -> Optional[T]:
        """
        Get document by its internal ``_id``

        Returns:
            Document if found, None otherwise (including malformed ids)
        """
        object_id = to_object_id(entity_id)
        if object_id is None:
            return None
        return await self.find_one({"_id": object_id})

    async def find_one(self, filters: Dict[str, Any]) -> Optional[T]:
        try:
            document = await self.collection.find_one(filters)
        except Exception as e:
            self._log_error("find_one", e, filters=str(filters))
            raise QueryError("find_one", e, self.collection_name)
        return self.model.from_mongo(document)

    async def find_many(
            self,
            filters: Dict[str, Any],
            sort: Optional[SortSpec] = None,
            limit: Optional[int] = None
    ) -> List[T]:
        try:
            cursor = self.collection.find(filters).sort(sort or self.default_sort)
            if limit:
                cursor = cursor.limit(limit)
            documents = await cursor.to_list(length=limit)
        except Exception as e:
            self._log_error("find_many", e, filters=str(filters))
            raise QueryError("find_many", e, self.collection_name)
        return [self.model.from_mongo(document) for document in documents]

    async def list(
            self,
            filters: Optional[Dict[str, Any]] = None,
            pagination: Optional[Pagination] = None,
            sort: Optional[SortSpec] = None
    ) -> PaginatedResult[T]:
        """
        List documents with optional filters and pagination

        Args:
            filters: Query filters
            pagination: Pagination parameters
            sort: Sort specification, defaults to ``default_sort``

        Returns:
            Paginated result set
        """
        filters = filters or {}
        pagination = self._validate_pagination(pagination)

        try:
            async with self._timed_operation("list"):
                total = await self.collection.count_documents(filters)
                cursor = (
                    self.collection.find(filters)
                    .sort(sort or self.default_sort)
                    .skip(pagination.offset)
                    .limit(pagination.limit)
                )
                documents = await cursor.to_list(length=pagination.limit)
        except Exception as e:
            self._log_error("list", e, filters=str(filters))
            raise QueryError("list", e, self.collection_name)

        items = [self.model.from_mongo(document) for document in documents]
        return PaginatedResult.create(items, total, pagination)

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        try:
            return await self.collection.count_documents(filters or {})
        except Exception as e:
            self._log_error("count", e, filters=str(filters))
            raise QueryError("count", e, self.collection_name)

    async def exists(self, filters: Dict[str, Any]) -> bool:
        return await self.count(filters) > 0

    # Writes

    async def create(self, entity: T) -> T:
        """
        Insert a new document

        Raises:
            DuplicateEntityError: If a unique index is violated
        """
        document = entity.to_mongo()
        now = utc_now()
        document["created_at"] = now
        document["updated_at"] = now

        try:
            async with self._timed_operation("create"):
                result = await self.collection.insert_one(document)
        except DuplicateKeyError as e:
            raise DuplicateEntityError(
                entity_type=self.model.__name__,
                conflicting_fields=getattr(e, "details", None) or {"error": str(e)},
                original_error=e
            )
        except Exception as e:
            self._log_error("create", e)
            raise QueryError("create", e, self.collection_name)

        document["_id"] = result.inserted_id
        return self.model.from_mongo(document)

    async def update_fields(self, entity_id: Any, fields: Dict[str, Any]) -> T:
        """
        Overwrite fields on an existing document

        Raises:
            EntityNotFoundError: If no document has this ``_id``
        """
        object_id = to_object_id(entity_id)
        if object_id is None:
            raise EntityNotFoundError(self.model.__name__, str(entity_id))

        try:
            async with self._timed_operation("update_fields"):
                document = await self.collection.find_one_and_update(
                    {"_id": object_id},
                    {"$set": {**fields, "updated_at": utc_now()}},
                    return_document=ReturnDocument.AFTER
                )
        except Exception as e:
            self._log_error("update_fields", e, entity_id=str(entity_id))
            raise QueryError("update_fields", e, self.collection_name)

        if document is None:
            raise EntityNotFoundError(self.model.__name__, str(entity_id))
        return self.model.from_mongo(document)

    async def delete(self, entity_id: Any) -> bool:
        object_id = to_object_id(entity_id)
        if object_id is None:
            return False
        try:
            result = await self.collection.delete_one({"_id": object_id})
        except Exception as e:
            self._log_error("delete", e, entity_id=str(entity_id))
            raise QueryError("delete", e, self.collection_name)
        return result.deleted_count > 0

    async def delete_many(self, filters: Dict[str, Any]) -> int:
        try:
            result = await self.collection.delete_many(filters)
        except Exception as e:
            self._log_error("delete_many", e, filters=str(filters))
            raise QueryError("delete_many", e, self.collection_name)
        return result.deleted_count

    async def upsert_by_key(
            self,
            key_field: str,
            key_value: str,
            set_fields: Dict[str, Any],
            insert_fields: Optional[Dict[str, Any]] = None
    ) -> UpsertResult[T]:
        """
        Insert or overwrite the document identified by a natural key.

        The write is a single ``update_one(upsert=True)`` so concurrent
        callers on the same key never both insert. ``set_fields`` are
        overwritten on every call; ``insert_fields`` are written only when
        the document is created, which keeps relations stable.

        Args:
            key_field: Unique field used as the idempotency key
            key_value: Value of that key
            set_fields: Mutable fields
            insert_fields: Fields fixed at creation time

        Returns:
            UpsertResult with the stored document and whether it was created
        """
        now = utc_now()
        set_fields = {k: v for k, v in set_fields.items() if k != key_field}
        insert_fields = {
            k: v for k, v in (insert_fields or {}).items()
            if k != key_field and k not in set_fields
        }

        update = {
            "$set": {**set_fields, "updated_at": now},
            "$setOnInsert": {**insert_fields, "created_at": now},
        }

        try:
            async with self._timed_operation("upsert"):
                try:
                    result = await self.collection.update_one(
                        {key_field: key_value}, update, upsert=True
                    )
                    created = result.upserted_id is not None
                except DuplicateKeyError:
                    # A concurrent writer created the key between match and insert
                    await self.collection.update_one(
                        {key_field: key_value}, {"$set": update["$set"]}
                    )
                    created = False

                document = await self.collection.find_one({key_field: key_value})
        except RepositoryError:
            raise
        except Exception as e:
            self._log_error("upsert", e, key_field=key_field, key_value=key_value)
            raise QueryError("upsert", e, self.collection_name)

        return UpsertResult(document=self.model.from_mongo(document), created=created)

    # Utility Methods

    def _validate_pagination(self, pagination: Optional[Pagination]) -> Pagination:
        if pagination is None:
            pagination = Pagination()
        pagination.validate()
        return pagination

    def _log_operation(
            self,
            operation: str,
            duration_ms: Optional[float] = None,
            **kwargs
    ) -> None:
        """
        Log repository operation with structured data

        Args:
            operation: Operation name
            duration_ms: Operation duration in milliseconds
            **kwargs: Additional context data
        """
        log_data = {
            "operation": operation,
            "repository": self.__class__.__name__,
            **kwargs
        }

        if duration_ms is not None:
            log_data["duration_ms"] = round(duration_ms, 2)

        self.logger.debug("Repository operation completed", **log_data)

    def _log_error(
            self,
            operation: str,
            error: Exception,
            **kwargs
    ) -> None:
        """
        Log repository error with context
        """
        self.logger.error(
            f"Repository operation failed: {operation}",
            error=str(error),
            error_type=type(error).__name__,
            repository=self.__class__.__name__,
            **kwargs
        )

    @asynccontextmanager
    async def _timed_operation(self, operation: str):
        """
        Context manager for timing and logging operations

        Args:
            operation: Operation name for logging
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time()
        try:
            yield
        finally:
            duration_ms = (loop.time() - start_time) * 1000
            self._log_operation(operation, duration_ms)

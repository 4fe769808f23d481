"""
Repository-specific exceptions
==============================

Exception Hierarchy:
    RepositoryError (base)
    ├── EntityNotFoundError
    ├── DuplicateEntityError
    └── QueryError

Services let these bubble up; anything not translated into a domain
error is rendered as a 500 by the top-level handler.
"""

from typing import Optional, Dict, Any

from fanpage_service.utils.date_utils import utc_now


class RepositoryError(Exception):
    """
    Base exception for all repository operations
    """

    def __init__(
            self,
            message: str,
            original_error: Optional[Exception] = None,
            error_code: Optional[str] = None,
            context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize repository error

        Args:
            message: Human-readable error message
            original_error: Original exception that caused this error
            error_code: Machine-readable error code
            context: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.error_code = error_code or self.__class__.__name__.upper()
        self.context = context or {}
        self.timestamp = utc_now()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization"""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
            "original_error": str(self.original_error) if self.original_error else None
        }

    def __str__(self) -> str:
        base_msg = self.message
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" (Context: {context_str})"
        return base_msg


class EntityNotFoundError(RepositoryError):
    """Raised when an update targets a document that does not exist."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id

        super().__init__(
            message=f"{entity_type} with ID '{entity_id}' not found",
            error_code="ENTITY_NOT_FOUND",
            context={"entity_type": entity_type, "entity_id": entity_id}
        )


class DuplicateEntityError(RepositoryError):
    """
    Raised when an insert violates a unique index.
    """

    def __init__(
            self,
            entity_type: str,
            conflicting_fields: Dict[str, Any],
            original_error: Optional[Exception] = None
    ):
        self.entity_type = entity_type
        self.conflicting_fields = conflicting_fields

        field_str = ", ".join(f"{k}={v}" for k, v in conflicting_fields.items())

        super().__init__(
            message=f"{entity_type} with {field_str} already exists",
            original_error=original_error,
            error_code="DUPLICATE_ENTITY",
            context={"entity_type": entity_type, "conflicting_fields": conflicting_fields}
        )


class QueryError(RepositoryError):
    """Raised when a MongoDB query or write fails unexpectedly."""

    def __init__(
            self,
            operation: str,
            original_error: Optional[Exception] = None,
            collection: Optional[str] = None
    ):
        self.operation = operation

        super().__init__(
            message=f"Repository operation '{operation}' failed: {original_error}",
            original_error=original_error,
            error_code="QUERY_ERROR",
            context={"operation": operation, "collection": collection}
        )

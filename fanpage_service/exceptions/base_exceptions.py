"""
Base exception classes and error handling for Fanpage Service.

This module provides the foundation for all custom exceptions
and centralized error handling throughout the application.
"""

import traceback
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from fanpage_service.config.constants import ErrorCategory
from fanpage_service.utils.date_utils import utc_now
from fanpage_service.utils.logger import get_logger

# Initialize logger
logger = get_logger(__name__)


class FanpageServiceException(Exception):
    """
    Base exception class for all Fanpage Service custom exceptions.

    This provides a consistent interface for error handling with
    structured error information and logging integration.
    """

    def __init__(
            self,
            message: str,
            error_code: str = "INTERNAL_ERROR",
            status_code: int = 500,
            details: Optional[Dict[str, Any]] = None,
            category: ErrorCategory = ErrorCategory.INTERNAL,
            user_message: Optional[str] = None,
            user_id: Optional[str] = None,
            caused_by: Optional[Exception] = None
    ):
        """
        Initialize Fanpage Service exception.

        Args:
            message: Internal error message for logging
            error_code: Machine-readable error code
            status_code: HTTP status code
            details: Additional error details
            category: Error category for monitoring
            user_message: Client-facing message (defaults to message)
            user_id: User ID if available
            caused_by: Original exception that caused this error
        """
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        self.category = category
        self.user_message = user_message or message
        self.user_id = user_id
        self.caused_by = caused_by
        self.timestamp = utc_now()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary representation.

        Returns:
            Dictionary with error information
        """
        error_dict = {
            "error": {
                "code": self.error_code,
                "message": self.user_message,
                "category": self.category.value,
                "timestamp": self.timestamp.isoformat(),
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict

    def log_error(self, logger: Optional[structlog.stdlib.BoundLogger] = None) -> None:
        """
        Log the error with appropriate level and context.

        Args:
            logger: Logger instance to use
        """
        if logger is None:
            logger = get_logger(__name__)

        log_data = {
            "error_code": self.error_code,
            "error_category": self.category.value,
            "status_code": self.status_code,
        }

        if self.user_id:
            log_data["user_id"] = self.user_id

        if self.details:
            log_data["details"] = self.details

        if self.caused_by:
            log_data["caused_by"] = str(self.caused_by)
            log_data["caused_by_type"] = type(self.caused_by).__name__

        # Choose appropriate log level based on status code
        if self.status_code >= 500:
            logger.error(self.message, **log_data)
        elif self.status_code >= 400:
            logger.warning(self.message, **log_data)
        else:
            logger.info(self.message, **log_data)


class ValidationError(FanpageServiceException):
    """Exception for malformed input."""

    def __init__(
            self,
            message: str = "Request validation failed",
            field: Optional[str] = None,
            value: Optional[Any] = None,
            **kwargs
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
            category=ErrorCategory.VALIDATION,
            details=details,
            **kwargs
        )


class AuthenticationError(FanpageServiceException):
    """Exception for missing or invalid credentials."""

    def __init__(
            self,
            message: str = "Authentication failed",
            **kwargs
    ):
        super().__init__(
            message=message,
            error_code="AUTHENTICATION_FAILED",
            status_code=401,
            category=ErrorCategory.AUTHENTICATION,
            **kwargs
        )


class AuthorizationError(FanpageServiceException):
    """Exception raised when the caller does not own the resource."""

    def __init__(
            self,
            message: str = "Not authorized",
            **kwargs
    ):
        super().__init__(
            message=message,
            error_code="AUTHORIZATION_FAILED",
            status_code=403,
            category=ErrorCategory.AUTHORIZATION,
            **kwargs
        )


class NotFoundError(FanpageServiceException):
    """Exception for resource not found errors."""

    def __init__(
            self,
            message: str = "Resource not found",
            resource_type: Optional[str] = None,
            resource_id: Optional[str] = None,
            **kwargs
    ):
        details = kwargs.pop("details", {})
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = str(resource_id)

        super().__init__(
            message=message,
            error_code="RESOURCE_NOT_FOUND",
            status_code=404,
            category=ErrorCategory.NOT_FOUND,
            details=details,
            **kwargs
        )


class UpstreamError(FanpageServiceException):
    """
    Exception for failed Graph API calls.

    The HTTP status and message reported by the platform are propagated
    to the client unchanged; transport failures default to 500.
    """

    def __init__(
            self,
            message: str = "Platform request failed",
            status_code: Optional[int] = None,
            operation: Optional[str] = None,
            platform_code: Optional[Any] = None,
            **kwargs
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        if platform_code is not None:
            details["platform_code"] = platform_code

        super().__init__(
            message=message,
            error_code="UPSTREAM_ERROR",
            status_code=status_code or 500,
            category=ErrorCategory.UPSTREAM,
            details=details,
            **kwargs
        )


class InternalServerError(FanpageServiceException):
    """Exception for internal server errors."""

    def __init__(
            self,
            message: str = "Internal server error",
            **kwargs
    ):
        super().__init__(
            message=message,
            error_code="INTERNAL_SERVER_ERROR",
            status_code=500,
            category=ErrorCategory.INTERNAL,
            user_message="Internal server error",
            **kwargs
        )


def _request_meta(request: Request) -> Dict[str, Any]:
    meta = {
        "timestamp": utc_now().isoformat(),
        "path": str(request.url.path),
        "method": request.method,
    }
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        meta["request_id"] = request_id
    return meta


async def fanpage_service_exception_handler(
        request: Request,
        exc: FanpageServiceException
) -> JSONResponse:
    """
    Handler for Fanpage Service custom exceptions.

    Args:
        request: FastAPI request object
        exc: Fanpage Service exception instance

    Returns:
        JSON response with error details
    """
    exc.log_error(logger)

    response_data = {
        "status": "error",
        **exc.to_dict(),
        "meta": _request_meta(request),
    }

    return JSONResponse(
        status_code=exc.status_code,
        content=response_data
    )


async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException
) -> JSONResponse:
    """
    Handler for standard HTTP exceptions.

    Args:
        request: FastAPI request object
        exc: HTTP exception instance

    Returns:
        JSON response with error details
    """
    category_map = {
        400: ErrorCategory.VALIDATION,
        401: ErrorCategory.AUTHENTICATION,
        403: ErrorCategory.AUTHORIZATION,
        404: ErrorCategory.NOT_FOUND,
    }

    category = category_map.get(exc.status_code, ErrorCategory.INTERNAL)

    error_data = {
        "status": "error",
        "error": {
            "code": f"HTTP_{exc.status_code}",
            "message": exc.detail,
            "category": category.value,
            "timestamp": utc_now().isoformat(),
        },
        "meta": _request_meta(request),
    }

    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        path=str(request.url.path),
        method=request.method
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_data,
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError
) -> JSONResponse:
    """
    Handler for request validation errors.

    Args:
        request: FastAPI request object
        exc: Request validation error instance

    Returns:
        JSON response with validation error details
    """
    validation_errors = []
    for error in exc.errors():
        validation_errors.append({
            "field": ".".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    error_data = {
        "status": "error",
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "category": ErrorCategory.VALIDATION.value,
            "timestamp": utc_now().isoformat(),
            "details": {
                "validation_errors": validation_errors
            }
        },
        "meta": _request_meta(request),
    }

    logger.warning(
        "Request validation failed",
        validation_errors=validation_errors,
        path=str(request.url.path),
        method=request.method
    )

    return JSONResponse(
        status_code=400,
        content=error_data
    )


async def generic_exception_handler(
        request: Request,
        exc: Exception
) -> JSONResponse:
    """
    Handler for unexpected exceptions.

    Only a generic message and an error id reach the client; the full
    traceback is logged under the same id.
    """
    error_id = str(uuid.uuid4())

    error_data = {
        "status": "error",
        "error": {
            "code": "INTERNAL_SERVER_ERROR",
            "message": "Internal server error",
            "category": ErrorCategory.INTERNAL.value,
            "timestamp": utc_now().isoformat(),
            "error_id": error_id,
        },
        "meta": _request_meta(request),
    }

    logger.error(
        "Unexpected exception occurred",
        error_id=error_id,
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=str(request.url.path),
        method=request.method,
        traceback="".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )

    return JSONResponse(
        status_code=500,
        content=error_data
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Setup exception handlers for the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(FanpageServiceException, fanpage_service_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Generic exception handler (catch-all)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers configured successfully")


__all__ = [
    "FanpageServiceException",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "UpstreamError",
    "InternalServerError",
    "setup_exception_handlers",
    "fanpage_service_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "generic_exception_handler",
]

"""
Exception hierarchy for Fanpage Service.

Every error raised by services maps onto one HTTP status through
``setup_exception_handlers``.
"""

from fanpage_service.exceptions.base_exceptions import (
    FanpageServiceException,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    UpstreamError,
    InternalServerError,
    setup_exception_handlers,
)

__all__ = [
    "FanpageServiceException",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "UpstreamError",
    "InternalServerError",
    "setup_exception_handlers",
]

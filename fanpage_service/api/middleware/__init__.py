from fanpage_service.api.middleware.auth_middleware import (
    AuthContext,
    auth_context_from_token,
    get_auth_context,
    verify_jwt_token,
)
from fanpage_service.api.middleware.logging_middleware import LoggingMiddleware, REQUEST_ID_HEADER

__all__ = [
    "AuthContext",
    "auth_context_from_token",
    "get_auth_context",
    "verify_jwt_token",
    "LoggingMiddleware",
    "REQUEST_ID_HEADER",
]

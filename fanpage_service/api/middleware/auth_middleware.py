"""
Authentication Middleware
JWT verification for the REST API and the real-time channel.

Tokens are issued by the account service; this service only verifies them.
"""

from datetime import datetime
from typing import Dict, Any, Optional

import jwt
import structlog
from fastapi import Header
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from pydantic import BaseModel

from fanpage_service.config.settings import get_settings
from fanpage_service.exceptions.base_exceptions import AuthenticationError
from fanpage_service.utils.date_utils import from_epoch
from fanpage_service.utils.logger import bind_context

logger = structlog.get_logger()


class AuthContext(BaseModel):
    """Authentication context for requests"""
    user_id: str
    email: Optional[str] = None
    role: str = "user"

    # Token metadata
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


def verify_jwt_token(token: str) -> Dict[str, Any]:
    """
    Verify JWT token and extract payload

    Args:
        token: JWT token to verify

    Returns:
        Token payload if valid

    Raises:
        InvalidTokenError: If token is invalid or lacks a subject
        ExpiredSignatureError: If token is expired
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.JWT_SECRET_KEY,
        algorithms=[settings.JWT_ALGORITHM]
    )

    if not (payload.get("sub") or payload.get("id")):
        raise InvalidTokenError("Missing subject claim")

    return payload


def auth_context_from_token(token: Optional[str]) -> AuthContext:
    """
    Build the auth context for a raw token.

    Raises:
        AuthenticationError: If the token is missing, expired or invalid
    """
    if not token:
        raise AuthenticationError("Authentication token required")

    try:
        payload = verify_jwt_token(token)
    except ExpiredSignatureError:
        logger.warning("Expired JWT token")
        raise AuthenticationError("Token has expired")
    except InvalidTokenError as e:
        logger.warning("Invalid JWT token", error=str(e))
        raise AuthenticationError("Invalid or expired token")

    return AuthContext(
        user_id=str(payload.get("sub") or payload.get("id")),
        email=payload.get("email"),
        role=payload.get("role", "user"),
        issued_at=from_epoch(payload["iat"]) if payload.get("iat") else None,
        expires_at=from_epoch(payload["exp"]) if payload.get("exp") else None
    )


async def get_auth_context(
        authorization: Optional[str] = Header(default=None, alias="Authorization")
) -> AuthContext:
    """
    Extract and validate authentication context from request

    Args:
        authorization: Authorization header with Bearer token

    Returns:
        AuthContext with validated user data

    Raises:
        AuthenticationError: If authentication fails
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Invalid authorization header format")

    auth_context = auth_context_from_token(authorization[len("Bearer "):].strip())
    bind_context(user_id=auth_context.user_id)
    return auth_context

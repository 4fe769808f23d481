"""
Base Service Class

Base class for all services providing common patterns and utilities
including logging, ownership checks and log sanitization.
"""

from abc import ABC
from typing import Any, Dict, Optional

import structlog
from bson import ObjectId

from fanpage_service.exceptions.base_exceptions import AuthorizationError, NotFoundError, ValidationError
from fanpage_service.models.base_model import to_object_id
from fanpage_service.models.mongo.fanpage_model import FanpageDocument
from fanpage_service.repositories.fanpage_repository import FanpageRepository


class BaseService(ABC):
    """Abstract base class for all services"""

    def __init__(self):
        self.logger = structlog.get_logger(self.__class__.__name__)
        self.service_name = self.__class__.__name__

    def log_operation(
            self,
            operation: str,
            user_id: Optional[Any] = None,
            **kwargs
    ) -> None:
        """Log service operation with standard fields"""
        log_data = {
            "service": self.service_name,
            "operation": operation,
            **self._sanitize_log_data(kwargs)
        }
        if user_id:
            log_data["user_id"] = str(user_id)

        self.logger.info("Service operation", **log_data)

    def require_object_id(self, value: Any, field: str) -> ObjectId:
        """
        Raises:
            ValidationError: If a caller-supplied id is not a valid ObjectId
        """
        object_id = to_object_id(value)
        if object_id is None:
            raise ValidationError(f"Invalid {field}", field=field, value=value)
        return object_id

    def _sanitize_log_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Remove sensitive data from log entries"""
        sensitive_fields = ["password", "token", "secret", "credential", "authorization"]

        sanitized = {}
        for key, value in data.items():
            if any(sensitive in key.lower() for sensitive in sensitive_fields):
                sanitized[key] = "[REDACTED]"
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_log_data(value)
            else:
                sanitized[key] = value

        return sanitized


class FanpageScopedService(BaseService):
    """Base for services whose operations act on a fanpage owned by the caller"""

    def __init__(self, fanpage_repo: FanpageRepository):
        super().__init__()
        self.fanpage_repo = fanpage_repo

    def ensure_owner(self, fanpage: FanpageDocument, user_id: Any) -> FanpageDocument:
        """
        Raises:
            AuthorizationError: If the user does not own the fanpage
        """
        if not fanpage.is_owned_by(user_id):
            self.logger.warning(
                "Fanpage access denied",
                fanpage_id=str(fanpage.id),
                user_id=str(user_id)
            )
            raise AuthorizationError("Not authorized to access this fanpage", user_id=str(user_id))
        return fanpage

    async def get_owned_fanpage(self, fanpage_id: Any, user_id: Any) -> FanpageDocument:
        """
        Load a fanpage by internal id and check ownership.

        Raises:
            NotFoundError: If the fanpage does not exist
            AuthorizationError: If the user does not own it
        """
        fanpage = await self.fanpage_repo.get_by_id(self.require_object_id(fanpage_id, "fanpage_id"))
        if fanpage is None:
            raise NotFoundError("Fanpage not found", resource_type="fanpage", resource_id=str(fanpage_id))
        return self.ensure_owner(fanpage, user_id)

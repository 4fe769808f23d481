"""
Standard API Response Format
Provides consistent response structure across all endpoints.
"""

from typing import TypeVar, Generic, Optional, Dict, Any

from pydantic import BaseModel, Field

from fanpage_service.config.constants import API_VERSION
from fanpage_service.models.base_model import to_jsonable
from fanpage_service.utils.date_utils import utc_now

T = TypeVar('T')


class APIResponse(BaseModel, Generic[T]):
    """Standard API response wrapper"""

    status: str = Field(
        default="success",
        description="Response status",
        pattern=r"^(success|error)$"
    )
    data: Optional[T] = Field(
        default=None,
        description="Response data payload"
    )
    meta: Dict[str, Any] = Field(
        default_factory=dict,
        description="Response metadata"
    )
    error: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Error information if status is error"
    )


def create_success_response(
        data: Any = None,
        message: Optional[str] = None,
        request_id: Optional[str] = None,
        **meta_kwargs
) -> APIResponse[Any]:
    """
    Create a successful API response

    Models exposing ``to_api_dict`` (documents, paginated results) are
    serialized with it; ObjectIds and datetimes become strings.

    Args:
        data: Response data payload
        message: Optional success message
        request_id: Optional request ID for tracing
        **meta_kwargs: Additional metadata fields

    Returns:
        APIResponse with success status
    """
    meta = {
        "timestamp": utc_now().isoformat(),
        "api_version": API_VERSION,
        **meta_kwargs
    }

    if message:
        meta["message"] = message
    if request_id:
        meta["request_id"] = request_id

    return APIResponse(
        status="success",
        data=serialize(data),
        meta=meta
    )


def serialize(data: Any) -> Any:
    if hasattr(data, "to_api_dict"):
        return data.to_api_dict()
    if hasattr(data, "to_dict") and not isinstance(data, dict):
        return data.to_dict()
    if isinstance(data, dict):
        return {key: serialize(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [serialize(item) for item in data]
    return to_jsonable(data)

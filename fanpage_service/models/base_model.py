# fanpage_service/models/base_model.py
"""
Base model classes providing common functionality for all models.
Includes audit fields, ObjectId handling and serialization utilities.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Optional

from bson import ObjectId
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from fanpage_service.utils.date_utils import utc_now, format_for_api


def _coerce_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError(f"Invalid ObjectId: {value!r}")


# ObjectId that also accepts its 24-character hex form
PyObjectId = Annotated[ObjectId, BeforeValidator(_coerce_object_id)]


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Return ``value`` as an ObjectId, or None if it is not a valid one."""
    try:
        return _coerce_object_id(value)
    except ValueError:
        return None


def to_jsonable(value: Any) -> Any:
    """Recursively convert Mongo-native values into JSON-friendly ones."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return format_for_api(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


class BaseMongoModel(BaseModel):
    """
    Base model for MongoDB documents with common fields and utilities.
    Provides audit trail fields and serialization helpers.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
    )

    # MongoDB ObjectId field
    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    # Audit trail fields
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_mongo(self, exclude_none: bool = True) -> Dict[str, Any]:
        """
        Convert model to a dictionary suitable for MongoDB storage.

        Args:
            exclude_none: Whether to exclude None values

        Returns:
            Dictionary representation keyed with ``_id``
        """
        data = self.model_dump(by_alias=True, exclude_none=exclude_none)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    @classmethod
    def from_mongo(cls, data: Optional[Dict[str, Any]]):
        """
        Create model instance from a MongoDB document.

        Returns:
            Model instance, or None if ``data`` is None
        """
        if data is None:
            return None
        return cls.model_validate(data)

    def to_api_dict(self) -> Dict[str, Any]:
        """Serialize for API responses and real-time payloads."""
        data = self.model_dump(by_alias=False)
        return to_jsonable(data)

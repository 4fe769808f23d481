# fanpage_service/models/mongo/user_model.py
"""
MongoDB document models for users and subscription packages.

Both collections are owned by the account and billing side of the
platform; this service reads them and only ever writes the Facebook
credential fields back onto the user.
"""

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field

from fanpage_service.models.base_model import BaseMongoModel, PyObjectId
from fanpage_service.utils.date_utils import is_older_than, utc_now


class UserDocument(BaseMongoModel):
    """Platform user holding a Facebook credential"""

    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = None
    name: Optional[str] = None
    facebook_token: Optional[str] = None
    facebook_token_issued_at: Optional[datetime] = None
    package_id: Optional[PyObjectId] = None
    package_expiry: Optional[datetime] = None

    @property
    def credential_timestamp(self) -> Optional[datetime]:
        """When the Facebook credential was issued, or last touched if unknown."""
        return self.facebook_token_issued_at or self.updated_at

    def credential_is_stale(self, max_age_days: int, now: Optional[datetime] = None) -> bool:
        return is_older_than(self.credential_timestamp, max_age_days, now)

    def package_is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.package_id is None or self.package_expiry is None:
            return False
        return self.package_expiry < (now or utc_now())


class PackageDocument(BaseMongoModel):
    """Subscription tier limiting how many fanpages a user may connect"""

    model_config = ConfigDict(extra="ignore")

    name: str
    max_fanpages: int = Field(..., ge=0)
    duration_days: Optional[int] = Field(default=None, ge=1)
    price: Optional[float] = None

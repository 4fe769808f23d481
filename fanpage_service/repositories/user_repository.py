"""
User and Package Repositories
=============================

Read access to accounts and subscription tiers, plus the Facebook
credential fields this service maintains on the user document.
"""

from typing import Any, List, Optional

from pymongo import ASCENDING

from fanpage_service.database.mongodb import USERS, PACKAGES
from fanpage_service.models.mongo.user_model import UserDocument, PackageDocument
from fanpage_service.repositories.base_repository import BaseRepository
from fanpage_service.utils.date_utils import utc_now


class UserRepository(BaseRepository[UserDocument]):
    """Repository for user documents"""

    collection_name = USERS
    model = UserDocument
    default_sort = [("_id", ASCENDING)]

    async def list_with_facebook_token(self) -> List[UserDocument]:
        """Every user holding a Facebook credential."""
        return await self.find_many(
            {"facebook_token": {"$exists": True, "$nin": [None, ""]}}
        )

    async def update_facebook_token(self, user_id: Any, token: str) -> UserDocument:
        """Store a fresh credential and record when it was issued."""
        return await self.update_fields(
            user_id,
            {"facebook_token": token, "facebook_token_issued_at": utc_now()}
        )

    async def clear_package(self, user_id: Any) -> UserDocument:
        return await self.update_fields(user_id, {"package_id": None, "package_expiry": None})


class PackageRepository(BaseRepository[PackageDocument]):
    """Read-only access to subscription packages"""

    collection_name = PACKAGES
    model = PackageDocument

    async def get_package(self, package_id: Any) -> Optional[PackageDocument]:
        return await self.get_by_id(package_id)

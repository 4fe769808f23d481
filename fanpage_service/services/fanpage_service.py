"""
Fanpage Service

Connects, disconnects and refreshes Facebook pages for a user. Connecting
is gated by the user's subscription package and triggers a full initial
sync of posts, comments and conversations.
"""

from typing import Any, Dict, List

from fanpage_service.core.channels.graph_client import FacebookGraphClient
from fanpage_service.core.normalizers.graph_normalizer import picture_url
from fanpage_service.exceptions.base_exceptions import (
    AuthorizationError,
    FanpageServiceException,
    NotFoundError,
    ValidationError,
)
from fanpage_service.models.mongo.fanpage_model import FanpageDocument
from fanpage_service.models.mongo.user_model import UserDocument
from fanpage_service.repositories.fanpage_repository import FanpageRepository
from fanpage_service.repositories.user_repository import PackageRepository, UserRepository
from fanpage_service.services.base_service import FanpageScopedService
from fanpage_service.services.reconciliation_service import ReconciliationService


class FanpageService(FanpageScopedService):
    """Service for the fanpage connection lifecycle"""

    def __init__(
            self,
            fanpage_repo: FanpageRepository,
            user_repo: UserRepository,
            package_repo: PackageRepository,
            graph_client: FacebookGraphClient,
            reconciliation: ReconciliationService,
            free_tier_max_fanpages: int = 1
    ):
        super().__init__(fanpage_repo)
        self.user_repo = user_repo
        self.package_repo = package_repo
        self.graph_client = graph_client
        self.reconciliation = reconciliation
        self.free_tier_max_fanpages = free_tier_max_fanpages

    async def get_user(self, user_id: Any) -> UserDocument:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", resource_type="user", resource_id=str(user_id))
        return user

    async def get_user_token(self, user_id: Any) -> str:
        user = await self.get_user(user_id)
        if not user.facebook_token:
            raise ValidationError("Facebook account is not linked", field="facebook_token")
        return user.facebook_token

    async def list_fanpages(self, user_id: Any) -> List[FanpageDocument]:
        return await self.fanpage_repo.list_for_user(user_id)

    async def list_available_pages(self, user_id: Any) -> List[Dict[str, Any]]:
        """Pages the user administers on Facebook, flagged when already connected."""
        token = await self.get_user_token(user_id)
        pages = await self.graph_client.list_user_pages(token)
        connected = {page.page_id for page in await self.fanpage_repo.list_for_user(user_id)}

        return [
            {
                "id": page.get("id"),
                "name": page.get("name"),
                "category": page.get("category"),
                "picture": picture_url(page.get("picture")),
                "connected": page.get("id") in connected,
            }
            for page in pages
        ]

    async def fanpage_limit(self, user: UserDocument) -> int:
        """
        Maximum connected pages for the user's tier.

        An expired package is cleared on the spot.

        Raises:
            AuthorizationError: If the package has expired
        """
        if user.package_id is None:
            return self.free_tier_max_fanpages

        if user.package_is_expired():
            await self.user_repo.clear_package(user.id)
            self.logger.info("Expired package cleared", user_id=str(user.id))
            raise AuthorizationError("Your package has expired", user_id=str(user.id))

        package = await self.package_repo.get_package(user.package_id)
        if package is None:
            return self.free_tier_max_fanpages
        return package.max_fanpages

    async def ensure_can_connect(self, user: UserDocument) -> None:
        limit = await self.fanpage_limit(user)
        connected = await self.fanpage_repo.count_connected_for_user(user.id)
        if connected >= limit:
            raise AuthorizationError(
                f"Fanpage limit reached ({limit}) for your package",
                user_id=str(user.id),
                details={"limit": limit, "connected": connected}
            )

    async def connect_fanpage(self, user_id: Any, page_id: str) -> Dict[str, Any]:
        """
        Connect a page and run the initial sync.

        A sync failure is reported in the result and does not undo the
        connection.

        Returns:
            ``{"fanpage": FanpageDocument, "sync": summary or error}``
        """
        user = await self.get_user(user_id)
        if not user.facebook_token:
            raise ValidationError("Facebook account is not linked", field="facebook_token")

        existing = await self.fanpage_repo.get_by_page_id(page_id)
        if existing is not None:
            if not existing.is_owned_by(user.id):
                raise ValidationError("Fanpage is connected to another account", field="page_id", value=page_id)
            if existing.is_connected:
                raise ValidationError("Fanpage is already connected", field="page_id", value=page_id)

        await self.ensure_can_connect(user)

        details = await self.graph_client.get_page_details(page_id, user.facebook_token)
        if not details.get("access_token"):
            raise ValidationError("Page credential unavailable; is the user a page admin?", field="page_id")

        fields = {
            "name": details.get("name") or page_id,
            "access_token": details["access_token"],
            "category": details.get("category"),
            "picture_url": picture_url(details.get("picture")),
        }

        if existing is not None:
            fanpage = await self.fanpage_repo.update_fields(existing.id, {**fields, "is_connected": True})
        else:
            fanpage = await self.fanpage_repo.create(
                FanpageDocument(page_id=page_id, user_id=user.id, **fields)
            )

        self.log_operation("connect_fanpage", user_id=user.id, page_id=page_id, fanpage_id=str(fanpage.id))

        try:
            sync = await self.reconciliation.sync_fanpage(fanpage)
        except FanpageServiceException as e:
            e.log_error(self.logger)
            sync = {"error": e.user_message}
        except Exception as e:
            self.logger.error("Initial fanpage sync failed", fanpage_id=str(fanpage.id), error=str(e))
            sync = {"error": "Initial sync failed"}

        return {"fanpage": fanpage, "sync": sync}

    async def disconnect_fanpage(self, fanpage_id: Any, user_id: Any) -> FanpageDocument:
        """Soft-disable the page; cached content is kept."""
        fanpage = await self.get_owned_fanpage(fanpage_id, user_id)
        fanpage = await self.fanpage_repo.set_connected(fanpage.id, False)
        self.log_operation("disconnect_fanpage", user_id=user_id, fanpage_id=str(fanpage.id))
        return fanpage

    async def refresh_page_token(self, fanpage_id: Any, user_id: Any) -> FanpageDocument:
        fanpage = await self.get_owned_fanpage(fanpage_id, user_id)
        user_token = await self.get_user_token(user_id)
        page_token = await self.graph_client.get_page_access_token(fanpage.page_id, user_token)
        fanpage = await self.fanpage_repo.update_access_token(fanpage.id, page_token)
        self.log_operation("refresh_page_token", user_id=user_id, fanpage_id=str(fanpage.id))
        return fanpage

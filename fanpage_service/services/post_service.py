"""
Post Service

Reads and writes fanpage posts. Writes go to the Graph API first and are
mirrored into the local cache only once the platform accepted them.
"""

from typing import Any, Optional, Tuple

from fanpage_service.config.constants import RealtimeEvent
from fanpage_service.core.channels.graph_client import FacebookGraphClient
from fanpage_service.core.normalizers.graph_normalizer import PlatformRecord
from fanpage_service.core.realtime.connection_registry import ConnectionRegistry
from fanpage_service.exceptions.base_exceptions import NotFoundError, UpstreamError, ValidationError
from fanpage_service.models.mongo.fanpage_model import FanpageDocument
from fanpage_service.models.mongo.post_model import PostDocument
from fanpage_service.repositories.base_repository import Pagination, PaginatedResult
from fanpage_service.repositories.comment_repository import CommentRepository
from fanpage_service.repositories.fanpage_repository import FanpageRepository
from fanpage_service.repositories.post_repository import PostRepository
from fanpage_service.services.base_service import FanpageScopedService
from fanpage_service.services.reconciliation_service import ReconcileScope, ReconciliationService
from fanpage_service.utils.date_utils import utc_now


class PostService(FanpageScopedService):
    """Service for fanpage posts"""

    def __init__(
            self,
            fanpage_repo: FanpageRepository,
            post_repo: PostRepository,
            comment_repo: CommentRepository,
            graph_client: FacebookGraphClient,
            reconciliation: ReconciliationService,
            registry: ConnectionRegistry
    ):
        super().__init__(fanpage_repo)
        self.post_repo = post_repo
        self.comment_repo = comment_repo
        self.graph_client = graph_client
        self.reconciliation = reconciliation
        self.registry = registry

    async def get_owned_post(self, post_id: Any, user_id: Any) -> Tuple[PostDocument, FanpageDocument]:
        post = await self.post_repo.get_by_id(self.require_object_id(post_id, "post_id"))
        if post is None:
            raise NotFoundError("Post not found", resource_type="post", resource_id=str(post_id))
        fanpage = await self.get_owned_fanpage(post.fanpage_id, user_id)
        return post, fanpage

    async def list_posts(
            self,
            fanpage_id: Any,
            user_id: Any,
            pagination: Optional[Pagination] = None
    ) -> PaginatedResult[PostDocument]:
        fanpage = await self.get_owned_fanpage(fanpage_id, user_id)
        return await self.reconciliation.get_posts(fanpage, pagination)

    async def create_post(self, fanpage_id: Any, user_id: Any, message: str) -> PostDocument:
        if not message or not message.strip():
            raise ValidationError("Post content is required", field="message")

        fanpage = await self.get_owned_fanpage(fanpage_id, user_id)
        response = await self.graph_client.create_post(fanpage.page_id, fanpage.access_token, message)
        post_id = response.get("id")
        if not post_id:
            raise UpstreamError("Graph API returned no post id", operation="create_post")

        now = utc_now()
        stored = await self.reconciliation.reconcile_one(
            ReconcileScope.posts(fanpage),
            PlatformRecord(
                external_id=post_id,
                fields={"content": message, "updated_time": now},
                relations={"created_time": now}
            ),
            emit=True
        )
        self.log_operation("create_post", user_id=user_id, post_id=post_id)
        return stored

    async def update_post(self, post_id: Any, user_id: Any, message: str) -> PostDocument:
        if not message or not message.strip():
            raise ValidationError("Post content is required", field="message")

        post, fanpage = await self.get_owned_post(post_id, user_id)
        await self.graph_client.update_post(post.post_id, fanpage.access_token, message)
        post = await self.post_repo.update_fields(post.id, {"content": message, "updated_time": utc_now()})

        await self.registry.emit_to_user(
            fanpage.user_id,
            RealtimeEvent.POST_UPDATED.value,
            {"fanpageId": str(fanpage.id), "item": post.to_api_dict()}
        )
        self.log_operation("update_post", user_id=user_id, post_id=post.post_id)
        return post

    async def delete_post(self, post_id: Any, user_id: Any) -> None:
        """Delete on the platform, then drop the cached post and its comments."""
        post, fanpage = await self.get_owned_post(post_id, user_id)
        await self.graph_client.delete_post(post.post_id, fanpage.access_token)

        removed_comments = await self.comment_repo.delete_for_post(post.id)
        await self.post_repo.delete(post.id)

        await self.registry.emit_to_user(
            fanpage.user_id,
            RealtimeEvent.POST_DELETED.value,
            {"fanpageId": str(fanpage.id), "postId": post.post_id}
        )
        self.log_operation(
            "delete_post",
            user_id=user_id,
            post_id=post.post_id,
            removed_comments=removed_comments
        )

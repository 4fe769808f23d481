"""
Comment Service

Lists post comments (pulling them on first access) and performs page
moderation: replying as the page and hiding or unhiding comments.
"""

from typing import Any, Optional, Tuple

from fanpage_service.config.constants import RealtimeEvent
from fanpage_service.core.channels.graph_client import FacebookGraphClient
from fanpage_service.core.normalizers.graph_normalizer import PlatformRecord
from fanpage_service.core.realtime.connection_registry import ConnectionRegistry
from fanpage_service.exceptions.base_exceptions import NotFoundError, UpstreamError, ValidationError
from fanpage_service.models.mongo.comment_model import CommentDocument
from fanpage_service.models.mongo.fanpage_model import FanpageDocument
from fanpage_service.models.mongo.post_model import PostDocument
from fanpage_service.repositories.base_repository import Pagination, PaginatedResult
from fanpage_service.repositories.comment_repository import CommentRepository
from fanpage_service.repositories.fanpage_repository import FanpageRepository
from fanpage_service.repositories.post_repository import PostRepository
from fanpage_service.services.base_service import FanpageScopedService
from fanpage_service.services.reconciliation_service import ReconcileScope, ReconciliationService
from fanpage_service.utils.date_utils import utc_now


class CommentService(FanpageScopedService):
    """Service for post comments"""

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

    async def _get_owned_post(self, post_id: Any, user_id: Any) -> Tuple[PostDocument, FanpageDocument]:
        post = await self.post_repo.get_by_id(self.require_object_id(post_id, "post_id"))
        if post is None:
            raise NotFoundError("Post not found", resource_type="post", resource_id=str(post_id))
        return post, await self.get_owned_fanpage(post.fanpage_id, user_id)

    async def get_owned_comment(
            self,
            comment_id: Any,
            user_id: Any
    ) -> Tuple[CommentDocument, PostDocument, FanpageDocument]:
        comment = await self.comment_repo.get_by_id(self.require_object_id(comment_id, "comment_id"))
        if comment is None:
            raise NotFoundError("Comment not found", resource_type="comment", resource_id=str(comment_id))
        post, fanpage = await self._get_owned_post(comment.post_id, user_id)
        return comment, post, fanpage

    async def list_comments(
            self,
            post_id: Any,
            user_id: Any,
            pagination: Optional[Pagination] = None
    ) -> PaginatedResult[CommentDocument]:
        post, fanpage = await self._get_owned_post(post_id, user_id)
        return await self.reconciliation.get_comments(fanpage, post, pagination)

    async def reply(self, comment_id: Any, user_id: Any, message: str) -> CommentDocument:
        """Reply as the page; the reply is cached with the comment as parent."""
        if not message or not message.strip():
            raise ValidationError("Reply content is required", field="message")

        comment, post, fanpage = await self.get_owned_comment(comment_id, user_id)
        response = await self.graph_client.reply_to_comment(comment.comment_id, fanpage.access_token, message)
        reply_id = response.get("id")
        if not reply_id:
            raise UpstreamError("Graph API returned no comment id", operation="reply_to_comment")

        stored = await self.reconciliation.reconcile_one(
            ReconcileScope.comments(fanpage, post),
            PlatformRecord(
                external_id=reply_id,
                fields={
                    "message": message,
                    "from_id": fanpage.page_id,
                    "from_name": fanpage.name,
                    "from_avatar": fanpage.picture_url,
                    "created_time": utc_now(),
                },
                relations={"parent_id": comment.comment_id}
            ),
            emit=True
        )
        self.log_operation("reply", user_id=user_id, comment_id=comment.comment_id, reply_id=reply_id)
        return stored

    async def set_hidden(self, comment_id: Any, user_id: Any, hidden: bool) -> CommentDocument:
        comment, post, fanpage = await self.get_owned_comment(comment_id, user_id)
        await self.graph_client.set_comment_hidden(comment.comment_id, fanpage.access_token, hidden)
        comment = await self.comment_repo.set_hidden(comment.id, hidden)

        await self.registry.emit_to_user(
            fanpage.user_id,
            RealtimeEvent.COMMENT_UPDATED.value,
            {"fanpageId": str(fanpage.id), "postId": post.post_id, "item": comment.to_api_dict()}
        )
        self.log_operation("set_hidden", user_id=user_id, comment_id=comment.comment_id, hidden=hidden)
        return comment

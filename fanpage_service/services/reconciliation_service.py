"""
Reconciliation Service
======================

Upserts batches of platform entities into the local store by external id
and tells genuinely new rows apart from rows that were already cached.
Only new rows produce notifications and ``*:received`` events.

Also owns the on-demand read path: when a local scope (posts of a page,
comments of a post, messages of a conversation) is empty, one bounded
page is pulled from the Graph API and reconciled before answering.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fanpage_service.config.constants import RealtimeEvent
from fanpage_service.core.channels.graph_client import FacebookGraphClient
from fanpage_service.core.normalizers.graph_normalizer import (
    PlatformRecord,
    comment_record,
    conversation_message_records,
    post_record,
)
from fanpage_service.core.realtime.connection_registry import ConnectionRegistry
from fanpage_service.exceptions.base_exceptions import InternalServerError
from fanpage_service.models.base_model import BaseMongoModel
from fanpage_service.models.mongo.comment_model import CommentDocument
from fanpage_service.models.mongo.fanpage_model import FanpageDocument
from fanpage_service.models.mongo.message_model import MessageDocument
from fanpage_service.models.mongo.post_model import PostDocument
from fanpage_service.models.types import NotificationType, SyncEntity
from fanpage_service.repositories.base_repository import Pagination, PaginatedResult, UpsertResult
from fanpage_service.repositories.comment_repository import CommentRepository
from fanpage_service.repositories.message_repository import MessageRepository
from fanpage_service.repositories.post_repository import PostRepository
from fanpage_service.services.base_service import BaseService
from fanpage_service.services.notification_service import NotificationService, preview
from fanpage_service.utils.date_utils import format_for_api
from fanpage_service.utils.metrics import MetricsCollector, get_metrics_collector


@dataclass
class ReconcileScope:
    """
    Which local collection slice a batch belongs to.

    Comment scopes carry their post and message scopes their
    conversation key; both supply the relations written at insert.
    """
    entity: SyncEntity
    fanpage: FanpageDocument
    post: Optional[PostDocument] = None
    conversation_id: Optional[str] = None

    @classmethod
    def posts(cls, fanpage: FanpageDocument) -> "ReconcileScope":
        return cls(SyncEntity.POST, fanpage)

    @classmethod
    def comments(cls, fanpage: FanpageDocument, post: Optional[PostDocument]) -> "ReconcileScope":
        return cls(SyncEntity.COMMENT, fanpage, post=post)

    @classmethod
    def messages(cls, fanpage: FanpageDocument, conversation_id: str) -> "ReconcileScope":
        return cls(SyncEntity.MESSAGE, fanpage, conversation_id=conversation_id)


@dataclass
class ReconcileResult:
    scope: ReconcileScope
    new_items: List[BaseMongoModel] = field(default_factory=list)
    updated_items: List[BaseMongoModel] = field(default_factory=list)
    failures: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def inserted_count(self) -> int:
        return len(self.new_items)

    def summary(self) -> Dict[str, int]:
        return {
            "inserted": self.inserted_count,
            "updated": len(self.updated_items),
            "failed": len(self.failures),
        }


def merge_summaries(results: List[ReconcileResult]) -> Dict[str, int]:
    totals = {"inserted": 0, "updated": 0, "failed": 0}
    for result in results:
        for key, value in result.summary().items():
            totals[key] += value
    return totals


class ReconciliationService(BaseService):
    """Idempotent sync of platform entities into the local store"""

    def __init__(
            self,
            post_repo: PostRepository,
            comment_repo: CommentRepository,
            message_repo: MessageRepository,
            graph_client: FacebookGraphClient,
            notification_service: NotificationService,
            registry: ConnectionRegistry,
            lazy_pull_limit: int = 100,
            metrics: Optional[MetricsCollector] = None
    ):
        super().__init__()
        self.post_repo = post_repo
        self.comment_repo = comment_repo
        self.message_repo = message_repo
        self.graph_client = graph_client
        self.notification_service = notification_service
        self.registry = registry
        self.lazy_pull_limit = lazy_pull_limit
        self.metrics = metrics or get_metrics_collector()

    # ------------------------------------------------------------------
    # Reconcile
    # ------------------------------------------------------------------

    async def reconcile(
            self,
            scope: ReconcileScope,
            records: List[PlatformRecord],
            emit: bool = False
    ) -> ReconcileResult:
        """
        Upsert a batch into one scope.

        A failing record is logged and collected in ``failures``; the
        rest of the batch still runs.

        Args:
            scope: Target scope
            records: Normalized platform records
            emit: Notify and fan out for records that were newly inserted

        Returns:
            ReconcileResult separating new from already known rows
        """
        result = ReconcileResult(scope=scope)
        entity = scope.entity.value

        for record in records:
            failure = self._precondition_failure(scope, record)
            if failure:
                result.failures.append({"external_id": record.external_id, "error": failure})
                self.logger.warning(
                    "Skipping record",
                    entity=entity,
                    external_id=record.external_id,
                    reason=failure
                )
                continue

            try:
                upserted = await self._upsert(scope, record)
            except Exception as e:
                result.failures.append({"external_id": record.external_id, "error": str(e)})
                self.logger.error(
                    "Record reconciliation failed",
                    entity=entity,
                    external_id=record.external_id,
                    error=str(e),
                    error_type=type(e).__name__
                )
                continue

            if upserted.created:
                result.new_items.append(upserted.document)
            else:
                result.updated_items.append(upserted.document)

        self.metrics.record_reconciled(entity, "created", len(result.new_items))
        self.metrics.record_reconciled(entity, "updated", len(result.updated_items))
        self.metrics.record_reconciled(entity, "failed", len(result.failures))

        self.logger.info(
            "Batch reconciled",
            entity=entity,
            fanpage_id=str(scope.fanpage.id),
            **result.summary()
        )

        if emit:
            for item in result.new_items:
                await self.announce_new(scope, item)

        return result

    async def reconcile_one(
            self,
            scope: ReconcileScope,
            record: PlatformRecord,
            emit: bool = False
    ) -> BaseMongoModel:
        """
        Reconcile a single record and return the stored row.

        Raises:
            InternalServerError: If the record could not be stored
        """
        result = await self.reconcile(scope, [record], emit=emit)
        items = result.new_items or result.updated_items
        if not items:
            reason = result.failures[0]["error"] if result.failures else "unknown"
            raise InternalServerError(
                f"Failed to store {scope.entity.value} {record.external_id}: {reason}"
            )
        return items[0]

    def _precondition_failure(self, scope: ReconcileScope, record: PlatformRecord) -> Optional[str]:
        if not record.external_id:
            return "missing external id"
        if scope.entity == SyncEntity.COMMENT and (scope.post is None or scope.post.id is None):
            return "post not cached"
        if scope.entity == SyncEntity.MESSAGE and not (
                scope.conversation_id or record.relations.get("conversation_id")
        ):
            return "missing conversation id"
        return None

    async def _upsert(self, scope: ReconcileScope, record: PlatformRecord) -> UpsertResult:
        fanpage_id = scope.fanpage.id

        if scope.entity == SyncEntity.POST:
            return await self.post_repo.upsert(
                record.external_id, record.fields, fanpage_id, record.relations
            )

        if scope.entity == SyncEntity.COMMENT:
            return await self.comment_repo.upsert(
                record.external_id,
                record.fields,
                {**record.relations, "post_id": scope.post.id, "fanpage_id": fanpage_id}
            )

        relations = {**record.relations, "fanpage_id": fanpage_id}
        if scope.conversation_id:
            relations["conversation_id"] = scope.conversation_id
        return await self.message_repo.upsert(record.external_id, record.fields, relations)

    # ------------------------------------------------------------------
    # Fan-out for new rows
    # ------------------------------------------------------------------

    async def announce_new(self, scope: ReconcileScope, item: BaseMongoModel) -> None:
        """Emit the ``*:received`` event (and notification) for one new row."""
        fanpage = scope.fanpage
        owner_id = fanpage.user_id

        if isinstance(item, PostDocument):
            await self.registry.emit_to_user(
                owner_id,
                RealtimeEvent.POST_RECEIVED.value,
                {"fanpageId": str(fanpage.id), "item": item.to_api_dict()}
            )

        elif isinstance(item, CommentDocument):
            if item.from_id != fanpage.page_id:
                await self.notification_service.create_notification(
                    owner_id,
                    NotificationType.COMMENT,
                    title=f"New comment on {fanpage.name}",
                    content=f"{item.from_name or 'Someone'}: {preview(item.message)}",
                    related_id=item.comment_id
                )
            await self.registry.emit_to_user(
                owner_id,
                RealtimeEvent.COMMENT_RECEIVED.value,
                {
                    "fanpageId": str(fanpage.id),
                    "postId": scope.post.post_id if scope.post else None,
                    "item": item.to_api_dict(),
                }
            )

        elif isinstance(item, MessageDocument):
            if item.from_id != fanpage.page_id:
                await self.notification_service.create_notification(
                    owner_id,
                    NotificationType.MESSAGE,
                    title=f"New message on {fanpage.name}",
                    content=f"{item.from_name or 'Customer'}: {preview(item.message)}",
                    related_id=item.conversation_id
                )
            await self.registry.emit_to_user(
                owner_id,
                RealtimeEvent.MESSAGE_RECEIVED.value,
                message_received_payload(fanpage, item)
            )

    # ------------------------------------------------------------------
    # Pulls
    # ------------------------------------------------------------------

    async def pull_posts(self, fanpage: FanpageDocument, limit: Optional[int] = None) -> ReconcileResult:
        raw_posts = await self.graph_client.list_page_posts(
            fanpage.page_id, fanpage.access_token, limit or self.lazy_pull_limit
        )
        return await self.reconcile(
            ReconcileScope.posts(fanpage), [post_record(raw) for raw in raw_posts]
        )

    async def pull_comments(
            self,
            fanpage: FanpageDocument,
            post: PostDocument,
            limit: Optional[int] = None
    ) -> ReconcileResult:
        raw_comments = await self.graph_client.list_post_comments(
            post.post_id, fanpage.access_token, limit or self.lazy_pull_limit
        )
        return await self.reconcile(
            ReconcileScope.comments(fanpage, post),
            [comment_record(raw, post.post_id) for raw in raw_comments]
        )

    async def pull_messages(
            self,
            fanpage: FanpageDocument,
            conversation_id: str,
            limit: Optional[int] = None
    ) -> ReconcileResult:
        conversations = await self.graph_client.list_conversations(
            fanpage.page_id,
            fanpage.access_token,
            limit or self.lazy_pull_limit,
            user_id=conversation_id
        )
        grouped = conversation_message_records(conversations, fanpage.page_id)
        return await self.reconcile(
            ReconcileScope.messages(fanpage, conversation_id),
            grouped.get(conversation_id, [])
        )

    # ------------------------------------------------------------------
    # Lazy reads
    # ------------------------------------------------------------------

    async def get_posts(
            self,
            fanpage: FanpageDocument,
            pagination: Optional[Pagination] = None
    ) -> PaginatedResult[PostDocument]:
        if await self.post_repo.count_for_fanpage(fanpage.id) == 0:
            self.logger.info("Post cache empty, pulling from platform", fanpage_id=str(fanpage.id))
            await self.pull_posts(fanpage)
        return await self.post_repo.list_for_fanpage(fanpage.id, pagination)

    async def get_comments(
            self,
            fanpage: FanpageDocument,
            post: PostDocument,
            pagination: Optional[Pagination] = None
    ) -> PaginatedResult[CommentDocument]:
        if await self.comment_repo.count_for_post(post.id) == 0:
            self.logger.info("Comment cache empty, pulling from platform", post_id=post.post_id)
            await self.pull_comments(fanpage, post)
        return await self.comment_repo.list_for_post(post.id, pagination)

    async def get_messages(
            self,
            fanpage: FanpageDocument,
            conversation_id: str,
            pagination: Optional[Pagination] = None
    ) -> PaginatedResult[MessageDocument]:
        if await self.message_repo.count_for_conversation(fanpage.id, conversation_id) == 0:
            self.logger.info(
                "Message cache empty, pulling from platform",
                fanpage_id=str(fanpage.id),
                conversation_id=conversation_id
            )
            await self.pull_messages(fanpage, conversation_id)
        return await self.message_repo.list_for_conversation(fanpage.id, conversation_id, pagination)

    # ------------------------------------------------------------------
    # Full sync
    # ------------------------------------------------------------------

    async def sync_feed_comments(self, fanpage: FanpageDocument) -> List[ReconcileResult]:
        """Reconcile the comments embedded in the page feed, post by post."""
        feed = await self.graph_client.list_feed_comments(fanpage.page_id, fanpage.access_token)
        results = []

        for entry in feed:
            raw_comments = (entry.get("comments") or {}).get("data", [])
            if not raw_comments:
                continue

            post = await self.post_repo.get_by_post_id(entry.get("id"))
            if post is None:
                self.logger.warning(
                    "Skipping feed comments for uncached post",
                    post_id=entry.get("id"),
                    fanpage_id=str(fanpage.id)
                )
                continue

            results.append(await self.reconcile(
                ReconcileScope.comments(fanpage, post),
                [comment_record(raw, post.post_id) for raw in raw_comments]
            ))
        return results

    async def sync_conversations(self, fanpage: FanpageDocument) -> List[ReconcileResult]:
        conversations = await self.graph_client.list_conversations(fanpage.page_id, fanpage.access_token)
        results = []
        for conversation_id, records in conversation_message_records(conversations, fanpage.page_id).items():
            results.append(await self.reconcile(ReconcileScope.messages(fanpage, conversation_id), records))
        return results

    async def sync_fanpage(self, fanpage: FanpageDocument) -> Dict[str, Dict[str, int]]:
        """
        Full sync of a page: posts then their feed comments, alongside
        all conversations. The first failure propagates.

        Returns:
            Per-entity counts of inserted, updated and failed rows
        """
        async def posts_then_comments():
            posts = await self.pull_posts(fanpage)
            comments = await self.sync_feed_comments(fanpage)
            return posts, comments

        (posts, comments), messages = await asyncio.gather(
            posts_then_comments(),
            self.sync_conversations(fanpage)
        )

        summary = {
            "posts": posts.summary(),
            "comments": merge_summaries(comments),
            "messages": merge_summaries(messages),
        }
        self.log_operation("sync_fanpage", fanpage_id=str(fanpage.id), summary=summary)
        return summary


def message_received_payload(fanpage: FanpageDocument, message: MessageDocument) -> Dict[str, Any]:
    return {
        "senderId": message.from_id,
        "message": message.message,
        "timestamp": format_for_api(message.created_time),
        "fanpageId": str(fanpage.id),
        "conversationId": message.conversation_id,
        "item": message.to_api_dict(),
    }

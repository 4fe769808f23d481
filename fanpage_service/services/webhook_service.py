"""
Webhook Service Implementation
=============================

Ingests Facebook page webhooks: checks the envelope, resolves every entry
to a connected fanpage and routes each decoded event through the
reconciliation engine, then fans the outcome out to the page owner.

Entries are processed one after another. A failing entry is logged and
does not affect the acknowledgement or the remaining entries.
"""

import hashlib
import hmac
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from fanpage_service.config.constants import (
    CUSTOMER_PLACEHOLDER_NAME,
    RealtimeEvent,
    WEBHOOK_ACK_BODY,
    WEBHOOK_OBJECT_PAGE,
    WEBHOOK_SUBSCRIBE_MODE,
)
from fanpage_service.core.normalizers.webhook_normalizer import (
    CommentChange,
    MessagingEvent,
    PostChange,
    VERB_ADD,
    VERB_EDITED,
    VERB_HIDE,
    VERB_REMOVE,
    VERB_UNHIDE,
    WebhookEnvelope,
    decode_entry,
)
from fanpage_service.core.realtime.connection_registry import ConnectionRegistry
from fanpage_service.exceptions.base_exceptions import (
    AuthenticationError,
    AuthorizationError,
    ValidationError,
)
from fanpage_service.models.mongo.fanpage_model import FanpageDocument
from fanpage_service.repositories.comment_repository import CommentRepository
from fanpage_service.repositories.fanpage_repository import FanpageRepository
from fanpage_service.repositories.post_repository import PostRepository
from fanpage_service.services.base_service import BaseService
from fanpage_service.services.reconciliation_service import ReconcileScope, ReconciliationService
from fanpage_service.utils.metrics import MetricsCollector, get_metrics_collector

UPSERT_POST_VERBS = frozenset({VERB_ADD, VERB_EDITED})
UPSERT_COMMENT_VERBS = frozenset({VERB_ADD, VERB_EDITED, VERB_HIDE, VERB_UNHIDE})


class WebhookService(BaseService):
    """Service for webhook verification and ingestion"""

    def __init__(
            self,
            fanpage_repo: FanpageRepository,
            post_repo: PostRepository,
            comment_repo: CommentRepository,
            reconciliation: ReconciliationService,
            registry: ConnectionRegistry,
            verify_token: str = "",
            app_secret: Optional[str] = None,
            verify_signature: bool = False,
            metrics: Optional[MetricsCollector] = None
    ):
        super().__init__()
        self.fanpage_repo = fanpage_repo
        self.post_repo = post_repo
        self.comment_repo = comment_repo
        self.reconciliation = reconciliation
        self.registry = registry
        self.verify_token = verify_token
        self.app_secret = app_secret
        self.verify_signature_enabled = verify_signature
        self.metrics = metrics or get_metrics_collector()

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_subscription(
            self,
            mode: Optional[str],
            token: Optional[str],
            challenge: Optional[str]
    ) -> str:
        """
        Answer the platform's subscription handshake.

        Returns:
            The challenge to echo back

        Raises:
            AuthorizationError: If mode or token do not match
        """
        if (
                mode == WEBHOOK_SUBSCRIBE_MODE
                and self.verify_token
                and token is not None
                and hmac.compare_digest(token, self.verify_token)
                and challenge is not None
        ):
            self.logger.info("Webhook subscription verified")
            return challenge

        self.logger.warning("Webhook verification failed", mode=mode)
        raise AuthorizationError("Webhook verification failed")

    def verify_signature(self, body: bytes, signature_header: Optional[str]) -> None:
        """
        Check ``X-Hub-Signature-256`` when signature checking is enabled.

        Raises:
            AuthenticationError: If the signature is missing or wrong
        """
        if not self.verify_signature_enabled:
            return

        prefix = "sha256="
        if not signature_header or not signature_header.startswith(prefix):
            raise AuthenticationError("Missing webhook signature")

        expected = hmac.new(
            (self.app_secret or "").encode("utf-8"), body, hashlib.sha256
        ).hexdigest()
        if not hmac.compare_digest(expected, signature_header[len(prefix):]):
            raise AuthenticationError("Invalid webhook signature")

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def parse_envelope(self, payload: Any) -> WebhookEnvelope:
        """
        Raises:
            ValidationError: If the body is not a page webhook envelope
        """
        if not isinstance(payload, dict):
            raise ValidationError("Invalid webhook payload")

        try:
            envelope = WebhookEnvelope.model_validate(payload)
        except PydanticValidationError as e:
            errors = e.errors(include_url=False, include_context=False, include_input=False)
            raise ValidationError("Invalid webhook payload", details={"errors": errors})

        if envelope.object != WEBHOOK_OBJECT_PAGE:
            raise ValidationError("Invalid object", field="object", value=envelope.object)
        return envelope

    async def ingest(self, payload: Any) -> str:
        """
        Process a webhook body.

        Returns:
            The acknowledgement body

        Raises:
            ValidationError: If the envelope itself is invalid
        """
        envelope = self.parse_envelope(payload)

        for raw_entry in envelope.entry:
            try:
                outcome = await self.process_entry(raw_entry)
            except Exception as e:
                outcome = "error"
                self.logger.error(
                    "Webhook entry failed",
                    page_id=raw_entry.get("id") if isinstance(raw_entry, dict) else None,
                    error=str(e),
                    error_type=type(e).__name__
                )
            self.metrics.record_webhook_entry(outcome)

        return WEBHOOK_ACK_BODY

    async def process_entry(self, raw_entry: Any) -> str:
        """
        Returns:
            Outcome label: ``processed``, ``unknown_page`` or ``invalid``
        """
        entry = decode_entry(raw_entry)
        if entry is None:
            return "invalid"

        fanpage = await self.fanpage_repo.get_connected_by_page_id(entry.page_id)
        if fanpage is None:
            self.logger.info("Skipping webhook entry for unknown page", page_id=entry.page_id)
            return "unknown_page"

        for event in entry.events:
            if isinstance(event, MessagingEvent):
                await self.handle_message(fanpage, event)
            elif isinstance(event, PostChange):
                await self.handle_post_change(fanpage, event)
            elif isinstance(event, CommentChange):
                await self.handle_comment_change(fanpage, event)

        self.logger.info(
            "Webhook entry processed",
            page_id=entry.page_id,
            events=len(entry.events)
        )
        return "processed"

    async def handle_message(self, fanpage: FanpageDocument, event: MessagingEvent) -> None:
        if event.sent_by_page:
            sender_name, sender_avatar = fanpage.name, fanpage.picture_url
        else:
            sender_name, sender_avatar = CUSTOMER_PLACEHOLDER_NAME, None

        await self.reconciliation.reconcile(
            ReconcileScope.messages(fanpage, event.conversation_id),
            [event.to_record(sender_name, sender_avatar)],
            emit=True
        )

    async def handle_post_change(self, fanpage: FanpageDocument, change: PostChange) -> None:
        if change.verb in UPSERT_POST_VERBS:
            result = await self.reconciliation.reconcile(
                ReconcileScope.posts(fanpage), [change.to_record()], emit=True
            )
            for post in result.updated_items:
                await self.registry.emit_to_user(
                    fanpage.user_id,
                    RealtimeEvent.POST_UPDATED.value,
                    {"fanpageId": str(fanpage.id), "item": post.to_api_dict()}
                )

        elif change.verb == VERB_REMOVE:
            post = await self.post_repo.get_by_post_id(change.post_id)
            if post is not None:
                removed_comments = await self.comment_repo.delete_for_post(post.id)
                await self.post_repo.delete(post.id)
                self.logger.info(
                    "Cached post removed",
                    post_id=change.post_id,
                    removed_comments=removed_comments
                )
            await self.registry.emit_to_user(
                fanpage.user_id,
                RealtimeEvent.POST_DELETED.value,
                {"fanpageId": str(fanpage.id), "postId": change.post_id}
            )

        else:
            self.logger.debug("Ignoring post change verb", verb=change.verb, post_id=change.post_id)

    async def handle_comment_change(self, fanpage: FanpageDocument, change: CommentChange) -> None:
        post = await self.post_repo.get_by_post_id(change.post_id)
        if post is None:
            self.logger.info(
                "Skipping comment change for uncached post",
                post_id=change.post_id,
                comment_id=change.comment_id
            )
            return

        if change.verb == VERB_REMOVE:
            await self.comment_repo.delete_by_comment_id(change.comment_id)
            await self.registry.emit_to_user(
                fanpage.user_id,
                RealtimeEvent.COMMENT_UPDATED.value,
                {
                    "fanpageId": str(fanpage.id),
                    "postId": change.post_id,
                    "commentId": change.comment_id,
                    "deleted": True,
                }
            )
            return

        if change.verb not in UPSERT_COMMENT_VERBS:
            self.logger.debug("Ignoring comment change verb", verb=change.verb, comment_id=change.comment_id)
            return

        avatar = fanpage.picture_url if change.authored_by_page else None
        result = await self.reconciliation.reconcile(
            ReconcileScope.comments(fanpage, post), [change.to_record(avatar)], emit=True
        )
        for comment in result.updated_items:
            await self.registry.emit_to_user(
                fanpage.user_id,
                RealtimeEvent.COMMENT_UPDATED.value,
                {
                    "fanpageId": str(fanpage.id),
                    "postId": change.post_id,
                    "item": comment.to_api_dict(),
                }
            )

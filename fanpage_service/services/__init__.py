"""
Services Package

Business logic of the Fanpage Service. Services orchestrate repositories,
the Graph API client and the real-time registry:

- ReconciliationService: idempotent upsert of platform records and lazy pulls
- WebhookService: verification and ingestion of page webhooks
- FanpageService, PostService, CommentService, MessageService: user actions
- NotificationService: bounded per-user notification history
- TokenRefreshService: daily credential refresh sweep
"""

from fanpage_service.services.base_service import BaseService, FanpageScopedService
from fanpage_service.services.comment_service import CommentService
from fanpage_service.services.fanpage_service import FanpageService
from fanpage_service.services.message_service import MessageService
from fanpage_service.services.notification_service import NotificationService
from fanpage_service.services.post_service import PostService
from fanpage_service.services.reconciliation_service import (
    ReconcileResult,
    ReconcileScope,
    ReconciliationService,
)
from fanpage_service.services.service_container import ServiceContainer
from fanpage_service.services.token_refresh_service import TokenRefreshScheduler, TokenRefreshService
from fanpage_service.services.webhook_service import WebhookService

__all__ = [
    "BaseService",
    "FanpageScopedService",
    "CommentService",
    "FanpageService",
    "MessageService",
    "NotificationService",
    "PostService",
    "ReconcileResult",
    "ReconcileScope",
    "ReconciliationService",
    "ServiceContainer",
    "TokenRefreshScheduler",
    "TokenRefreshService",
    "WebhookService",
]

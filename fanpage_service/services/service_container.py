"""
Service Container

Wires repositories, the Graph API client, the connection registry and
every service once per process. The FastAPI app keeps the container on
``app.state`` and route dependencies read services from it.
"""

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from fanpage_service.config.settings import Settings, get_settings
from fanpage_service.core.channels.graph_client import FacebookGraphClient, GraphClientConfig
from fanpage_service.core.realtime.connection_registry import ConnectionRegistry
from fanpage_service.repositories import (
    CommentRepository,
    FanpageRepository,
    MessageRepository,
    NotificationRepository,
    PackageRepository,
    PostRepository,
    UserRepository,
)
from fanpage_service.services.comment_service import CommentService
from fanpage_service.services.fanpage_service import FanpageService
from fanpage_service.services.message_service import MessageService
from fanpage_service.services.notification_service import NotificationService
from fanpage_service.services.post_service import PostService
from fanpage_service.services.reconciliation_service import ReconciliationService
from fanpage_service.services.token_refresh_service import TokenRefreshService
from fanpage_service.services.webhook_service import WebhookService
from fanpage_service.utils.metrics import MetricsCollector, get_metrics_collector


class ServiceContainer:
    """
    Dependency container for repositories and services

    All instances are singletons for the lifetime of the container.
    """

    def __init__(
            self,
            database: AsyncIOMotorDatabase,
            settings: Optional[Settings] = None,
            graph_client: Optional[FacebookGraphClient] = None,
            registry: Optional[ConnectionRegistry] = None,
            metrics: Optional[MetricsCollector] = None
    ):
        self.settings = settings or get_settings()
        self.database = database
        self.metrics = metrics or get_metrics_collector()

        # Repositories
        self.fanpage_repo = FanpageRepository(database)
        self.post_repo = PostRepository(database)
        self.comment_repo = CommentRepository(database)
        self.message_repo = MessageRepository(database)
        self.notification_repo = NotificationRepository(database)
        self.user_repo = UserRepository(database)
        self.package_repo = PackageRepository(database)

        # Infrastructure
        self.registry = registry or ConnectionRegistry(self.metrics)
        self.graph_client = graph_client or FacebookGraphClient(
            GraphClientConfig.from_settings(self.settings), metrics=self.metrics
        )

        # Services
        self.notification_service = NotificationService(
            self.notification_repo,
            self.registry,
            max_per_user=self.settings.NOTIFICATION_MAX_PER_USER,
            prune_target=self.settings.NOTIFICATION_PRUNE_TARGET
        )
        self.reconciliation_service = ReconciliationService(
            self.post_repo,
            self.comment_repo,
            self.message_repo,
            self.graph_client,
            self.notification_service,
            self.registry,
            lazy_pull_limit=self.settings.LAZY_PULL_LIMIT,
            metrics=self.metrics
        )
        self.webhook_service = WebhookService(
            self.fanpage_repo,
            self.post_repo,
            self.comment_repo,
            self.reconciliation_service,
            self.registry,
            verify_token=self.settings.FACEBOOK_WEBHOOK_TOKEN,
            app_secret=self.settings.FACEBOOK_APP_SECRET,
            verify_signature=self.settings.FACEBOOK_VERIFY_SIGNATURE,
            metrics=self.metrics
        )
        self.fanpage_service = FanpageService(
            self.fanpage_repo,
            self.user_repo,
            self.package_repo,
            self.graph_client,
            self.reconciliation_service,
            free_tier_max_fanpages=self.settings.FREE_TIER_MAX_FANPAGES
        )
        self.post_service = PostService(
            self.fanpage_repo,
            self.post_repo,
            self.comment_repo,
            self.graph_client,
            self.reconciliation_service,
            self.registry
        )
        self.comment_service = CommentService(
            self.fanpage_repo,
            self.post_repo,
            self.comment_repo,
            self.graph_client,
            self.reconciliation_service,
            self.registry
        )
        self.message_service = MessageService(
            self.fanpage_repo,
            self.message_repo,
            self.graph_client,
            self.reconciliation_service,
            self.notification_service,
            self.registry
        )
        self.token_refresh_service = TokenRefreshService(
            self.user_repo,
            self.fanpage_repo,
            self.graph_client,
            max_age_days=self.settings.TOKEN_REFRESH_MAX_AGE_DAYS,
            metrics=self.metrics
        )

    async def close(self) -> None:
        await self.graph_client.aclose()

"""
Credential Refresh Service

Daily sweep that keeps Facebook credentials alive. Users whose credential
is older than ``max_age_days`` get it exchanged for a fresh long-lived one,
after which every connected page credential of that user is re-fetched.

The sweep runs on an APScheduler ``AsyncIOScheduler`` inside the API
process; a failure for one user is logged and the sweep moves on.
"""

from datetime import datetime
from typing import Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from fanpage_service.core.channels.graph_client import FacebookGraphClient
from fanpage_service.models.mongo.user_model import UserDocument
from fanpage_service.repositories.fanpage_repository import FanpageRepository
from fanpage_service.repositories.user_repository import UserRepository
from fanpage_service.services.base_service import BaseService
from fanpage_service.utils.metrics import MetricsCollector, get_metrics_collector

SWEEP_JOB_ID = "facebook-credential-refresh"


class TokenRefreshService(BaseService):
    """Service refreshing stale user and page credentials"""

    def __init__(
            self,
            user_repo: UserRepository,
            fanpage_repo: FanpageRepository,
            graph_client: FacebookGraphClient,
            max_age_days: int = 50,
            metrics: Optional[MetricsCollector] = None
    ):
        super().__init__()
        self.user_repo = user_repo
        self.fanpage_repo = fanpage_repo
        self.graph_client = graph_client
        self.max_age_days = max_age_days
        self.metrics = metrics or get_metrics_collector()

    async def refresh_user(self, user: UserDocument) -> int:
        """
        Exchange one user's credential and re-fetch their page credentials.

        Returns:
            Number of page credentials updated
        """
        exchanged = await self.graph_client.exchange_long_lived_token(user.facebook_token)
        user_token = exchanged["access_token"]
        await self.user_repo.update_facebook_token(user.id, user_token)

        pages_updated = 0
        for fanpage in await self.fanpage_repo.list_for_user(user.id):
            page_token = await self.graph_client.get_page_access_token(fanpage.page_id, user_token)
            await self.fanpage_repo.update_access_token(fanpage.id, page_token)
            pages_updated += 1
        return pages_updated

    async def sweep(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Refresh every stale credential.

        Args:
            now: Reference time for the age check (defaults to current UTC)

        Returns:
            ``{"checked", "refreshed", "failed"}`` counts
        """
        summary = {"checked": 0, "refreshed": 0, "failed": 0}
        users = await self.user_repo.list_with_facebook_token()

        for user in users:
            summary["checked"] += 1
            if not user.credential_is_stale(self.max_age_days, now):
                continue

            try:
                pages_updated = await self.refresh_user(user)
            except Exception as e:
                summary["failed"] += 1
                self.metrics.record_credential_refresh("failed")
                self.logger.error(
                    "Credential refresh failed",
                    user_id=str(user.id),
                    error=str(e),
                    error_type=type(e).__name__
                )
                continue

            summary["refreshed"] += 1
            self.metrics.record_credential_refresh("refreshed")
            self.logger.info(
                "Credential refreshed",
                user_id=str(user.id),
                pages_updated=pages_updated
            )

        self.log_operation("credential_sweep", **summary)
        return summary


class TokenRefreshScheduler:
    """Runs the credential sweep once a day"""

    def __init__(self, service: TokenRefreshService, hour: int = 2):
        self.service = service
        self.hour = hour
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.is_running = False

    def start(self) -> None:
        self.scheduler.add_job(
            func=self.service.sweep,
            trigger=CronTrigger(hour=self.hour, minute=0, timezone="UTC"),
            id=SWEEP_JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1
        )
        self.scheduler.start()
        self.is_running = True
        self.service.logger.info("Credential refresh scheduled", hour_utc=self.hour)

    def shutdown(self) -> None:
        if self.is_running:
            self.scheduler.shutdown(wait=False)
            self.is_running = False

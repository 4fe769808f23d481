from datetime import timedelta

import httpx
import pytest
from apscheduler.triggers.cron import CronTrigger

from fanpage_service.models.mongo.user_model import UserDocument
from fanpage_service.services.token_refresh_service import SWEEP_JOB_ID, TokenRefreshScheduler
from fanpage_service.utils.date_utils import utc_now

from conftest import PAGE_ID


@pytest.fixture
def refresher(container):
    return container.token_refresh_service


async def stale_user(container, token: str, age_days: int = 60) -> UserDocument:
    return await container.user_repo.create(
        UserDocument(
            email=f"{token}@example.com",
            facebook_token=token,
            facebook_token_issued_at=utc_now() - timedelta(days=age_days)
        )
    )


def exchange_responder(request: httpx.Request) -> httpx.Response:
    old = request.url.params["fb_exchange_token"]
    if old == "broken-token":
        return httpx.Response(400, json={"error": {"message": "Session expired", "code": 190}})
    return httpx.Response(200, json={"access_token": f"fresh-{old}", "expires_in": 5184000})


async def test_only_stale_credentials_are_refreshed(graph, container, refresher, user, fanpage):
    stale = await stale_user(container, "old-token")
    await container.fanpage_repo.update_fields(fanpage.id, {"user_id": stale.id})
    graph.route("GET", "oauth/access_token", exchange_responder)
    graph.route("GET", PAGE_ID, {"id": PAGE_ID, "access_token": "fresh-page-token"})

    summary = await refresher.sweep()

    assert summary == {"checked": 2, "refreshed": 1, "failed": 0}
    refreshed = await container.user_repo.get_by_id(stale.id)
    assert refreshed.facebook_token == "fresh-old-token"
    assert not refreshed.credential_is_stale(refresher.max_age_days)
    page = await container.fanpage_repo.get_by_id(fanpage.id)
    assert page.access_token == "fresh-page-token"

    exchange = graph.calls_to("GET", "oauth/access_token")
    assert len(exchange) == 1
    assert exchange[0].url.params["grant_type"] == "fb_exchange_token"


async def test_failure_for_one_user_does_not_stop_the_sweep(graph, container, refresher):
    broken = await stale_user(container, "broken-token")
    healthy = await stale_user(container, "good-token")
    graph.route("GET", "oauth/access_token", exchange_responder)

    summary = await refresher.sweep()

    assert summary == {"checked": 2, "refreshed": 1, "failed": 1}
    assert (await container.user_repo.get_by_id(broken.id)).facebook_token == "broken-token"
    assert (await container.user_repo.get_by_id(healthy.id)).facebook_token == "fresh-good-token"


async def test_age_falls_back_to_last_update(graph, refresher, user):
    assert user.facebook_token_issued_at is None
    graph.route("GET", "oauth/access_token", exchange_responder)

    assert await refresher.sweep() == {"checked": 1, "refreshed": 0, "failed": 0}

    later = utc_now() + timedelta(days=refresher.max_age_days + 1)
    assert await refresher.sweep(now=later) == {"checked": 1, "refreshed": 1, "failed": 0}


async def test_scheduler_registers_daily_job(refresher):
    scheduler = TokenRefreshScheduler(refresher, hour=3)

    scheduler.start()
    try:
        job = scheduler.scheduler.get_job(SWEEP_JOB_ID)
        assert isinstance(job.trigger, CronTrigger)
        assert str(job.trigger.fields[5]) == "3"  # hour
        assert scheduler.is_running
    finally:
        scheduler.shutdown()

    assert not scheduler.is_running

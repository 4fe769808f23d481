from datetime import timedelta

import pytest

from fanpage_service.exceptions.base_exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from fanpage_service.models.mongo.user_model import PackageDocument, UserDocument
from fanpage_service.utils.date_utils import utc_now

from conftest import PAGE_ID, USER_TOKEN


@pytest.fixture
def fanpages(container):
    return container.fanpage_service


def route_page(graph, page_id=PAGE_ID, name="Corner Bakery"):
    graph.route("GET", page_id, {
        "id": page_id,
        "name": name,
        "access_token": f"token-{page_id}",
        "category": "Bakery",
        "picture": {"data": {"url": f"https://cdn.test/{page_id}.png"}},
    })


def route_empty_sync(graph, page_id=PAGE_ID):
    for edge in ("posts", "feed", "conversations"):
        graph.route("GET", f"{page_id}/{edge}", {"data": []})


async def test_connect_creates_page_and_runs_sync(graph, container, fanpages, user):
    route_page(graph)
    graph.route("GET", f"{PAGE_ID}/posts", {"data": [{"id": f"{PAGE_ID}_1", "message": "Welcome"}]})
    graph.route("GET", f"{PAGE_ID}/feed", {"data": []})
    graph.route("GET", f"{PAGE_ID}/conversations", {"data": []})

    result = await fanpages.connect_fanpage(user.id, PAGE_ID)

    fanpage = result["fanpage"]
    assert fanpage.page_id == PAGE_ID
    assert fanpage.access_token == f"token-{PAGE_ID}"
    assert fanpage.picture_url == f"https://cdn.test/{PAGE_ID}.png"
    assert result["sync"]["posts"]["inserted"] == 1
    assert await container.post_repo.count_for_fanpage(fanpage.id) == 1

    details = graph.calls_to("GET", PAGE_ID)[0]
    assert details.url.params["access_token"] == USER_TOKEN


async def test_sync_failure_keeps_the_connection(graph, container, fanpages, user):
    route_page(graph)

    result = await fanpages.connect_fanpage(user.id, PAGE_ID)

    assert "error" in result["sync"]
    stored = await container.fanpage_repo.get_by_page_id(PAGE_ID)
    assert stored.is_connected


async def test_free_tier_allows_one_page(graph, fanpages, user, fanpage):
    route_page(graph, page_id="2002", name="Second")

    with pytest.raises(AuthorizationError) as exc_info:
        await fanpages.connect_fanpage(user.id, "2002")

    assert exc_info.value.status_code == 403
    assert exc_info.value.details["limit"] == 1


async def test_package_raises_the_limit(graph, container, fanpages, user, fanpage):
    package = await container.package_repo.create(PackageDocument(name="Pro", max_fanpages=5))
    await container.user_repo.update_fields(
        user.id, {"package_id": package.id, "package_expiry": utc_now() + timedelta(days=30)}
    )
    route_page(graph, page_id="2002", name="Second")
    route_empty_sync(graph, page_id="2002")

    result = await fanpages.connect_fanpage(user.id, "2002")

    assert result["fanpage"].name == "Second"


async def test_expired_package_is_cleared(container, fanpages, user):
    package = await container.package_repo.create(PackageDocument(name="Pro", max_fanpages=5))
    expired = await container.user_repo.update_fields(
        user.id, {"package_id": package.id, "package_expiry": utc_now() - timedelta(days=1)}
    )

    with pytest.raises(AuthorizationError):
        await fanpages.fanpage_limit(expired)

    cleared = await container.user_repo.get_by_id(user.id)
    assert cleared.package_id is None
    assert await fanpages.fanpage_limit(cleared) == 1


async def test_page_owned_by_someone_else_is_rejected(container, fanpages, fanpage):
    other = await container.user_repo.create(
        UserDocument(email="other@example.com", facebook_token="other-token")
    )

    with pytest.raises(ValidationError) as exc_info:
        await fanpages.connect_fanpage(other.id, PAGE_ID)

    assert exc_info.value.status_code == 400


async def test_disconnected_page_can_be_reconnected(graph, container, fanpages, user, fanpage):
    await fanpages.disconnect_fanpage(fanpage.id, user.id)
    route_page(graph, name="Corner Bakery & Cafe")
    route_empty_sync(graph)

    result = await fanpages.connect_fanpage(user.id, PAGE_ID)

    assert result["fanpage"].id == fanpage.id
    assert result["fanpage"].is_connected
    assert result["fanpage"].name == "Corner Bakery & Cafe"


async def test_disconnect_requires_ownership(container, fanpages, fanpage):
    with pytest.raises(AuthorizationError):
        await fanpages.disconnect_fanpage(fanpage.id, "65f000000000000000000000")

    with pytest.raises(NotFoundError):
        await fanpages.disconnect_fanpage("65f000000000000000000000", fanpage.user_id)


async def test_available_pages_flag_connected_ones(graph, fanpages, user, fanpage):
    graph.route("GET", "me/accounts", {"data": [
        {"id": PAGE_ID, "name": "Corner Bakery", "category": "Bakery"},
        {"id": "2002", "name": "Second", "picture": "https://cdn.test/2002.png"},
    ]})

    pages = await fanpages.list_available_pages(user.id)

    assert [(page["id"], page["connected"]) for page in pages] == [(PAGE_ID, True), ("2002", False)]
    assert pages[1]["picture"] == "https://cdn.test/2002.png"

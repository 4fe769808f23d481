import pytest

from fanpage_service.core.normalizers.graph_normalizer import PlatformRecord
from fanpage_service.exceptions.base_exceptions import InternalServerError
from fanpage_service.models.mongo.post_model import PostDocument
from fanpage_service.services.reconciliation_service import ReconcileScope

from conftest import PAGE_ID, graph_comment


@pytest.fixture
def reconciliation(container):
    return container.reconciliation_service


@pytest.fixture
async def post(container, fanpage) -> PostDocument:
    result = await container.post_repo.upsert(f"{PAGE_ID}_9", {"content": "Fresh bread"}, fanpage.id)
    return result.document


async def test_same_record_twice_is_one_row(container, reconciliation, fanpage):
    scope = ReconcileScope.posts(fanpage)

    first = await reconciliation.reconcile(
        scope, [PlatformRecord(f"{PAGE_ID}_1", {"content": "v1", "likes": 1})]
    )
    second = await reconciliation.reconcile(
        scope, [PlatformRecord(f"{PAGE_ID}_1", {"content": "v2", "likes": 4})]
    )

    assert first.inserted_count == 1 and not first.updated_items
    assert second.inserted_count == 0 and len(second.updated_items) == 1
    assert await container.post_repo.count_for_fanpage(fanpage.id) == 1

    stored = await container.post_repo.get_by_post_id(f"{PAGE_ID}_1")
    assert stored.content == "v2"
    assert stored.likes == 4
    assert stored.fanpage_id == fanpage.id


async def test_relations_are_fixed_at_insert(container, reconciliation, fanpage, post):
    scope = ReconcileScope.comments(fanpage, post)

    await reconciliation.reconcile(
        scope, [PlatformRecord("9_2", {"message": "reply"}, relations={"parent_id": "9_1"})]
    )
    await reconciliation.reconcile(
        scope, [PlatformRecord("9_2", {"message": "edited reply"}, relations={"parent_id": "9_X"})]
    )

    stored = await container.comment_repo.get_by_comment_id("9_2")
    assert stored.parent_id == "9_1"
    assert stored.message == "edited reply"
    assert stored.post_id == post.id


async def test_batch_continues_past_invalid_records(reconciliation, fanpage):
    result = await reconciliation.reconcile(
        ReconcileScope.posts(fanpage),
        [PlatformRecord(None, {"content": "no id"}), PlatformRecord(f"{PAGE_ID}_2", {"content": "ok"})]
    )

    assert result.inserted_count == 1
    assert result.failures == [{"external_id": None, "error": "missing external id"}]


async def test_comment_without_cached_post_is_rejected(reconciliation, fanpage):
    result = await reconciliation.reconcile(
        ReconcileScope.comments(fanpage, None), [PlatformRecord("9_1", {"message": "orphan"})]
    )

    assert result.inserted_count == 0
    assert result.failures[0]["error"] == "post not cached"


async def test_reconcile_one_raises_when_nothing_stored(reconciliation, fanpage):
    with pytest.raises(InternalServerError):
        await reconciliation.reconcile_one(
            ReconcileScope.comments(fanpage, None), PlatformRecord("9_1", {"message": "orphan"})
        )


async def test_new_comment_notifies_and_emits(container, reconciliation, fanpage, post, owner_socket):
    scope = ReconcileScope.comments(fanpage, post)
    record = PlatformRecord("9_1", {"message": "Do you deliver?", "from_id": "555", "from_name": "Ana"})

    await reconciliation.reconcile(scope, [record], emit=True)
    await reconciliation.reconcile(scope, [record], emit=True)

    assert owner_socket.events() == ["notification", "comment:received"]
    received = owner_socket.frames_for("comment:received")[0]["data"]
    assert received["postId"] == post.post_id
    assert received["item"]["comment_id"] == "9_1"
    assert await container.notification_repo.count_for_user(fanpage.user_id) == 1


async def test_comment_by_page_is_not_notified(container, reconciliation, fanpage, post, owner_socket):
    await reconciliation.reconcile(
        ReconcileScope.comments(fanpage, post),
        [PlatformRecord("9_3", {"message": "Yes we do", "from_id": PAGE_ID})],
        emit=True
    )

    assert owner_socket.events() == ["comment:received"]
    assert await container.notification_repo.count_for_user(fanpage.user_id) == 0


async def test_pulled_records_are_not_announced(graph, reconciliation, fanpage, owner_socket):
    graph.route("GET", f"{PAGE_ID}/posts", {"data": [{"id": f"{PAGE_ID}_1", "message": "hello"}]})

    result = await reconciliation.pull_posts(fanpage)

    assert result.inserted_count == 1
    assert owner_socket.frames == []


async def test_lazy_comment_read_pulls_only_when_empty(graph, reconciliation, fanpage, post):
    graph.route(
        "GET", f"{post.post_id}/comments",
        {"data": [graph_comment("9_1", "first"), graph_comment("9_2", "second")]}
    )

    first = await reconciliation.get_comments(fanpage, post)
    second = await reconciliation.get_comments(fanpage, post)

    assert first.total == 2
    assert sorted(item.comment_id for item in second.items) == ["9_1", "9_2"]
    assert len(graph.calls_to("GET", f"{post.post_id}/comments")) == 1


async def test_lazy_post_read_skips_platform_when_cached(graph, reconciliation, fanpage, post):
    page = await reconciliation.get_posts(fanpage)

    assert page.total == 1
    assert graph.calls == []


async def test_lazy_message_read_filters_by_conversation(graph, reconciliation, fanpage):
    graph.route("GET", f"{PAGE_ID}/conversations", {"data": [{
        "id": "t_1",
        "participants": {"data": [{"id": PAGE_ID}, {"id": "123"}]},
        "messages": {"data": [{"id": "m1", "message": "hi", "from": {"id": "123", "name": "Bo"}}]},
    }]})

    page = await reconciliation.get_messages(fanpage, "123")

    assert [item.message_id for item in page.items] == ["m1"]
    assert page.items[0].conversation_id == "123"
    request = graph.calls_to("GET", f"{PAGE_ID}/conversations")[0]
    assert request.url.params["user_id"] == "123"


async def test_sync_fanpage_pulls_everything(graph, container, reconciliation, fanpage):
    graph.route("GET", f"{PAGE_ID}/posts", {"data": [{"id": f"{PAGE_ID}_1", "message": "hello"}]})
    graph.route("GET", f"{PAGE_ID}/feed", {"data": [
        {"id": f"{PAGE_ID}_1", "comments": {"data": [graph_comment("1_1", "nice")]}},
        {"id": f"{PAGE_ID}_404", "comments": {"data": [graph_comment("404_1", "orphan")]}},
    ]})
    graph.route("GET", f"{PAGE_ID}/conversations", {"data": [{
        "participants": {"data": [{"id": PAGE_ID}, {"id": "123"}]},
        "messages": {"data": [{"id": "m1", "message": "hi", "from": {"id": "123"}}]},
    }]})

    summary = await reconciliation.sync_fanpage(fanpage)

    assert summary["posts"]["inserted"] == 1
    assert summary["comments"]["inserted"] == 1
    assert summary["messages"]["inserted"] == 1
    assert await container.comment_repo.get_by_comment_id("404_1") is None

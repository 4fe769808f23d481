import hashlib
import hmac

import pytest

from fanpage_service.exceptions.base_exceptions import (
    AuthenticationError,
    AuthorizationError,
    ValidationError,
)
from fanpage_service.services.webhook_service import WebhookService

from conftest import PAGE_ID, WEBHOOK_TOKEN, feed_entry, messaging_entry


@pytest.fixture
def webhooks(container) -> WebhookService:
    return container.webhook_service


def envelope(*entries):
    return {"object": "page", "entry": list(entries)}


def test_subscription_handshake(webhooks):
    assert webhooks.verify_subscription("subscribe", WEBHOOK_TOKEN, "challenge-42") == "challenge-42"

    with pytest.raises(AuthorizationError):
        webhooks.verify_subscription("subscribe", "wrong", "challenge-42")
    with pytest.raises(AuthorizationError):
        webhooks.verify_subscription(None, None, None)


async def test_wrong_object_kind_is_rejected(webhooks):
    with pytest.raises(ValidationError) as exc_info:
        await webhooks.ingest({"object": "user", "entry": []})

    assert exc_info.value.status_code == 400


async def test_customer_message_is_stored_notified_and_fanned_out(container, webhooks, fanpage, owner_socket):
    ack = await webhooks.ingest(envelope(messaging_entry("m1", sender="123", text="hi")))

    assert ack == "EVENT_RECEIVED"
    message = await container.message_repo.get_by_message_id("m1")
    assert message.conversation_id == "123"
    assert message.from_name == "Customer"

    notifications = await container.notification_repo.list_for_user(fanpage.user_id)
    assert [item.type for item in notifications.items] == ["message"]

    received = owner_socket.frames_for("message:received")[0]["data"]
    assert received["senderId"] == "123"
    assert received["message"] == "hi"
    assert received["fanpageId"] == str(fanpage.id)


async def test_offline_owner_still_gets_every_event_stored(container, webhooks, fanpage):
    entry = messaging_entry("m1", sender="123", text="hi")
    second = dict(entry["messaging"][0], message={"mid": "m2", "text": "anyone there?"})
    entry["messaging"].append(second)

    ack = await webhooks.ingest(envelope(entry))

    assert ack == "EVENT_RECEIVED"
    assert not container.registry.is_online(fanpage.user_id)
    assert await container.message_repo.get_by_message_id("m1") is not None
    assert await container.message_repo.get_by_message_id("m2") is not None
    assert await container.notification_repo.count_for_user(fanpage.user_id) == 2


async def test_non_object_entries_are_skipped(container, webhooks, fanpage):
    ack = await webhooks.ingest({"object": "page", "entry": ["junk", 42, messaging_entry("m9")]})

    assert ack == "EVENT_RECEIVED"
    assert await container.message_repo.get_by_message_id("m9") is not None


async def test_duplicate_delivery_is_idempotent(container, webhooks, fanpage, owner_socket):
    body = envelope(messaging_entry("m1", sender="123", text="hi"))

    await webhooks.ingest(body)
    await webhooks.ingest(body)

    assert await container.message_repo.count_for_conversation(fanpage.id, "123") == 1
    assert await container.notification_repo.count_for_user(fanpage.user_id) == 1
    assert len(owner_socket.frames_for("message:received")) == 1


async def test_page_echo_is_stored_without_notification(container, webhooks, fanpage):
    await webhooks.ingest(envelope({
        "id": PAGE_ID,
        "messaging": [{
            "sender": {"id": PAGE_ID},
            "recipient": {"id": "123"},
            "timestamp": 1714557600000,
            "message": {"mid": "m_echo", "text": "We open at 8", "is_echo": True},
        }],
    }))

    message = await container.message_repo.get_by_message_id("m_echo")
    assert message.conversation_id == "123"
    assert message.from_name == fanpage.name
    assert await container.notification_repo.count_for_user(fanpage.user_id) == 0


async def test_unknown_page_is_skipped(container, webhooks, fanpage, metrics):
    await webhooks.ingest(envelope(messaging_entry("m9", page_id="9999")))

    assert await container.message_repo.get_by_message_id("m9") is None


async def test_failing_entry_does_not_block_others(container, webhooks, fanpage, monkeypatch):
    original = webhooks.process_entry

    async def flaky(raw_entry):
        if raw_entry.get("id") == "boom":
            raise RuntimeError("unexpected")
        return await original(raw_entry)

    monkeypatch.setattr(webhooks, "process_entry", flaky)

    ack = await webhooks.ingest(envelope({"id": "boom"}, messaging_entry("m1")))

    assert ack == "EVENT_RECEIVED"
    assert await container.message_repo.get_by_message_id("m1") is not None


async def test_comment_on_uncached_post_is_skipped(container, webhooks, fanpage):
    await webhooks.ingest(envelope(feed_entry({
        "item": "comment",
        "verb": "add",
        "post_id": f"{PAGE_ID}_404",
        "comment_id": "404_1",
        "message": "hello?",
        "from": {"id": "555", "name": "Ana"},
    })))

    assert await container.comment_repo.get_by_comment_id("404_1") is None


async def test_comment_lifecycle(container, webhooks, fanpage, owner_socket):
    post_id = f"{PAGE_ID}_9"
    await container.post_repo.upsert(post_id, {"content": "Fresh bread"}, fanpage.id)
    base = {"item": "comment", "post_id": post_id, "comment_id": "9_1", "from": {"id": "555", "name": "Ana"}}

    await webhooks.ingest(envelope(feed_entry({**base, "verb": "add", "message": "Is it vegan?"})))
    await webhooks.ingest(envelope(feed_entry({**base, "verb": "edited", "message": "Is it gluten free?"})))
    await webhooks.ingest(envelope(feed_entry({**base, "verb": "hide"})))

    comment = await container.comment_repo.get_by_comment_id("9_1")
    assert comment.message == "Is it gluten free?"
    assert comment.is_hidden
    assert owner_socket.events() == [
        "notification", "comment:received", "comment:updated", "comment:updated"
    ]

    await webhooks.ingest(envelope(feed_entry({**base, "verb": "remove"})))

    assert await container.comment_repo.get_by_comment_id("9_1") is None
    assert owner_socket.frames[-1]["data"]["deleted"] is True


async def test_post_lifecycle(container, webhooks, fanpage, owner_socket):
    post_id = f"{PAGE_ID}_7"

    await webhooks.ingest(envelope(feed_entry({"item": "status", "verb": "add", "post_id": post_id, "message": "Open"})))
    await webhooks.ingest(envelope(feed_entry({"item": "status", "verb": "edited", "post_id": post_id, "message": "Closed"})))

    post = await container.post_repo.get_by_post_id(post_id)
    assert post.content == "Closed"
    await container.comment_repo.upsert("7_1", {"message": "hi"}, {"post_id": post.id, "fanpage_id": fanpage.id})

    await webhooks.ingest(envelope(feed_entry({"item": "status", "verb": "remove", "post_id": post_id})))

    assert await container.post_repo.get_by_post_id(post_id) is None
    assert await container.comment_repo.get_by_comment_id("7_1") is None
    assert owner_socket.events() == ["post:received", "post:updated", "post:deleted"]


def test_signature_check(container):
    service = WebhookService(
        container.fanpage_repo,
        container.post_repo,
        container.comment_repo,
        container.reconciliation_service,
        container.registry,
        verify_token=WEBHOOK_TOKEN,
        app_secret="app-secret",
        verify_signature=True
    )
    body = b'{"object": "page", "entry": []}'
    digest = hmac.new(b"app-secret", body, hashlib.sha256).hexdigest()

    service.verify_signature(body, f"sha256={digest}")
    with pytest.raises(AuthenticationError):
        service.verify_signature(body, "sha256=deadbeef")
    with pytest.raises(AuthenticationError):
        service.verify_signature(body, None)

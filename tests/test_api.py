import httpx
import pytest

from fanpage_service.main import create_app

from conftest import PAGE_ID, WEBHOOK_TOKEN, make_token, messaging_entry


@pytest.fixture
async def client(container):
    app = create_app(container=container)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {make_token(user.id)}"}


async def test_webhook_handshake(client):
    response = await client.get("/api/v1/webhook", params={
        "hub.mode": "subscribe", "hub.verify_token": WEBHOOK_TOKEN, "hub.challenge": "1158201444"
    })

    assert response.status_code == 200
    assert response.text == "1158201444"
    assert response.headers["content-type"].startswith("text/plain")

    denied = await client.get("/api/v1/webhook", params={
        "hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "1"
    })
    assert denied.status_code == 403
    assert denied.json()["error"]["code"] == "AUTHORIZATION_FAILED"


async def test_webhook_delivery(client, container, fanpage):
    response = await client.post("/api/v1/webhook", json={"object": "page", "entry": [messaging_entry("m1")]})

    assert response.status_code == 200
    assert response.text == "EVENT_RECEIVED"
    assert await container.message_repo.get_by_message_id("m1") is not None


async def test_webhook_rejects_other_objects(client):
    response = await client.post("/api/v1/webhook", json={"object": "instagram", "entry": []})

    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "error"
    assert body["error"]["category"] == "validation"


async def test_webhook_rejects_malformed_body(client):
    response = await client.post(
        "/api/v1/webhook", content=b"{not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400


async def test_authentication_is_required(client, user):
    assert (await client.get("/api/v1/fanpages")).status_code == 401

    response = await client.get("/api/v1/fanpages", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_FAILED"

    wrong_secret = make_token(user.id, secret="x" * 40)
    response = await client.get("/api/v1/fanpages", headers={"Authorization": f"Bearer {wrong_secret}"})
    assert response.status_code == 401


async def test_list_fanpages(client, auth_headers, fanpage):
    response = await client.get("/api/v1/fanpages", headers=auth_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert [page["page_id"] for page in body["data"]] == [PAGE_ID]
    assert "access_token" not in body["data"][0]


async def test_posts_are_pulled_lazily(client, graph, auth_headers, fanpage):
    graph.route("GET", f"{PAGE_ID}/posts", {"data": [{"id": f"{PAGE_ID}_1", "message": "Warm croissants"}]})

    response = await client.get(f"/api/v1/fanpages/{fanpage.id}/posts", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["pagination"]["total"] == 1
    assert data["items"][0]["content"] == "Warm croissants"


async def test_foreign_fanpage_is_forbidden(client, container, fanpage):
    token = make_token("65f000000000000000000000")

    response = await client.get(
        f"/api/v1/fanpages/{fanpage.id}/posts", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 403


async def test_unknown_fanpage_is_not_found(client, auth_headers):
    response = await client.get("/api/v1/fanpages/65f000000000000000000000/posts", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["error"]["category"] == "not_found"


async def test_malformed_ids_are_validation_errors(client, auth_headers, fanpage):
    for method, path in [
        ("GET", "/api/v1/fanpages/not-an-id/posts"),
        ("GET", "/api/v1/posts/xyz/comments"),
        ("POST", "/api/v1/notifications/bad/read"),
        ("POST", "/api/v1/messages/123/follow"),
    ]:
        response = await client.request(method, path, headers=auth_headers)

        assert response.status_code == 400, path
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["category"] == "validation"


async def test_send_message_with_owner_offline(client, container, graph, auth_headers, user, fanpage):
    graph.route("POST", "me/messages", {"recipient_id": "123", "message_id": "m_out"})

    response = await client.post(
        f"/api/v1/fanpages/{fanpage.id}/messages",
        json={"recipientId": "123", "message": "We open at 8"},
        headers=auth_headers
    )

    assert response.status_code == 201
    assert response.json()["data"]["message_id"] == "m_out"
    assert not container.registry.is_online(user.id)
    stored = await container.message_repo.get_by_message_id("m_out")
    assert stored.conversation_id == "123"
    assert await container.notification_repo.count_for_user(user.id) == 1


async def test_reply_with_owner_offline(client, container, graph, auth_headers, user, fanpage):
    post = (await container.post_repo.upsert(f"{PAGE_ID}_9", {"content": "Fresh bread"}, fanpage.id)).document
    comment = (await container.comment_repo.upsert(
        "9_1", {"message": "Is it vegan?"}, {"post_id": post.id, "fanpage_id": fanpage.id}
    )).document
    graph.route("POST", "9_1/comments", {"id": "9_2"})

    response = await client.post(
        f"/api/v1/comments/{comment.id}/reply", json={"message": "Yes it is"}, headers=auth_headers
    )

    assert response.status_code == 201
    assert response.json()["data"]["parent_id"] == "9_1"
    assert not container.registry.is_online(user.id)
    reply = await container.comment_repo.get_by_comment_id("9_2")
    assert reply.message == "Yes it is"
    assert reply.post_id == post.id


async def test_request_body_is_validated(client, auth_headers, fanpage):
    response = await client.post(
        f"/api/v1/fanpages/{fanpage.id}/posts", json={"message": ""}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_publish_post_emits_to_owner(client, graph, auth_headers, fanpage, owner_socket):
    graph.route("POST", f"{PAGE_ID}/feed", {"id": f"{PAGE_ID}_55"})

    response = await client.post(
        f"/api/v1/fanpages/{fanpage.id}/posts", json={"message": "Open on Sunday"}, headers=auth_headers
    )

    assert response.status_code == 201
    assert response.json()["data"]["post_id"] == f"{PAGE_ID}_55"
    assert owner_socket.events() == ["post:received"]


async def test_notifications_listing_and_read(client, container, auth_headers, user):
    notification = await container.notification_service.create_notification(
        user.id, "comment", title="New comment", content="Nice"
    )

    listing = await client.get("/api/v1/notifications", headers=auth_headers)
    assert listing.json()["data"]["unread_count"] == 1

    marked = await client.post(f"/api/v1/notifications/{notification.id}/read", headers=auth_headers)
    assert marked.status_code == 200
    assert marked.json()["data"]["is_read"] is True

    missing = await client.post("/api/v1/notifications/65f000000000000000000000/read", headers=auth_headers)
    assert missing.status_code == 404


async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.json()["status"] == "healthy"


async def test_metrics_endpoint(client):
    await client.get("/health")

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")

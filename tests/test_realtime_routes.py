import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from fanpage_service.main import create_app

from conftest import make_token


@pytest.fixture
def client(container):
    with TestClient(create_app(container=container)) as client:
        yield client


def ws_url(user_id) -> str:
    return f"/api/v1/ws?token={make_token(user_id)}"


def test_invalid_token_is_refused(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/api/v1/ws?token=not-a-jwt"):
            pass

    assert exc_info.value.code == 1008


def test_missing_token_is_refused(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/api/v1/ws"):
            pass

    assert exc_info.value.code == 1008


def test_ping_pong(client, container):
    user_id = str(ObjectId())

    with client.websocket_connect(ws_url(user_id)) as websocket:
        websocket.send_json({"event": "ping"})
        frame = websocket.receive_json()

        assert frame["event"] == "pong"
        assert container.registry.is_online(user_id)

    assert not container.registry.is_online(user_id)


def test_typing_is_forwarded_to_recipient(client):
    agent, customer_desk = str(ObjectId()), str(ObjectId())

    with client.websocket_connect(ws_url(agent)) as sender, \
            client.websocket_connect(ws_url(customer_desk)) as recipient:
        sender.send_json({"event": "typing:start", "data": {"recipientId": customer_desk}})
        assert recipient.receive_json() == {"event": "typing:started", "data": {"senderId": agent}}

        sender.send_json({"event": "typing:stop", "data": {"recipientId": customer_desk}})
        assert recipient.receive_json() == {"event": "typing:stopped", "data": {"senderId": agent}}


def test_bad_frames_get_error_events(client):
    with client.websocket_connect(ws_url(ObjectId())) as websocket:
        websocket.send_text("{oops")
        assert websocket.receive_json()["data"]["code"] == "VALIDATION_ERROR"

        websocket.send_json({"event": "dance"})
        assert websocket.receive_json()["data"]["code"] == "UNKNOWN_EVENT"

        websocket.send_json({"event": "typing:start", "data": {}})
        error = websocket.receive_json()
        assert error["event"] == "error"
        assert error["data"]["event"] == "typing:start"


def test_binary_frame_gets_error_and_connection_survives(client):
    with client.websocket_connect(ws_url(ObjectId())) as websocket:
        websocket.send_bytes(b"\x00\x01")
        error = websocket.receive_json()
        assert error["event"] == "error"
        assert error["data"]["code"] == "VALIDATION_ERROR"

        websocket.send_json({"event": "ping"})
        assert websocket.receive_json()["event"] == "pong"


def test_malformed_fanpage_id_is_a_validation_error(client):
    with client.websocket_connect(ws_url(ObjectId())) as websocket:
        websocket.send_json({"event": "message:send", "data": {
            "recipientId": "123", "message": "hello", "fanpageId": "not-an-id"
        }})

        error = websocket.receive_json()

    assert error["event"] == "error"
    assert error["data"]["code"] == "VALIDATION_ERROR"


def test_send_message_to_unknown_fanpage(client):
    with client.websocket_connect(ws_url(ObjectId())) as websocket:
        websocket.send_json({"event": "message:send", "data": {
            "recipientId": "123", "message": "hello", "fanpageId": str(ObjectId())
        }})

        error = websocket.receive_json()

    assert error["event"] == "error"
    assert error["data"]["code"] == "RESOURCE_NOT_FOUND"


def test_idle_connection_gets_keepalive(client, container):
    container.settings = container.settings.model_copy(update={"WEBSOCKET_IDLE_TIMEOUT": 0.1})

    with client.websocket_connect(ws_url(ObjectId())) as websocket:
        assert websocket.receive_json()["event"] == "keepalive"

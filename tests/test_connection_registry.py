from fanpage_service.core.realtime.connection_registry import ConnectionRegistry, RealtimeConnection
from fanpage_service.models.types import ConnectionState
from fanpage_service.utils.metrics import MetricsCollector

from conftest import FakeWebSocket


def make_registry():
    return ConnectionRegistry(MetricsCollector())


async def test_event_reaches_every_socket_of_the_user():
    registry = make_registry()
    laptop, phone, other = FakeWebSocket(), FakeWebSocket(), FakeWebSocket()
    registry.register(RealtimeConnection(user_id="u1", websocket=laptop))
    registry.register(RealtimeConnection(user_id="u1", websocket=phone))
    registry.register(RealtimeConnection(user_id="u2", websocket=other))

    delivered = await registry.emit_to_user("u1", "post:received", {"fanpageId": "f1"})

    assert delivered == 2
    assert laptop.frames == [{"event": "post:received", "data": {"fanpageId": "f1"}}]
    assert phone.frames == laptop.frames
    assert other.frames == []


async def test_offline_user_drops_event():
    registry = make_registry()

    assert await registry.emit_to_user("nobody", "notification", {}) == 0


async def test_failing_socket_is_unregistered():
    registry = make_registry()
    healthy = FakeWebSocket()
    broken = RealtimeConnection(user_id="u1", websocket=FakeWebSocket(fail=True))
    registry.register(RealtimeConnection(user_id="u1", websocket=healthy))
    registry.register(broken)

    delivered = await registry.emit_to_user("u1", "notification", {"title": "hi"})

    assert delivered == 1
    assert registry.connection_count == 1
    assert broken.state == ConnectionState.DISCONNECTED


def test_lifecycle_states():
    registry = make_registry()
    connection = RealtimeConnection(user_id="u1", websocket=FakeWebSocket())
    assert connection.state == ConnectionState.CONNECTING

    registry.register(connection)
    assert connection.state == ConnectionState.JOINED
    assert registry.is_online("u1")

    connection.mark_idle()
    assert connection.state == ConnectionState.IDLE
    connection.touch()
    assert connection.state == ConnectionState.ACTIVE

    registry.unregister(connection.connection_id)
    assert not registry.is_online("u1")
    assert connection.state == ConnectionState.DISCONNECTED


async def test_object_ids_are_serialized():
    from bson import ObjectId

    registry = make_registry()
    socket = FakeWebSocket()
    registry.register(RealtimeConnection(user_id="u1", websocket=socket))
    object_id = ObjectId()

    await registry.emit_to_user("u1", "message:followed", {"id": object_id})

    assert socket.frames[0]["data"] == {"id": str(object_id)}

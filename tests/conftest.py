"""
Shared fixtures: an in-memory motor database, a Graph API double served
through ``httpx.MockTransport`` and a fully wired service container.
"""

import json
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import jwt
import pytest
from mongomock_motor import AsyncMongoMockClient

from fanpage_service.config.settings import Settings, get_settings
from fanpage_service.core.channels.graph_client import FacebookGraphClient, GraphClientConfig
from fanpage_service.core.realtime.connection_registry import RealtimeConnection
from fanpage_service.models.mongo.fanpage_model import FanpageDocument
from fanpage_service.models.mongo.user_model import UserDocument
from fanpage_service.services.service_container import ServiceContainer
from fanpage_service.utils.date_utils import utc_now
from fanpage_service.utils.metrics import MetricsCollector

GRAPH_BASE_URL = "https://graph.test/v23.0"
PAGE_ID = "1001"
PAGE_TOKEN = "page-token"
USER_TOKEN = "user-token"
WEBHOOK_TOKEN = "verify-me"

Responder = Union[Dict[str, Any], Callable[[httpx.Request], httpx.Response]]


class GraphStub:
    """
    Graph API double.

    Routes are keyed by ``"METHOD path"`` with the version prefix removed,
    e.g. ``"GET 1001/posts"``. Unrouted calls answer 404 with a Graph error
    body so a missing stub fails loudly.
    """

    def __init__(self):
        self.routes: Dict[str, Responder] = {}
        self.calls: List[httpx.Request] = []

    def route(self, method: str, path: str, response: Responder) -> None:
        self.routes[f"{method.upper()} {path}"] = response

    def calls_to(self, method: str, path: str) -> List[httpx.Request]:
        key = f"{method.upper()} {path}"
        return [request for request in self.calls if self._key(request) == key]

    @staticmethod
    def _key(request: httpx.Request) -> str:
        prefix = httpx.URL(GRAPH_BASE_URL).path.rstrip("/") + "/"
        path = request.url.path
        if path.startswith(prefix):
            path = path[len(prefix):]
        return f"{request.method} {path}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        responder = self.routes.get(self._key(request))
        if responder is None:
            return httpx.Response(
                404,
                json={"error": {"message": f"No stub for {self._key(request)}", "code": 803}}
            )
        if callable(responder):
            return responder(request)
        return httpx.Response(200, json=responder)


def request_json(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content) if request.content else {}


class FakeWebSocket:
    """Collects frames sent through the connection registry"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.frames: List[Dict[str, Any]] = []

    async def send_json(self, data: Dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.frames.append(data)

    def events(self) -> List[str]:
        return [frame["event"] for frame in self.frames]

    def frames_for(self, event: str) -> List[Dict[str, Any]]:
        return [frame for frame in self.frames if frame["event"] == event]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        ENVIRONMENT="testing",
        JWT_SECRET_KEY=get_settings().JWT_SECRET_KEY,
        FACEBOOK_WEBHOOK_TOKEN=WEBHOOK_TOKEN,
        FACEBOOK_APP_ID="app-id",
        FACEBOOK_APP_SECRET="app-secret",
        TOKEN_REFRESH_ENABLED=False,
        WEBSOCKET_IDLE_TIMEOUT=5.0,
    )


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def graph() -> GraphStub:
    return GraphStub()


@pytest.fixture
def graph_client(graph: GraphStub, metrics: MetricsCollector) -> FacebookGraphClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(graph.handler))
    return FacebookGraphClient(
        GraphClientConfig(base_url=GRAPH_BASE_URL, app_id="app-id", app_secret="app-secret"),
        http_client=http_client,
        metrics=metrics
    )


@pytest.fixture
def database():
    return AsyncMongoMockClient()["fanpage_service_test"]


@pytest.fixture
def container(database, settings, graph_client, metrics) -> ServiceContainer:
    return ServiceContainer(database, settings, graph_client=graph_client, metrics=metrics)


@pytest.fixture
async def user(container: ServiceContainer) -> UserDocument:
    return await container.user_repo.create(
        UserDocument(email="owner@example.com", name="Owner", facebook_token=USER_TOKEN)
    )


@pytest.fixture
async def fanpage(container: ServiceContainer, user: UserDocument) -> FanpageDocument:
    return await container.fanpage_repo.create(
        FanpageDocument(
            page_id=PAGE_ID,
            name="Corner Bakery",
            access_token=PAGE_TOKEN,
            user_id=user.id,
            picture_url="https://cdn.test/page.png"
        )
    )


@pytest.fixture
def owner_socket(container: ServiceContainer, user: UserDocument) -> FakeWebSocket:
    """A live connection for the fanpage owner."""
    socket = FakeWebSocket()
    container.registry.register(RealtimeConnection(user_id=str(user.id), websocket=socket))
    return socket


def make_token(user_id: Any, secret: Optional[str] = None, expires_in: timedelta = timedelta(hours=1)) -> str:
    now = utc_now()
    return jwt.encode(
        {"sub": str(user_id), "iat": now, "exp": now + expires_in},
        secret or get_settings().JWT_SECRET_KEY,
        algorithm="HS256"
    )


def graph_comment(comment_id: str, message: str, author: Tuple[str, str] = ("555", "Ana")) -> Dict[str, Any]:
    return {
        "id": comment_id,
        "message": message,
        "from": {"id": author[0], "name": author[1]},
        "created_time": "2024-05-01T10:00:00+0000",
    }


def messaging_entry(mid: str, sender: str = "123", text: str = "hi", page_id: str = PAGE_ID) -> Dict[str, Any]:
    return {
        "id": page_id,
        "time": 1714557600000,
        "messaging": [{
            "sender": {"id": sender},
            "recipient": {"id": page_id},
            "timestamp": 1714557600000,
            "message": {"mid": mid, "text": text},
        }],
    }


def feed_entry(value: Dict[str, Any], page_id: str = PAGE_ID) -> Dict[str, Any]:
    return {"id": page_id, "time": 1714557600, "changes": [{"field": "feed", "value": value}]}

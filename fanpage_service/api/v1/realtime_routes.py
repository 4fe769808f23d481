"""
Real-time WebSocket Route
Authenticated per-user channel for entity changes, notifications and typing
indicators.

Frames in both directions are JSON objects ``{"event": ..., "data": ...}``.
"""

import asyncio
import json
from typing import Annotated, Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from fanpage_service.api.middleware.auth_middleware import auth_context_from_token
from fanpage_service.api.validators import SendMessageRequest, TypingEvent
from fanpage_service.config.constants import RealtimeEvent, WS_POLICY_VIOLATION
from fanpage_service.exceptions.base_exceptions import (
    AuthenticationError,
    FanpageServiceException,
)
from fanpage_service.core.realtime.connection_registry import RealtimeConnection
from fanpage_service.dependencies import get_websocket_container
from fanpage_service.models.types import ConnectionState
from fanpage_service.services.service_container import ServiceContainer
from fanpage_service.utils.date_utils import utc_now
from fanpage_service.utils.logger import bind_context, clear_context

logger = structlog.get_logger()
router = APIRouter(tags=["realtime"])


def error_payload(message: str, event: Optional[str] = None, code: str = "REALTIME_ERROR") -> Dict[str, Any]:
    payload = {"code": code, "message": message}
    if event:
        payload["event"] = event
    return payload


class RealtimeSession:
    """Dispatches client events of one authenticated connection"""

    def __init__(self, connection: RealtimeConnection, container: ServiceContainer):
        self.connection = connection
        self.container = container
        self.registry = container.registry

    async def reply(self, event: RealtimeEvent, payload: Any) -> bool:
        return await self.registry.send(self.connection, event.value, payload)

    async def dispatch(self, frame: Any) -> None:
        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            await self.reply(RealtimeEvent.ERROR, error_payload("Frame must carry an event name"))
            return

        event = frame["event"]
        data = frame.get("data") or {}

        try:
            if event == RealtimeEvent.MESSAGE_SEND.value:
                await self.on_message_send(data)
            elif event == RealtimeEvent.TYPING_START.value:
                await self.on_typing(data, RealtimeEvent.TYPING_STARTED)
            elif event == RealtimeEvent.TYPING_STOP.value:
                await self.on_typing(data, RealtimeEvent.TYPING_STOPPED)
            elif event == RealtimeEvent.PING.value:
                await self.reply(RealtimeEvent.PONG, {"timestamp": utc_now()})
            else:
                await self.reply(
                    RealtimeEvent.ERROR,
                    error_payload(f"Unknown event: {event}", event, code="UNKNOWN_EVENT")
                )
        except PydanticValidationError as e:
            await self.reply(
                RealtimeEvent.ERROR,
                {
                    **error_payload("Invalid event payload", event, code="VALIDATION_ERROR"),
                    "details": e.errors(include_url=False, include_context=False, include_input=False)
                }
            )
        except FanpageServiceException as e:
            e.log_error(logger)
            await self.reply(
                RealtimeEvent.ERROR,
                error_payload(e.user_message, event, code=e.error_code)
            )
        except Exception as e:
            logger.error(
                "Realtime event failed",
                realtime_event=event,
                error=str(e),
                error_type=type(e).__name__
            )
            await self.reply(
                RealtimeEvent.ERROR,
                error_payload("An unexpected error occurred", event, code="INTERNAL_ERROR")
            )

    async def on_message_send(self, data: Dict[str, Any]) -> None:
        request = SendMessageRequest.model_validate(data)
        await self.container.message_service.send_message(
            self.connection.user_id,
            request.recipient_id,
            request.message,
            fanpage_id=request.fanpage_id
        )

    async def on_typing(self, data: Dict[str, Any], outgoing: RealtimeEvent) -> None:
        typing = TypingEvent.model_validate(data)
        await self.registry.emit_to_user(
            typing.recipient_id,
            outgoing.value,
            {"senderId": self.connection.user_id}
        )


@router.websocket("/ws")
async def realtime_channel(
        websocket: WebSocket,
        container: Annotated[ServiceContainer, Depends(get_websocket_container)],
        token: Optional[str] = Query(default=None)
):
    """
    Per-user real-time channel

    The handshake is refused with close code 1008 when the token is missing
    or invalid. Without client traffic for ``WEBSOCKET_IDLE_TIMEOUT`` seconds
    the connection goes idle and receives a ``keepalive`` event.
    """
    clear_context()
    try:
        auth_context = auth_context_from_token(token)
    except AuthenticationError as e:
        logger.warning("Realtime handshake rejected", reason=e.message)
        await websocket.close(code=WS_POLICY_VIOLATION)
        return

    connection = RealtimeConnection(user_id=auth_context.user_id, websocket=websocket)
    connection.state = ConnectionState.AUTHENTICATED
    bind_context(user_id=connection.user_id, connection_id=connection.connection_id)

    await websocket.accept()
    registry = container.registry
    registry.register(connection)
    session = RealtimeSession(connection, container)
    idle_timeout = container.settings.WEBSOCKET_IDLE_TIMEOUT

    try:
        while True:
            try:
                text = await asyncio.wait_for(websocket.receive_text(), timeout=idle_timeout)
            except asyncio.TimeoutError:
                connection.mark_idle()
                if not await session.reply(RealtimeEvent.KEEPALIVE, {"timestamp": utc_now()}):
                    break
                continue
            except KeyError:
                # starlette raises KeyError("text") for a binary frame
                connection.touch()
                await session.reply(
                    RealtimeEvent.ERROR,
                    error_payload("Frame must be text", code="VALIDATION_ERROR")
                )
                continue

            connection.touch()
            try:
                frame = json.loads(text)
            except json.JSONDecodeError:
                await session.reply(
                    RealtimeEvent.ERROR,
                    error_payload("Frame is not valid JSON", code="VALIDATION_ERROR")
                )
                continue

            await session.dispatch(frame)

    except WebSocketDisconnect as e:
        logger.info("Realtime client disconnected", code=e.code)
    finally:
        registry.unregister(connection.connection_id)
        clear_context()

"""
Message API Routes
Messenger conversations of a fanpage.
"""

from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Request, status

from fanpage_service.api import APIResponse, create_success_response
from fanpage_service.api.middleware.auth_middleware import AuthContext, get_auth_context
from fanpage_service.api.validators import FollowMessageRequest, SendMessageRequest
from fanpage_service.dependencies import get_message_service, get_pagination
from fanpage_service.repositories.base_repository import Pagination
from fanpage_service.services.message_service import MessageService

router = APIRouter(tags=["messages"])

Auth = Annotated[AuthContext, Depends(get_auth_context)]
Messages = Annotated[MessageService, Depends(get_message_service)]


@router.get(
    "/fanpages/{fanpage_id}/conversations/{conversation_id}/messages",
    response_model=APIResponse[Any],
    summary="List conversation messages",
    description="Cached messages exchanged with one customer; an empty cache is filled from Facebook first"
)
async def list_messages(
        fanpage_id: str,
        conversation_id: str,
        request: Request,
        auth_context: Auth,
        message_service: Messages,
        pagination: Annotated[Pagination, Depends(get_pagination)]
) -> APIResponse[Any]:
    result = await message_service.list_messages(
        fanpage_id, conversation_id, auth_context.user_id, pagination
    )
    return create_success_response(data=result, request_id=request.state.request_id)


@router.post(
    "/fanpages/{fanpage_id}/messages",
    response_model=APIResponse[Any],
    status_code=status.HTTP_201_CREATED,
    summary="Send a message as the page"
)
async def send_message(
        fanpage_id: str,
        body: SendMessageRequest,
        request: Request,
        auth_context: Auth,
        message_service: Messages
) -> APIResponse[Any]:
    message = await message_service.send_message(
        auth_context.user_id,
        body.recipient_id,
        body.message,
        fanpage_id=fanpage_id
    )
    return create_success_response(
        data=message,
        message="Message sent",
        request_id=request.state.request_id
    )


@router.post("/messages/{message_id}/follow", response_model=APIResponse[Any], summary="Flag a message")
async def follow_message(
        message_id: str,
        request: Request,
        auth_context: Auth,
        message_service: Messages,
        body: Optional[FollowMessageRequest] = None
) -> APIResponse[Any]:
    followed = body.followed if body is not None else True
    message = await message_service.set_followed(message_id, auth_context.user_id, followed)
    return create_success_response(data=message, request_id=request.state.request_id)

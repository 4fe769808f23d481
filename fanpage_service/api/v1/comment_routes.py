"""
Comment API Routes
Read, reply to and moderate post comments.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, status

from fanpage_service.api import APIResponse, create_success_response
from fanpage_service.api.middleware.auth_middleware import AuthContext, get_auth_context
from fanpage_service.api.validators import ReplyCommentRequest
from fanpage_service.dependencies import get_comment_service, get_pagination
from fanpage_service.repositories.base_repository import Pagination
from fanpage_service.services.comment_service import CommentService

router = APIRouter(tags=["comments"])

Auth = Annotated[AuthContext, Depends(get_auth_context)]
Comments = Annotated[CommentService, Depends(get_comment_service)]


@router.get(
    "/posts/{post_id}/comments",
    response_model=APIResponse[Any],
    summary="List comments",
    description="Cached comments of the post; an empty cache is filled from Facebook first"
)
async def list_comments(
        post_id: str,
        request: Request,
        auth_context: Auth,
        comment_service: Comments,
        pagination: Annotated[Pagination, Depends(get_pagination)]
) -> APIResponse[Any]:
    result = await comment_service.list_comments(post_id, auth_context.user_id, pagination)
    return create_success_response(data=result, request_id=request.state.request_id)


@router.post(
    "/comments/{comment_id}/reply",
    response_model=APIResponse[Any],
    status_code=status.HTTP_201_CREATED,
    summary="Reply to a comment"
)
async def reply_to_comment(
        comment_id: str,
        body: ReplyCommentRequest,
        request: Request,
        auth_context: Auth,
        comment_service: Comments
) -> APIResponse[Any]:
    reply = await comment_service.reply(comment_id, auth_context.user_id, body.message)
    return create_success_response(
        data=reply,
        message="Reply posted",
        request_id=request.state.request_id
    )


@router.post("/comments/{comment_id}/hide", response_model=APIResponse[Any], summary="Hide a comment")
async def hide_comment(
        comment_id: str,
        request: Request,
        auth_context: Auth,
        comment_service: Comments
) -> APIResponse[Any]:
    comment = await comment_service.set_hidden(comment_id, auth_context.user_id, True)
    return create_success_response(data=comment, request_id=request.state.request_id)


@router.post("/comments/{comment_id}/unhide", response_model=APIResponse[Any], summary="Unhide a comment")
async def unhide_comment(
        comment_id: str,
        request: Request,
        auth_context: Auth,
        comment_service: Comments
) -> APIResponse[Any]:
    comment = await comment_service.set_hidden(comment_id, auth_context.user_id, False)
    return create_success_response(data=comment, request_id=request.state.request_id)

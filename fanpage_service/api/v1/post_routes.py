"""
Post API Routes
Read, publish, edit and delete fanpage posts.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, status

from fanpage_service.api import APIResponse, create_success_response
from fanpage_service.api.middleware.auth_middleware import AuthContext, get_auth_context
from fanpage_service.api.validators import PostContentRequest
from fanpage_service.dependencies import get_pagination, get_post_service
from fanpage_service.repositories.base_repository import Pagination
from fanpage_service.services.post_service import PostService

router = APIRouter(tags=["posts"])

Auth = Annotated[AuthContext, Depends(get_auth_context)]
Posts = Annotated[PostService, Depends(get_post_service)]


@router.get(
    "/fanpages/{fanpage_id}/posts",
    response_model=APIResponse[Any],
    summary="List posts",
    description="Cached posts of the fanpage; an empty cache is filled from Facebook first"
)
async def list_posts(
        fanpage_id: str,
        request: Request,
        auth_context: Auth,
        post_service: Posts,
        pagination: Annotated[Pagination, Depends(get_pagination)]
) -> APIResponse[Any]:
    result = await post_service.list_posts(fanpage_id, auth_context.user_id, pagination)
    return create_success_response(data=result, request_id=request.state.request_id)


@router.post(
    "/fanpages/{fanpage_id}/posts",
    response_model=APIResponse[Any],
    status_code=status.HTTP_201_CREATED,
    summary="Publish a post"
)
async def create_post(
        fanpage_id: str,
        body: PostContentRequest,
        request: Request,
        auth_context: Auth,
        post_service: Posts
) -> APIResponse[Any]:
    post = await post_service.create_post(fanpage_id, auth_context.user_id, body.message)
    return create_success_response(
        data=post,
        message="Post published",
        request_id=request.state.request_id
    )


@router.put("/posts/{post_id}", response_model=APIResponse[Any], summary="Edit a post")
async def update_post(
        post_id: str,
        body: PostContentRequest,
        request: Request,
        auth_context: Auth,
        post_service: Posts
) -> APIResponse[Any]:
    post = await post_service.update_post(post_id, auth_context.user_id, body.message)
    return create_success_response(
        data=post,
        message="Post updated",
        request_id=request.state.request_id
    )


@router.delete("/posts/{post_id}", response_model=APIResponse[Any], summary="Delete a post")
async def delete_post(
        post_id: str,
        request: Request,
        auth_context: Auth,
        post_service: Posts
) -> APIResponse[Any]:
    await post_service.delete_post(post_id, auth_context.user_id)
    return create_success_response(
        data={"id": post_id, "deleted": True},
        message="Post deleted",
        request_id=request.state.request_id
    )

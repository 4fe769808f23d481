"""
Fanpage API Routes
Connect, list and disconnect the Facebook pages managed by a user.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, status

from fanpage_service.api import APIResponse, create_success_response
from fanpage_service.api.middleware.auth_middleware import AuthContext, get_auth_context
from fanpage_service.api.validators import ConnectFanpageRequest
from fanpage_service.dependencies import get_fanpage_service
from fanpage_service.services.fanpage_service import FanpageService

router = APIRouter(prefix="/fanpages", tags=["fanpages"])

Auth = Annotated[AuthContext, Depends(get_auth_context)]
Fanpages = Annotated[FanpageService, Depends(get_fanpage_service)]


@router.get("", response_model=APIResponse[Any], summary="List connected fanpages")
async def list_fanpages(
        request: Request,
        auth_context: Auth,
        fanpage_service: Fanpages
) -> APIResponse[Any]:
    fanpages = await fanpage_service.list_fanpages(auth_context.user_id)
    return create_success_response(
        data=fanpages,
        request_id=request.state.request_id,
        total=len(fanpages)
    )


@router.get(
    "/available",
    response_model=APIResponse[Any],
    summary="List the user's Facebook pages",
    description="Pages the user administers on Facebook, flagged when already connected"
)
async def list_available_pages(
        request: Request,
        auth_context: Auth,
        fanpage_service: Fanpages
) -> APIResponse[Any]:
    pages = await fanpage_service.list_available_pages(auth_context.user_id)
    return create_success_response(data=pages, request_id=request.state.request_id)


@router.post(
    "/connect",
    response_model=APIResponse[Any],
    status_code=status.HTTP_201_CREATED,
    summary="Connect a fanpage",
    description="Store the page and pull its posts, comments and conversations"
)
async def connect_fanpage(
        body: ConnectFanpageRequest,
        request: Request,
        auth_context: Auth,
        fanpage_service: Fanpages
) -> APIResponse[Any]:
    """
    Connect a page the user administers

    Raises:
        400: Page already connected or owned by another user
        403: Subscription tier limit reached or package expired
    """
    result = await fanpage_service.connect_fanpage(auth_context.user_id, body.page_id)
    return create_success_response(
        data=result,
        message="Fanpage connected",
        request_id=request.state.request_id
    )


@router.post("/{fanpage_id}/disconnect", response_model=APIResponse[Any], summary="Disconnect a fanpage")
async def disconnect_fanpage(
        fanpage_id: str,
        request: Request,
        auth_context: Auth,
        fanpage_service: Fanpages
) -> APIResponse[Any]:
    fanpage = await fanpage_service.disconnect_fanpage(fanpage_id, auth_context.user_id)
    return create_success_response(
        data=fanpage,
        message="Fanpage disconnected",
        request_id=request.state.request_id
    )


@router.post(
    "/{fanpage_id}/refresh-token",
    response_model=APIResponse[Any],
    summary="Refresh the page credential"
)
async def refresh_page_token(
        fanpage_id: str,
        request: Request,
        auth_context: Auth,
        fanpage_service: Fanpages
) -> APIResponse[Any]:
    fanpage = await fanpage_service.refresh_page_token(fanpage_id, auth_context.user_id)
    return create_success_response(
        data=fanpage,
        message="Page credential refreshed",
        request_id=request.state.request_id
    )

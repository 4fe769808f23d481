"""
Notification API Routes
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request

from fanpage_service.api import APIResponse, create_success_response
from fanpage_service.api.middleware.auth_middleware import AuthContext, get_auth_context
from fanpage_service.dependencies import get_notification_service, get_pagination
from fanpage_service.repositories.base_repository import Pagination
from fanpage_service.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])

Auth = Annotated[AuthContext, Depends(get_auth_context)]
Notifications = Annotated[NotificationService, Depends(get_notification_service)]


@router.get("", response_model=APIResponse[Any], summary="List notifications")
async def list_notifications(
        request: Request,
        auth_context: Auth,
        notification_service: Notifications,
        pagination: Annotated[Pagination, Depends(get_pagination)],
        unread_only: bool = Query(default=False, description="Only unread notifications")
) -> APIResponse[Any]:
    result = await notification_service.list_notifications(
        auth_context.user_id, pagination, unread_only
    )
    return create_success_response(data=result, request_id=request.state.request_id)


@router.post("/read-all", response_model=APIResponse[Any], summary="Mark all notifications read")
async def mark_all_read(
        request: Request,
        auth_context: Auth,
        notification_service: Notifications
) -> APIResponse[Any]:
    updated = await notification_service.mark_all_read(auth_context.user_id)
    return create_success_response(data={"updated": updated}, request_id=request.state.request_id)


@router.post("/{notification_id}/read", response_model=APIResponse[Any], summary="Mark a notification read")
async def mark_read(
        notification_id: str,
        request: Request,
        auth_context: Auth,
        notification_service: Notifications
) -> APIResponse[Any]:
    notification = await notification_service.mark_read(notification_id, auth_context.user_id)
    return create_success_response(data=notification, request_id=request.state.request_id)

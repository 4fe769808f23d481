"""
Dependency injection for services

FastAPI dependency providers reading the per-process ``ServiceContainer``
stored on ``app.state`` during startup.
"""

from typing import Annotated

from fastapi import Depends, Query, Request, WebSocket

from fanpage_service.config.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from fanpage_service.exceptions.base_exceptions import InternalServerError
from fanpage_service.repositories.base_repository import Pagination
from fanpage_service.services.comment_service import CommentService
from fanpage_service.services.fanpage_service import FanpageService
from fanpage_service.services.message_service import MessageService
from fanpage_service.services.notification_service import NotificationService
from fanpage_service.services.post_service import PostService
from fanpage_service.services.service_container import ServiceContainer
from fanpage_service.services.webhook_service import WebhookService


def _container_from_app(app) -> ServiceContainer:
    container = getattr(app.state, "container", None)
    if container is None:
        raise InternalServerError("Service container not initialized")
    return container


async def get_service_container(request: Request) -> ServiceContainer:
    """Get service container instance"""
    return _container_from_app(request.app)


async def get_websocket_container(websocket: WebSocket) -> ServiceContainer:
    return _container_from_app(websocket.app)


Container = Annotated[ServiceContainer, Depends(get_service_container)]


# =============================================================================
# Service Dependencies
# =============================================================================

async def get_webhook_service(container: Container) -> WebhookService:
    return container.webhook_service


async def get_fanpage_service(container: Container) -> FanpageService:
    return container.fanpage_service


async def get_post_service(container: Container) -> PostService:
    return container.post_service


async def get_comment_service(container: Container) -> CommentService:
    return container.comment_service


async def get_message_service(container: Container) -> MessageService:
    return container.message_service


async def get_notification_service(container: Container) -> NotificationService:
    return container.notification_service


# =============================================================================
# Request Parameter Dependencies
# =============================================================================

async def get_pagination(
        page: int = Query(default=1, ge=1, description="Page number"),
        page_size: int = Query(
            default=DEFAULT_PAGE_SIZE,
            ge=1,
            le=MAX_PAGE_SIZE,
            description="Items per page"
        )
) -> Pagination:
    """Common pagination parameters"""
    return Pagination(page=page, page_size=page_size)

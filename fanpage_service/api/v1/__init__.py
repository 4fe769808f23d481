"""
API v1 routers.
"""

from fastapi import APIRouter

from fanpage_service.api.v1 import (
    comment_routes,
    fanpage_routes,
    message_routes,
    notification_routes,
    post_routes,
    realtime_routes,
    webhook_routes,
)

api_router = APIRouter()
api_router.include_router(webhook_routes.router)
api_router.include_router(fanpage_routes.router)
api_router.include_router(post_routes.router)
api_router.include_router(comment_routes.router)
api_router.include_router(message_routes.router)
api_router.include_router(notification_routes.router)
api_router.include_router(realtime_routes.router)

__all__ = ["api_router"]

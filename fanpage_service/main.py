"""
Fanpage Service - FastAPI Application Entry Point.

This module provides the FastAPI application with middleware, routes,
exception handlers and lifecycle management: MongoDB connection, service
container and the daily credential refresh schedule.
"""

import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

import psutil
import uvicorn
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST

from fanpage_service.api.middleware.logging_middleware import LoggingMiddleware, REQUEST_ID_HEADER
from fanpage_service.api.v1 import api_router
from fanpage_service.config.constants import (
    API_PREFIX,
    API_VERSION,
    SERVICE_DESCRIPTION,
    SERVICE_NAME,
    SERVICE_VERSION,
)
from fanpage_service.config.settings import Settings, get_settings
from fanpage_service.database.mongodb import (
    close_mongodb,
    initialize_mongodb,
    mongodb_health_check,
    setup_mongodb_indexes,
)
from fanpage_service.exceptions.base_exceptions import setup_exception_handlers
from fanpage_service.services.service_container import ServiceContainer
from fanpage_service.services.token_refresh_service import TokenRefreshScheduler
from fanpage_service.utils.date_utils import utc_now
from fanpage_service.utils.logger import get_logger, is_configured, setup_logging
from fanpage_service.utils.metrics import configure_metrics

logger = get_logger(__name__)


async def startup_event(app: FastAPI) -> None:
    """Connect MongoDB, build the service container and start the scheduler."""
    settings: Settings = app.state.settings

    logger.info(
        "Fanpage Service starting",
        version=SERVICE_VERSION,
        environment=settings.ENVIRONMENT.value,
        debug=settings.DEBUG
    )

    configure_metrics(settings.METRICS_ENABLED)

    if app.state.container is None:
        database = await initialize_mongodb()
        await setup_mongodb_indexes(database)
        app.state.container = ServiceContainer(database, settings)
        app.state.owns_database = True

    if settings.TOKEN_REFRESH_ENABLED:
        scheduler = TokenRefreshScheduler(
            app.state.container.token_refresh_service,
            hour=settings.TOKEN_REFRESH_CRON_HOUR
        )
        scheduler.start()
        app.state.scheduler = scheduler


async def shutdown_event(app: FastAPI) -> None:
    """Clean up resources on application shutdown."""
    scheduler: Optional[TokenRefreshScheduler] = app.state.scheduler
    if scheduler is not None:
        scheduler.shutdown()
        app.state.scheduler = None

    if app.state.owns_database:
        await app.state.container.close()
        await close_mongodb()
        app.state.container = None
        app.state.owns_database = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    try:
        await startup_event(app)
        logger.info("Fanpage Service startup completed")
    except Exception as e:
        logger.error("Fanpage Service startup failed", error=str(e), exc_info=True)
        sys.exit(1)

    try:
        yield
    finally:
        logger.info("Shutting down Fanpage Service...")
        try:
            await shutdown_event(app)
            logger.info("Fanpage Service shutdown completed")
        except Exception as e:
            logger.error("Error during shutdown", error=str(e), exc_info=True)


def create_app(
        container: Optional[ServiceContainer] = None,
        settings: Optional[Settings] = None
) -> FastAPI:
    """
    Create and configure FastAPI application instance.

    Args:
        container: Prebuilt service container; when given, startup does not
            connect to MongoDB and shutdown leaves the container open
        settings: Settings override (defaults to the cached settings)
    """
    settings = settings or (container.settings if container else get_settings())

    if not is_configured():
        setup_logging(settings.LOG_LEVEL.value, settings.LOG_FORMAT)

    app = FastAPI(
        title="Fanpage Service API",
        description=SERVICE_DESCRIPTION,
        version=SERVICE_VERSION,
        openapi_url=f"{API_PREFIX}/openapi.json",
        docs_url=f"{API_PREFIX}/docs",
        redoc_url=f"{API_PREFIX}/redoc",
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.container = container
    app.state.owns_database = False
    app.state.scheduler = None
    app.state.started_at = time.time()

    setup_middleware(app, settings)
    setup_exception_handlers(app)
    setup_routes(app)

    return app


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure application middleware."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "HEAD"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            REQUEST_ID_HEADER,
            "Accept",
        ],
        expose_headers=[REQUEST_ID_HEADER]
    )

    logging_middleware = LoggingMiddleware()
    app.middleware("http")(logging_middleware)


def setup_routes(app: FastAPI) -> None:
    """Setup application routes and endpoints."""
    app.include_router(api_router, prefix=API_PREFIX)

    @app.get("/health")
    async def health_check():
        """Basic health check endpoint."""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": app.version,
            "timestamp": utc_now().isoformat()
        }

    @app.get("/health/detailed")
    async def detailed_health_check():
        """Detailed health check with dependency status."""
        mongodb = await mongodb_health_check()
        container: Optional[ServiceContainer] = app.state.container
        scheduler: Optional[TokenRefreshScheduler] = app.state.scheduler

        memory = psutil.virtual_memory()
        healthy = container is not None and (mongodb.get("healthy") or not app.state.owns_database)

        return {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": utc_now().isoformat(),
            "dependencies": {
                "mongodb": mongodb,
                "credential_refresh": {
                    "scheduled": bool(scheduler and scheduler.is_running)
                }
            },
            "metrics": {
                "memory_usage_mb": round(memory.used / 1024 / 1024, 2),
                "memory_percent": round(memory.percent, 2),
                "cpu_usage_percent": round(psutil.cpu_percent(interval=None), 2),
                "uptime_seconds": round(time.time() - app.state.started_at),
                "active_connections": container.registry.connection_count if container else 0
            }
        }

    @app.get("/info")
    async def service_info():
        """Service information endpoint."""
        settings: Settings = app.state.settings
        return {
            "service": SERVICE_NAME,
            "version": app.version,
            "api_version": API_VERSION,
            "environment": settings.ENVIRONMENT.value,
            "docs_url": app.docs_url
        }

    @app.get("/metrics")
    async def prometheus_metrics():
        """Prometheus metrics endpoint."""
        container: Optional[ServiceContainer] = app.state.container
        metrics = container.metrics if container else configure_metrics()
        return Response(
            metrics.export_prometheus_metrics(),
            media_type=CONTENT_TYPE_LATEST
        )


def main() -> None:
    """Main entry point for running the service."""
    settings = get_settings()
    uvicorn.run(
        "fanpage_service.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.value.lower()
    )


if __name__ == "__main__":
    main()

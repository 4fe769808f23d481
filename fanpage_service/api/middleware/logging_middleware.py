"""
Logging Middleware
Request ID propagation and structured request/response logging.
"""

import time
from typing import Optional, Set
from uuid import uuid4

import structlog
from fastapi import Request

from fanpage_service.utils.logger import bind_context, clear_context
from fanpage_service.utils.metrics import MetricsCollector, get_metrics_collector

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware:
    """Middleware for structured request/response logging"""

    def __init__(
            self,
            exclude_paths: Optional[Set[str]] = None,
            metrics: Optional[MetricsCollector] = None
    ):
        self.exclude_paths = exclude_paths or {"/health", "/metrics", "/docs", "/openapi.json"}
        self.metrics = metrics or get_metrics_collector()

    async def __call__(self, request: Request, call_next):
        """Process request through logging middleware"""
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id

        clear_context()
        bind_context(request_id=request_id)

        start_time = time.perf_counter()
        log_request = request.url.path not in self.exclude_paths

        if log_request:
            logger.info(
                "Incoming request",
                method=request.method,
                path=request.url.path,
                client_ip=request.client.host if request.client else None
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                processing_time_ms=round((time.perf_counter() - start_time) * 1000, 2)
            )
            raise

        processing_time = time.perf_counter() - start_time
        response.headers[REQUEST_ID_HEADER] = request_id

        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        self.metrics.record_request(request.method, endpoint, response.status_code, processing_time)

        if log_request:
            logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                processing_time_ms=round(processing_time * 1000, 2)
            )

        return response

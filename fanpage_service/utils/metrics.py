"""
Metrics collection and monitoring utilities.

Prometheus collectors for the webhook pipeline, reconciliation, real-time
delivery, Graph API calls and the credential sweep. Everything is
registered on a dedicated registry exposed by the ``/metrics`` endpoint.
"""

import time
from contextlib import contextmanager
from typing import Optional

from prometheus_client import (
    Counter, Histogram, Gauge, Info,
    CollectorRegistry, generate_latest,
)

from fanpage_service.config.constants import SERVICE_NAME, SERVICE_VERSION
from fanpage_service.utils.logger import get_logger

logger = get_logger(__name__)


class MetricsCollector:
    """
    Centralized metrics collection and management.

    Wraps the Prometheus collectors so callers record domain facts
    (``record_reconciled``) instead of touching label plumbing.
    """

    def __init__(self, enabled: bool = True):
        """
        Initialize metrics collector.

        Args:
            enabled: When False every recording method is a no-op
        """
        self.enabled = enabled
        self.registry = CollectorRegistry()
        self._setup_prometheus_metrics()

    def _setup_prometheus_metrics(self) -> None:
        """Setup Prometheus metrics collectors."""
        # Request metrics
        self.request_counter = Counter(
            'fanpage_service_requests_total',
            'Total number of HTTP requests',
            ['method', 'endpoint', 'status_code'],
            registry=self.registry
        )

        self.request_duration = Histogram(
            'fanpage_service_request_duration_seconds',
            'HTTP request duration in seconds',
            ['method', 'endpoint'],
            registry=self.registry
        )

        # Webhook pipeline metrics
        self.webhook_entries = Counter(
            'fanpage_service_webhook_entries_total',
            'Webhook page entries by outcome',
            ['outcome'],
            registry=self.registry
        )

        self.reconciled_records = Counter(
            'fanpage_service_reconciled_records_total',
            'Records reconciled into the local store',
            ['entity', 'result'],
            registry=self.registry
        )

        # Real-time metrics
        self.realtime_events = Counter(
            'fanpage_service_realtime_events_total',
            'Real-time events emitted',
            ['event', 'delivered'],
            registry=self.registry
        )

        self.active_connections = Gauge(
            'fanpage_service_active_connections',
            'Number of open real-time connections',
            registry=self.registry
        )

        # External service metrics
        self.platform_requests = Counter(
            'fanpage_service_platform_requests_total',
            'Graph API requests',
            ['operation', 'status'],
            registry=self.registry
        )

        self.platform_duration = Histogram(
            'fanpage_service_platform_request_duration_seconds',
            'Graph API request duration',
            ['operation'],
            registry=self.registry
        )

        # Background jobs
        self.credential_refreshes = Counter(
            'fanpage_service_credential_refreshes_total',
            'Credential refresh attempts by outcome',
            ['outcome'],
            registry=self.registry
        )

        self.service_info = Info(
            'fanpage_service_info',
            'Service information',
            registry=self.registry
        )
        self.service_info.info({
            'version': SERVICE_VERSION,
            'service': SERVICE_NAME
        })

    def record_request(
            self,
            method: str,
            endpoint: str,
            status_code: int,
            duration: float
    ) -> None:
        """Record HTTP request metrics."""
        if not self.enabled:
            return
        self.request_counter.labels(
            method=method, endpoint=endpoint, status_code=str(status_code)
        ).inc()
        self.request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def record_webhook_entry(self, outcome: str) -> None:
        """Count one webhook page entry (processed, skipped, failed)."""
        if self.enabled:
            self.webhook_entries.labels(outcome=outcome).inc()

    def record_reconciled(self, entity: str, result: str, count: int = 1) -> None:
        """Count reconciled records (inserted, updated, failed)."""
        if self.enabled and count:
            self.reconciled_records.labels(entity=entity, result=result).inc(count)

    def record_realtime_event(self, event: str, delivered: int) -> None:
        if self.enabled:
            self.realtime_events.labels(
                event=event, delivered="yes" if delivered else "no"
            ).inc()

    def set_active_connections(self, count: int) -> None:
        if self.enabled:
            self.active_connections.set(count)

    def record_credential_refresh(self, outcome: str) -> None:
        if self.enabled:
            self.credential_refreshes.labels(outcome=outcome).inc()

    @contextmanager
    def measure_platform_call(self, operation: str):
        """
        Time a Graph API call and count it by outcome.

        Args:
            operation: Logical operation name (list_posts, send_message, ...)
        """
        start = time.perf_counter()
        status = "success"
        try:
            yield
        except Exception:
            status = "error"
            raise
        finally:
            if self.enabled:
                self.platform_requests.labels(operation=operation, status=status).inc()
                self.platform_duration.labels(operation=operation).observe(
                    time.perf_counter() - start
                )

    def export_prometheus_metrics(self) -> bytes:
        """Render the registry in Prometheus text exposition format."""
        return generate_latest(self.registry)


metrics_collector = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    """Get the process-wide metrics collector."""
    return metrics_collector


def configure_metrics(enabled: Optional[bool] = None) -> MetricsCollector:
    """Toggle recording on the process-wide collector."""
    if enabled is not None:
        metrics_collector.enabled = enabled
        logger.info("Metrics collection configured", enabled=enabled)
    return metrics_collector


__all__ = [
    "MetricsCollector",
    "metrics_collector",
    "get_metrics_collector",
    "configure_metrics",
]

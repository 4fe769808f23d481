"""
Utilities package for Fanpage Service.

Logging setup, Prometheus metrics and date helpers shared across the
service.
"""

from fanpage_service.utils.logger import setup_logging, get_logger, bind_context, clear_context
from fanpage_service.utils.metrics import MetricsCollector, get_metrics_collector, configure_metrics

__all__ = [
    # Logging utilities
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",

    # Metrics
    "MetricsCollector",
    "get_metrics_collector",
    "configure_metrics",
]

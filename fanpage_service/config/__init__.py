"""
Configuration package for Fanpage Service.

This package provides centralized configuration management with
environment-based settings, validation, and constants.
"""

from fanpage_service.config.settings import get_settings, Settings
from fanpage_service.config.constants import (
    SERVICE_NAME,
    API_VERSION,
    API_PREFIX,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    RealtimeEvent,
    ErrorCategory,
)

__all__ = [
    "get_settings",
    "Settings",
    "SERVICE_NAME",
    "API_VERSION",
    "API_PREFIX",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "RealtimeEvent",
    "ErrorCategory",
]

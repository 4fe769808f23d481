"""
Fanpage Service - Facebook fanpage management backend.

This package provides webhook ingestion, lazy synchronization against the
Graph API, and real-time fan-out of page activity to connected dashboards.
"""

__version__ = "1.0.0"
__description__ = "Facebook fanpage management backend - Fanpage Service"

# Package metadata
__title__ = "fanpage-service"

# Semantic version components
VERSION_INFO = (1, 0, 0)

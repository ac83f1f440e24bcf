# src/moderation_appeals/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import appeals_router, queue_router, system_router

__all__ = [
    "appeals_router",
    "queue_router",
    "system_router",
]

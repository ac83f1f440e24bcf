"""Routers grouped by resource."""

from .appeals import router as appeals_router
from .queue import router as queue_router
from .system import router as system_router

__all__ = ["appeals_router", "queue_router", "system_router"]

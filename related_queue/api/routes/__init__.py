"""
API routes module.
"""

from related_queue.api.routes.entries import router as entries_router
from related_queue.api.routes.health import router as health_router

__all__ = ["entries_router", "health_router"]

"""
API module.
Contains FastAPI application, routes, and WebSocket updates.
"""

from related_queue.api.main import create_app, run

__all__ = ["create_app", "run"]

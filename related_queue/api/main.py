"""
FastAPI application entry point.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, WebSocket, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from related_queue import __version__
from related_queue.api.routes import entries_router, health_router
from related_queue.api.websocket import WebSocketManager, websocket_handler
from related_queue.config import get_settings
from related_queue.constants import QueueEvent
from related_queue.core import AutoFlushingQueue, RelatedQueue
from related_queue.exceptions import QueueConfigurationError
from related_queue.observability.logging import setup_logging
from related_queue.observability.metrics import get_metrics, setup_metrics
from related_queue.observability.tracing import instrument_fastapi, setup_tracing
from related_queue.runtime import build_queue
from related_queue.storage.connection import close_db
from related_queue.types.api import ErrorResponse

logger = logging.getLogger(__name__)


def attach_queue(app: FastAPI, queue: RelatedQueue) -> None:
    """
    Make a queue available to the routes and push its completions to WebSockets.

    Args:
        app: The FastAPI application.
        queue: The queue to serve.
    """
    app.state.queue = queue
    app.state.unsubscribe_ws = queue.on(
        QueueEvent.COMPLETED,
        app.state.ws_manager.on_entry_completed,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    setup_logging()
    setup_metrics()
    setup_tracing()

    if getattr(app.state, "queue", None) is None:
        attach_queue(app, await build_queue())

    logger.info("Application started")

    yield

    queue: RelatedQueue = app.state.queue
    if isinstance(queue, AutoFlushingQueue):
        await queue.wait_idle()
    else:
        await queue.wait_for_listeners()

    await close_db()
    logger.info("Application shutdown")


def create_app(queue: RelatedQueue | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        queue: Queue to serve. When omitted, one is built from settings on startup.

    Returns:
        FastAPI: The configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Related Queue API",
        description="Dependency-aware work queue",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.ws_manager = WebSocketManager()
    app.state.flush_lock = asyncio.Lock()
    app.state.queue = None
    if queue is not None:
        attach_queue(app, queue)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def record_request(request: Request, call_next):
        response = await call_next(request)
        route = request.scope.get("route")
        get_metrics().record_api_request(
            method=request.method,
            endpoint=getattr(route, "path", request.url.path),
            status=response.status_code,
        )
        return response

    @app.exception_handler(QueueConfigurationError)
    async def invalid_entry(request: Request, exc: QueueConfigurationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=ErrorResponse(error="invalid_entry", detail=str(exc)).model_dump(),
        )

    app.include_router(health_router)
    app.include_router(entries_router)

    @app.websocket("/ws/entries")
    async def entries_websocket(websocket: WebSocket):
        """
        WebSocket endpoint for real-time completion updates.

        After connecting, clients can subscribe to specific identities.
        """
        await websocket_handler(websocket, app.state.ws_manager)

    if settings.otel_enabled:
        instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    app = create_app()

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    run()

"""
Health check routes.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import Response

from related_queue import __version__
from related_queue.api.dependencies import QueueDep
from related_queue.observability.metrics import get_metrics
from related_queue.types.api import HealthResponse

router = APIRouter(tags=["Health"])


async def _storage_status(queue) -> str:
    try:
        await queue.get("__health__")
    except Exception:
        return "unhealthy"
    return "healthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the API and queue storage.",
)
async def health_check(queue: QueueDep) -> HealthResponse:
    """
    Perform a health check.

    Checks storage connectivity and returns service status.
    """
    storage_status = await _storage_status(queue)

    return HealthResponse(
        status="healthy" if storage_status == "healthy" else "degraded",
        version=__version__,
        storage=storage_status,
        timestamp=datetime.now(timezone.utc),
        last_flushed=queue.last_flushed,
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the service is ready to receive traffic.",
)
async def readiness_check(queue: QueueDep) -> dict:
    """
    Kubernetes readiness probe endpoint.
    """
    return {"ready": await _storage_status(queue) == "healthy"}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    """
    Kubernetes liveness probe endpoint.
    """
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    """
    Expose Prometheus metrics.
    """
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )

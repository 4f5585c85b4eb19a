"""
Health check routes.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from stream_queue import __version__
from stream_queue.backend import LogBackend, get_backend
from stream_queue.observability.metrics import get_metrics
from stream_queue.types.api import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the API and its log backend.",
)
async def health_check(
    backend: LogBackend = Depends(get_backend),
) -> HealthResponse:
    """
    Perform a health check.

    Pings the log backend and returns service status.

    Args:
        backend: Log backend.

    Returns:
        HealthResponse with service status.
    """
    reachable = await backend.ping()

    return HealthResponse(
        status="healthy" if reachable else "degraded",
        version=__version__,
        backend=backend.name,
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the service is ready to receive traffic.",
)
async def readiness_check(
    backend: LogBackend = Depends(get_backend),
) -> dict:
    """Kubernetes readiness check endpoint."""
    return {"ready": await backend.ping()}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    """Kubernetes liveness check endpoint."""
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics.",
)
async def metrics() -> Response:
    """
    Expose Prometheus metrics.

    Returns:
        Prometheus-formatted metrics.
    """
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )

"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stream_queue import __version__
from stream_queue.api.routes import health_router, queue_router
from stream_queue.backend import close_backend, get_backend, init_backend
from stream_queue.config import get_settings
from stream_queue.core.engine import StreamQueue
from stream_queue.errors import AckFailed, BackendUnavailable, MalformedRecord
from stream_queue.observability.logging import setup_logging
from stream_queue.observability.metrics import setup_metrics
from stream_queue.observability.tracing import instrument_fastapi, setup_tracing
from stream_queue.types.api import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    setup_logging()
    setup_metrics()
    setup_tracing()
    await init_backend()
    await StreamQueue.from_settings(get_backend()).initialize()

    logger.info("Application started")

    yield

    # Shutdown
    await close_backend()
    logger.info("Application shutdown")


def _error_response(status_code: int, error: str, detail: str, entry_id: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail, entry_id=entry_id)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def malformed_record_handler(request: Request, exc: MalformedRecord) -> JSONResponse:
    return _error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "malformed_record",
        exc.reason,
        exc.entry_id,
    )


async def ack_failed_handler(request: Request, exc: AckFailed) -> JSONResponse:
    return _error_response(
        status.HTTP_409_CONFLICT,
        "ack_failed",
        str(exc),
        exc.entry_id,
    )


async def backend_unavailable_handler(request: Request, exc: BackendUnavailable) -> JSONResponse:
    logger.error(f"Backend unavailable: {exc}", extra={"path": request.url.path})
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "backend_unavailable",
        str(exc),
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured application instance.
    """
    app = FastAPI(
        title="Stream Queue API",
        description="Work queue on Redis Streams consumer groups",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Map queue errors to HTTP responses
    app.add_exception_handler(MalformedRecord, malformed_record_handler)
    app.add_exception_handler(AckFailed, ack_failed_handler)
    app.add_exception_handler(BackendUnavailable, backend_unavailable_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(queue_router)

    # Instrument with OpenTelemetry
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

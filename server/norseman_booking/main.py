"""FastAPI application initialization and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.database import close_db, engine, init_db
from .core.dependencies import get_notifier
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
    request_validation_handler,
)
from .core.middleware import setup_middleware
from .core.observability import (
    SERVICE_VERSION,
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_metrics,
    setup_structured_logging,
    setup_tracing,
)
from .routers import bookings, cron, health, metrics, tours, waitlist, webhooks
from .workers.manager import WorkerManager

setup_structured_logging()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Sets up tracing, creates missing tables and starts enabled workers;
    shuts them down again on exit.
    """
    logger.info(
        "Starting booking service",
        extra={"environment": settings.environment, "debug": settings.debug},
    )

    setup_tracing()
    setup_metrics()
    instrument_sqlalchemy(engine)

    await init_db()
    logger.info("Database initialized")

    worker_manager = WorkerManager(settings, get_notifier())
    app.state.worker_manager = worker_manager
    await worker_manager.start_all()

    yield

    logger.info("Shutting down booking service")
    try:
        await worker_manager.stop_all()
    finally:
        await close_db()

    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title="Norseman Booking API",
        description="Seat availability, bookings, waitlists and payment confirmation for Norseman tours",
        version=SERVICE_VERSION,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "traceparent", "tracestate"],
    )

    setup_middleware(app, enable_logging=True)

    instrument_fastapi(app)

    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(tours.router)
    app.include_router(tours.admin_router)
    app.include_router(bookings.router)
    app.include_router(bookings.admin_router)
    app.include_router(waitlist.router)
    app.include_router(webhooks.router)
    app.include_router(cron.router)

    logger.info("FastAPI application created and configured")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "norseman_booking.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=False,
    )

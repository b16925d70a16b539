"""Service probes."""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ..core.config import settings
from ..core.database import check_db, utcnow
from ..core.observability import SERVICE_NAME, SERVICE_VERSION
from ..schemas.health import HealthResponse, HealthStatus, ReadinessResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse, summary="Health Check")
async def health_check() -> JSONResponse:
    """Liveness probe; does not touch the database."""
    response = HealthResponse(status=HealthStatus.HEALTHY, timestamp=utcnow(), version=SERVICE_VERSION)
    return JSONResponse(status_code=status.HTTP_200_OK, content=response.model_dump(mode="json"))


@router.get("/ready", response_model=ReadinessResponse, summary="Readiness Check")
async def readiness_check() -> JSONResponse:
    """
    Readiness probe.

    Reports 503 while the booking store cannot be reached.
    """
    try:
        await check_db()
        checks = {"database": "ok"}
        health = HealthStatus.HEALTHY
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Readiness check failed", extra={"error": str(e)})
        checks = {"database": "unavailable"}
        health = HealthStatus.UNHEALTHY

    response = ReadinessResponse(status=health, timestamp=utcnow(), version=SERVICE_VERSION, checks=checks)
    status_code = status.HTTP_200_OK if health == HealthStatus.HEALTHY else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"))


@router.get("/info", tags=["Info"], summary="Service Information", response_model=dict)
async def service_info():
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": "Seat availability, bookings and waitlists for Norseman tours",
        "environment": settings.environment,
        "debug": settings.debug,
        "features": {
            "waitlist_promotion": True,
            "expiry_sweep_worker": settings.sweep_worker_enabled,
            "email": bool(settings.resend_api_key),
            "payment_provider": bool(settings.letsreg_base_url),
            "tracing": bool(settings.otlp_endpoint),
        },
        "endpoints": {
            "health": "/health",
            "readiness": "/ready",
            "metrics": "/metrics",
            "docs": "/docs" if settings.debug else None,
        },
    }

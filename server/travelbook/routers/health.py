"""Liveness, readiness and service information endpoints."""

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter

from ..core.config import settings
from ..core.database import ping_db
from ..core.observability import SERVICE_NAME, SERVICE_VERSION
from ..schemas.health import HealthResponse, HealthStatus, ReadinessResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health Check")
async def health_check() -> dict[str, Any]:
    """Report that the process is up; touches no dependencies."""
    return {
        "status": HealthStatus.HEALTHY.value,
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "environment": settings.environment,
        "debug": settings.debug,
    }


@router.get("/ready", response_model=ReadinessResponse, summary="Readiness Check")
async def readiness_check() -> ReadinessResponse:
    """
    Check that the database answers `SELECT 1`.

    Always returns 200; a failing database is reported as `degraded`.
    """
    checks = {"database": "ok"}
    try:
        await ping_db()
    except Exception as e:
        logger.warning("Readiness check failed", extra={"error": str(e)})
        checks["database"] = "unavailable"

    ready = all(result == "ok" for result in checks.values())
    return ReadinessResponse(
        status=HealthStatus.READY if ready else HealthStatus.DEGRADED,
        service=SERVICE_NAME,
        checks=checks,
    )


@router.get("/info", summary="Service Information")
async def service_info() -> dict[str, Any]:
    """Describe the service, its enabled features and its API roots."""
    docs_enabled = settings.debug
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": "Travel package booking API",
        "environment": settings.environment,
        "debug": settings.debug,
        "features": {
            "authentication": True,
            "google_sign_in": bool(settings.google_client_id),
            "admin_registration": settings.allow_admin_registration,
            "uploads": True,
            "tracing": True,
            "problem_details": True,
        },
        "endpoints": {
            "health": "/health",
            "readiness": "/ready",
            "info": "/info",
            "metrics": "/metrics",
            "auth": "/api/auth",
            "packages": "/api/packages",
            "bookings": "/api/booking",
            "uploads": "/upload",
            "docs": "/docs" if docs_enabled else None,
        },
    }


@router.post("/v1/health/ping", response_model=HealthResponse)
async def health_ping() -> HealthResponse:
    """RPC-style ping returning the service status and server time."""
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY,
        service=SERVICE_NAME,
        timestamp=datetime.utcnow(),
        version=SERVICE_VERSION,
    )

    logger.debug("Health ping", extra={"timestamp": response_data.timestamp.isoformat()})

    return response_data

"""
Health Check Routes
===================

Kubernetes-compatible health and readiness endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from api import __version__
from api.schemas import HealthResponse, HealthStatus, ReadinessResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the service",
)
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint for load balancers and monitoring.

    The audit directory must be writable; without it no query can be
    recorded, so the service reports itself degraded.
    """
    checks = {
        "api": True,
        "audit_writable": request.app.state.audit_trail.is_writable(),
    }

    all_healthy = all(checks.values())
    status = HealthStatus.HEALTHY if all_healthy else HealthStatus.DEGRADED

    return HealthResponse(
        status=status,
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Returns whether the service is ready to handle requests",
)
async def readiness_check(request: Request) -> ReadinessResponse:
    """
    Readiness check for Kubernetes.

    Used to determine if the pod should receive traffic.
    """
    state = request.app.state
    checks = {
        "pipeline_configured": getattr(state, "pipeline", None) is not None,
        "data_source_configured": getattr(state, "data_source", None) is not None,
    }

    return ReadinessResponse(
        ready=all(checks.values()),
        checks=checks,
    )


@router.get(
    "/live",
    summary="Liveness check",
    description="Simple liveness probe",
)
async def liveness_check() -> dict:
    """Liveness check for Kubernetes."""
    return {"status": "ok"}

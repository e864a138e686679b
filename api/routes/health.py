"""
Health Check Routes
===================

Health, readiness and liveness probes. Readiness also pings the database
through the shared connection pool.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response

from api import __version__
from api.schemas import HealthResponse, HealthStatus, ReadinessResponse

router = APIRouter(tags=["Health"])


def _configured(request: Request) -> dict[str, bool]:
    state = request.app.state
    return {
        "pipeline": getattr(state, "pipeline", None) is not None,
        "database_pool": getattr(state, "pool", None) is not None,
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Reports whether the pipeline and the database pool are configured",
)
async def health_check(request: Request) -> HealthResponse:
    """
    Component status for load balancers and monitoring.

    Returns:
        HealthResponse; degraded when the pool is missing
    """
    checks = {"api": True, **_configured(request)}

    if all(checks.values()):
        status = HealthStatus.HEALTHY
    elif checks["pipeline"]:
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.UNHEALTHY

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
    description="Ready once the pipeline is built and the database answers",
)
async def readiness_check(request: Request, response: Response) -> ReadinessResponse:
    """
    Readiness check for Kubernetes.

    The pod only receives traffic once the pipeline is built and the
    database answers a ping.

    Returns:
        ReadinessResponse indicating readiness status (503 when not ready)
    """
    checks = _configured(request)
    pool = getattr(request.app.state, "pool", None)
    checks["database"] = pool is not None and await pool.ping()

    ready = all(checks.values())
    if not ready:
        response.status_code = 503

    return ReadinessResponse(ready=ready, checks=checks)


@router.get(
    "/live",
    summary="Liveness check",
    description="Process liveness only; touches no dependency",
)
async def liveness_check() -> dict:
    """
    Liveness check for Kubernetes.

    Returns:
        Simple OK response
    """
    return {"status": "ok"}

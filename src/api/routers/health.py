"""Health check API routes."""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from src.jobs.scheduler import get_scheduler
from src.shared.database import check_db_health
from src.shared.feature_flags import is_database_persistence_enabled
from src.shared.service_registry import get_practice_service

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(
        ...,
        description="Overall health status",
    )
    version: str = Field(
        default="1.0.0",
        description="API version",
    )
    active_sessions: int = Field(
        default=0,
        description="Practice sessions currently held in memory",
    )


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    status: str = Field(
        ...,
        description="Overall readiness status",
    )
    database: str = Field(
        ...,
        description="Database status ('disabled' when running in memory)",
    )
    scheduler: str = Field(
        ...,
        description="Tick scheduler status",
    )


@router.get(
    "",
    response_model=HealthResponse,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Basic health check."""
    return HealthResponse(
        status="healthy",
        active_sessions=get_practice_service().active_session_count,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Check if the service is ready to accept traffic.",
)
async def readiness_check() -> ReadinessResponse:
    """Readiness check with dependency verification."""
    db_status = "disabled"
    if is_database_persistence_enabled():
        healthy = await check_db_health(max_retries=1)
        db_status = "healthy" if healthy else "unhealthy"

    scheduler = get_scheduler()
    if not scheduler.enabled:
        scheduler_status = "disabled"
    else:
        scheduler_status = "running" if scheduler.is_running else "stopped"

    ready = db_status != "unhealthy" and scheduler_status != "stopped"
    return ReadinessResponse(
        status="ready" if ready else "not_ready",
        database=db_status,
        scheduler=scheduler_status,
    )


@router.get(
    "/live",
    summary="Liveness check",
)
async def liveness_check() -> dict[str, str]:
    """Always returns alive if the endpoint is reachable."""
    return {"status": "alive"}

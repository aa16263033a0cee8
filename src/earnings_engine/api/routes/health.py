"""Health, readiness and liveness endpoints."""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from earnings_engine import __version__
from earnings_engine.api.dependencies import AppSettings, Cache, DbSession, Scheduler

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    database: str
    scheduler: str
    cached_breakdowns: int


class ReadinessResponse(BaseModel):
    """Readiness verdict with the result of each check."""

    status: str
    checks: dict[str, bool]


class LivenessResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


async def _database_reachable(db: AsyncSession) -> bool:
    try:
        await db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database health check failed")
        return False
    return True


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(db: DbSession, cache: Cache, scheduler: Scheduler) -> HealthResponse:
    """Report database, scheduler and cache state. Always answers 200."""
    db_ok = await _database_reachable(db)

    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        timestamp=datetime.now(timezone.utc),
        database="healthy" if db_ok else "unhealthy",
        scheduler="running" if scheduler.running else "stopped",
        cached_breakdowns=len(cache),
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
)
async def readiness_check(
    response: Response,
    db: DbSession,
    settings: AppSettings,
    cache: Cache,
    scheduler: Scheduler,
) -> ReadinessResponse:
    """Ready once the database answers and the background tasks are up.

    The scheduler only counts when it is enabled.
    """
    checks = {
        "database": await _database_reachable(db),
        "cache_sweeper": cache.sweeping,
    }
    if settings.scheduler_enabled:
        checks["scheduler"] = scheduler.running

    if all(checks.values()):
        return ReadinessResponse(status="ready", checks=checks)

    logger.warning(
        "Not ready: %s", ", ".join(name for name, ok in checks.items() if not ok)
    )
    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(status="not_ready", checks=checks)


@router.get("/live", response_model=LivenessResponse)
async def liveness_check(request: Request) -> LivenessResponse:
    """Process liveness; never touches the database."""
    return LivenessResponse(
        status="alive",
        version=__version__,
        uptime_seconds=round(time.monotonic() - request.app.state.started_at, 3),
    )

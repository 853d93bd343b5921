"""Health check endpoints."""

from datetime import datetime, timedelta, timezone

import redis.asyncio as redis
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from valueengine import __version__
from valueengine.api.dependencies import get_db, get_redis
from valueengine.config import get_settings
from valueengine.models.domain import ModelRun

router = APIRouter(tags=["health"])

# A completed run older than this many beat intervals is reported as stale
STALE_RUN_INTERVALS = 3


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: datetime


class ReadyCheck(BaseModel):
    """Individual readiness check."""

    status: str
    message: str | None = None


class ReadyResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    checks: dict[str, ReadyCheck]


@router.get("/health", response_model=HealthResponse)
async def health():
    """Liveness check."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
    )


async def _last_run_check(db: AsyncSession) -> ReadyCheck:
    """Warn when the newest run is unfinished or the last completed run is old."""
    latest = await db.scalar(select(ModelRun).order_by(ModelRun.started_at.desc()).limit(1))
    if latest is None:
        return ReadyCheck(status="warning", message="No model runs yet")
    if latest.finished_at is None:
        return ReadyCheck(
            status="warning",
            message=f"Run {latest.id} started {latest.started_at.isoformat()} has not finished",
        )

    finished_at = latest.finished_at
    if finished_at.tzinfo is None:
        finished_at = finished_at.replace(tzinfo=timezone.utc)
    max_age = timedelta(seconds=get_settings().run_interval_seconds * STALE_RUN_INTERVALS)
    if datetime.now(timezone.utc) - finished_at > max_age:
        return ReadyCheck(
            status="warning",
            message=f"Last completed run {latest.id} finished {finished_at.isoformat()}",
        )
    return ReadyCheck(status="ok", message=f"Run {latest.id}")


@router.get("/ready", response_model=ReadyResponse)
async def ready(
    db: AsyncSession = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis),
):
    """
    Readiness check.

    Database and broker failures mark the service not ready. A missing or
    stale model run is only a warning.
    """
    checks = {}
    all_ready = True

    try:
        await db.execute(text("SELECT 1"))
        checks["db"] = ReadyCheck(status="ok")
    except Exception as e:
        checks["db"] = ReadyCheck(status="error", message=str(e))
        all_ready = False

    if all_ready:
        checks["last_run"] = await _last_run_check(db)

    try:
        await redis_client.ping()
        checks["broker"] = ReadyCheck(status="ok")
    except Exception as e:
        checks["broker"] = ReadyCheck(status="error", message=str(e))
        all_ready = False

    return ReadyResponse(ready=all_ready, checks=checks)

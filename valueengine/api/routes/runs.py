"""Model run API endpoints."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from valueengine.api.dependencies import get_db
from valueengine.models.domain import BetRecommendation, ModelRun

router = APIRouter(prefix="/api/runs", tags=["runs"])


class RunItem(BaseModel):
    """Model run summary. finished_at is null for runs that did not complete."""

    id: int
    model_name: str
    run_type: str
    started_at: datetime
    finished_at: datetime | None
    completed: bool
    parameters: dict[str, Any] | None = None


class RunDetail(RunItem):
    """Model run with its recommendation counts."""

    recommendations: int
    active_recommendations: int


def _run_item(run: ModelRun) -> dict[str, Any]:
    return {
        "id": run.id,
        "model_name": run.model_name,
        "run_type": run.run_type,
        "started_at": run.started_at,
        "finished_at": run.finished_at,
        "completed": run.finished_at is not None,
        "parameters": run.parameters,
    }


@router.get("", response_model=list[RunItem])
async def list_runs(
    db: AsyncSession = Depends(get_db),
    model_name: str | None = Query(None),
    limit: int = Query(20, ge=1, le=200),
):
    """Most recent model runs first."""
    query = select(ModelRun)
    if model_name:
        query = query.where(ModelRun.model_name == model_name)
    query = query.order_by(ModelRun.started_at.desc()).limit(limit)

    result = await db.execute(query)
    return [RunItem(**_run_item(run)) for run in result.scalars().all()]


@router.get("/{run_id}", response_model=RunDetail)
async def get_run(run_id: int, db: AsyncSession = Depends(get_db)):
    """Single model run with recommendation counts."""
    run = await db.get(ModelRun, run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")

    counts = await db.execute(
        select(
            func.count(BetRecommendation.id).label("total"),
            func.count(BetRecommendation.id)
            .filter(BetRecommendation.is_active.is_(True))
            .label("active"),
        ).where(BetRecommendation.run_id == run_id)
    )
    row = counts.one()

    return RunDetail(
        **_run_item(run),
        recommendations=row.total or 0,
        active_recommendations=row.active or 0,
    )

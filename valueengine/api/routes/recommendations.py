"""Bet recommendation API endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from valueengine.api.dependencies import get_db
from valueengine.models.domain import BetRecommendation, MarketType, OddsProvider
from valueengine.services.pricing.edge import RiskLevel

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


class RecommendationItem(BaseModel):
    """Recommendation item in list response."""

    id: int
    run_id: int
    game_id: int
    provider_id: int
    provider_name: str
    market_type: str
    outcome: str
    american_odds: int
    implied_probability: float
    model_probability: float
    edge: float
    risk_level: str
    created_at: datetime
    is_active: bool


class RecommendationListResponse(BaseModel):
    """Recommendation list response."""

    items: list[RecommendationItem]
    total: int


@router.get("", response_model=RecommendationListResponse)
async def list_recommendations(
    db: AsyncSession = Depends(get_db),
    risk_level: RiskLevel | None = Query(None, description="Filter by risk tier"),
    game_id: int | None = Query(None),
    provider_id: int | None = Query(None),
    include_inactive: bool = Query(False, description="Include superseded rows"),
    limit: int = Query(100, ge=1, le=500),
):
    """
    List recommendations, best edge first.

    Only the active batch is returned unless include_inactive is set.
    """
    query = (
        select(BetRecommendation, OddsProvider, MarketType)
        .join(OddsProvider, BetRecommendation.provider_id == OddsProvider.id)
        .join(MarketType, BetRecommendation.market_type_id == MarketType.id)
    )

    if not include_inactive:
        query = query.where(BetRecommendation.is_active.is_(True))
    if risk_level:
        query = query.where(BetRecommendation.risk_level == risk_level.value)
    if game_id is not None:
        query = query.where(BetRecommendation.game_id == game_id)
    if provider_id is not None:
        query = query.where(BetRecommendation.provider_id == provider_id)

    query = query.order_by(BetRecommendation.edge.desc()).limit(limit)

    result = await db.execute(query)
    rows = result.all()

    items = [
        RecommendationItem(
            id=rec.id,
            run_id=rec.run_id,
            game_id=rec.game_id,
            provider_id=provider.id,
            provider_name=provider.name,
            market_type=market_type.code,
            outcome=rec.outcome,
            american_odds=rec.american_odds,
            implied_probability=float(rec.implied_probability),
            model_probability=float(rec.model_probability),
            edge=float(rec.edge),
            risk_level=rec.risk_level,
            created_at=rec.created_at,
            is_active=rec.is_active,
        )
        for rec, provider, market_type in rows
    ]

    return RecommendationListResponse(items=items, total=len(items))


@router.get("/stats")
async def recommendation_stats(
    db: AsyncSession = Depends(get_db),
):
    """Count of active recommendations per risk tier."""
    result = await db.execute(
        select(
            BetRecommendation.risk_level,
            func.count(BetRecommendation.id).label("count"),
        )
        .where(BetRecommendation.is_active.is_(True))
        .group_by(BetRecommendation.risk_level)
    )
    by_risk = {row.risk_level: row.count for row in result.all()}

    return {
        "total_active": sum(by_risk.values()),
        "by_risk_level": {level.value: by_risk.get(level.value, 0) for level in RiskLevel},
    }

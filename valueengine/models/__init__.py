"""Database models for the value engine."""

from valueengine.models.base import (
    Base,
    async_session_factory,
    engine,
    get_task_session,
    init_models,
)
from valueengine.models.domain import (
    BetRecommendation,
    Game,
    League,
    MarketType,
    ModelPrediction,
    ModelRun,
    OddsProvider,
    OddsSnapshot,
    PredictiveModel,
    Team,
    TeamRating,
)

__all__ = [
    # Base
    "Base",
    "engine",
    "async_session_factory",
    "get_task_session",
    "init_models",
    # Reference data
    "League",
    "MarketType",
    "OddsProvider",
    "Team",
    "TeamRating",
    "Game",
    "OddsSnapshot",
    # Engine output
    "PredictiveModel",
    "ModelRun",
    "ModelPrediction",
    "BetRecommendation",
]

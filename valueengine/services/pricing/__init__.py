"""Pricing module: probability models, edge and risk tiers."""

from valueengine.services.pricing.edge import (
    RiskLevel,
    classify_risk,
    compute_edge,
    score_quote,
)
from valueengine.services.pricing.models import (
    EloRatingModel,
    MarketConsensusModel,
    ProbabilityModel,
    build_model,
)

__all__ = [
    "EloRatingModel",
    "MarketConsensusModel",
    "ProbabilityModel",
    "RiskLevel",
    "build_model",
    "classify_risk",
    "compute_edge",
    "score_quote",
]

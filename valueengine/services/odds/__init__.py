"""Odds conversion and snapshot resolution."""

from valueengine.services.odds.conversion import (
    american_to_decimal,
    decimal_to_american,
    implied_probability,
)

__all__ = ["american_to_decimal", "decimal_to_american", "implied_probability"]

"""Odds conversion between American and decimal quoting.

All functions are pure and work on Decimal so that round trips are exact
for positive American odds and stable under half-away-from-zero rounding
for negative ones.

    american_to_decimal(+150) -> 2.5
    american_to_decimal(-200) -> 1.5
    decimal_to_american(1.5)  -> -200
"""

from decimal import ROUND_HALF_UP, Decimal

from valueengine.exceptions import InvalidOdds

ONE = Decimal(1)
HUNDRED = Decimal(100)

# American odds never have a magnitude below 100; smaller values are feed errors
MIN_AMERICAN_MAGNITUDE = 100


def _round_away_from_zero(value: Decimal) -> int:
    # ROUND_HALF_UP in the decimal module rounds ties away from zero
    return int(value.quantize(ONE, rounding=ROUND_HALF_UP))


def american_to_decimal(american: int) -> Decimal:
    """
    Convert American odds to decimal odds.

    Args:
        american: Signed American odds (+150, -200).

    Returns:
        Decimal odds, always >= 2 for positive odds and in (1, 2] for
        negative odds.

    Raises:
        InvalidOdds: For 0 or any magnitude below 100.
    """
    if american == 0 or abs(american) < MIN_AMERICAN_MAGNITUDE:
        raise InvalidOdds(f"Invalid American odds {american!r}: magnitude must be >= 100")

    if american > 0:
        return ONE + Decimal(american) / HUNDRED
    return ONE + HUNDRED / Decimal(abs(american))


def decimal_to_american(decimal_odds: Decimal | int | str) -> int:
    """
    Convert decimal odds to American odds.

    Returns 0 for decimal_odds <= 1. That value is not a price and callers
    must treat it as "no valid odds".

    Even money (2.0) converts to +100, so -100 does not survive a round trip
    but maps to the same price.
    """
    value = Decimal(decimal_odds)
    if value <= ONE:
        return 0
    if value >= 2:
        return _round_away_from_zero((value - ONE) * HUNDRED)
    return _round_away_from_zero(-HUNDRED / (value - ONE))


def implied_probability(decimal_odds: Decimal) -> Decimal:
    """Implied probability 1/decimal, with no margin adjustment."""
    if decimal_odds <= ONE:
        raise InvalidOdds(f"Decimal odds {decimal_odds} must be greater than 1")
    return ONE / decimal_odds

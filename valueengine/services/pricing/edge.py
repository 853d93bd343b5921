"""Edge and risk tier calculation."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from valueengine.exceptions import InvalidOdds
from valueengine.services.odds.conversion import implied_probability
from valueengine.services.types import FairPrice, Recommendation, ResolvedQuote

ONE = Decimal(1)

# Lower bound of each tier, inclusive
HIGH_EDGE = Decimal("0.06")
MEDIUM_EDGE = Decimal("0.03")
LOW_EDGE = Decimal("0.01")


class RiskLevel(str, Enum):
    """Risk tier of a recommendation."""
    HIGH = "High"           # edge >= 6%
    MEDIUM = "Medium"       # 3% <= edge < 6%
    LOW = "Low"             # 1% <= edge < 3%
    NEGATIVE = "Negative"   # below 1%, including negative edge


def compute_edge(book_decimal: Decimal, fair_decimal: Decimal) -> Decimal:
    """
    Relative edge of a book price over the fair price.

    edge = book_decimal / fair_decimal - 1

    Raises:
        InvalidOdds: Unless both prices are greater than 1.
    """
    if book_decimal <= ONE or fair_decimal <= ONE:
        raise InvalidOdds(
            f"Cannot compute edge for book {book_decimal} vs fair {fair_decimal}"
        )
    return Decimal(book_decimal) / Decimal(fair_decimal) - ONE


def classify_risk(edge: Decimal) -> RiskLevel:
    """Map an edge onto its risk tier."""
    if edge >= HIGH_EDGE:
        return RiskLevel.HIGH
    if edge >= MEDIUM_EDGE:
        return RiskLevel.MEDIUM
    if edge >= LOW_EDGE:
        return RiskLevel.LOW
    return RiskLevel.NEGATIVE


def score_quote(
    *,
    run_id: int,
    provider_id: int,
    quote: ResolvedQuote,
    fair_price: FairPrice,
    market_type_code: str,
    created_at: datetime,
) -> Recommendation:
    """
    Score one provider quote against its fair price.

    Raises:
        InvalidOdds: If the quote or the fair price is not a usable price.
    """
    book_decimal = quote.price()
    american = quote.american()
    edge = compute_edge(book_decimal, fair_price.decimal_odds)

    return Recommendation(
        run_id=run_id,
        game_id=fair_price.game_id,
        provider_id=provider_id,
        outcome=fair_price.outcome,
        market_type_code=market_type_code,
        american_odds=american,
        implied_probability=implied_probability(book_decimal),
        model_probability=fair_price.probability,
        edge=edge,
        risk_level=classify_risk(edge).value,
        created_at=created_at,
    )

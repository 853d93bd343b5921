"""Unit tests for edge calculation and risk tiers."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from valueengine.exceptions import InvalidOdds
from valueengine.services.pricing.edge import (
    RiskLevel,
    classify_risk,
    compute_edge,
    score_quote,
)
from valueengine.services.types import FairPrice, OddsObservation, ResolvedQuote

T0 = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def quote(american=None, decimal_odds=None):
    return ResolvedQuote(
        OddsObservation(
            id=1,
            provider_id=3,
            game_id=42,
            outcome="HOME",
            snapshot_time=T0,
            american_odds=american,
            decimal_odds=Decimal(decimal_odds) if decimal_odds else None,
        )
    )


class TestClassifyRisk:
    """Test risk tier boundaries."""

    @pytest.mark.parametrize(
        "edge,expected",
        [
            ("0.06", RiskLevel.HIGH),
            ("0.25", RiskLevel.HIGH),
            ("0.0599999", RiskLevel.MEDIUM),
            ("0.03", RiskLevel.MEDIUM),
            ("0.0299999", RiskLevel.LOW),
            ("0.01", RiskLevel.LOW),
            ("0.0099999", RiskLevel.NEGATIVE),
            ("0", RiskLevel.NEGATIVE),
            ("-0.5", RiskLevel.NEGATIVE),
        ],
    )
    def test_tier_boundaries(self, edge, expected):
        assert classify_risk(Decimal(edge)) == expected

    def test_stored_labels(self):
        assert [level.value for level in RiskLevel] == ["High", "Medium", "Low", "Negative"]


class TestComputeEdge:
    """Test compute_edge."""

    def test_positive_edge(self):
        assert compute_edge(Decimal("2.2"), Decimal("2.0")) == Decimal("0.1")

    def test_zero_edge_when_prices_match(self):
        assert compute_edge(Decimal("1.8"), Decimal("1.8")) == 0

    def test_negative_edge(self):
        edge = compute_edge(Decimal("1.8"), Decimal("2.0"))
        assert edge == Decimal("-0.1")

    @pytest.mark.parametrize("book,fair", [("1.0", "2.0"), ("2.0", "1.0"), ("0.5", "0.5")])
    def test_non_prices_rejected(self, book, fair):
        with pytest.raises(InvalidOdds):
            compute_edge(Decimal(book), Decimal(fair))


class TestScoreQuote:
    """Test scoring a provider quote against a fair price."""

    def score(self, q, fair_decimal, probability=None):
        fair = FairPrice(
            game_id=42,
            outcome="HOME",
            probability=probability or Decimal(1) / Decimal(fair_decimal),
            decimal_odds=Decimal(fair_decimal),
        )
        return score_quote(
            run_id=7,
            provider_id=3,
            quote=q,
            fair_price=fair,
            market_type_code="MONEYLINE",
            created_at=T0,
        )

    def test_recommendation_fields(self):
        rec = self.score(quote(american=120), "2.0")

        assert rec.run_id == 7
        assert rec.game_id == 42
        assert rec.provider_id == 3
        assert rec.outcome == "HOME"
        assert rec.market_type_code == "MONEYLINE"
        assert rec.american_odds == 120
        assert rec.implied_probability == Decimal(1) / Decimal("2.2")
        assert rec.model_probability == Decimal("0.5")
        assert rec.edge == Decimal("0.1")
        assert rec.risk_level == "High"
        assert rec.created_at == T0
        assert rec.is_active is True
        assert rec.stake_fraction is None

    def test_edge_matches_stored_prices(self):
        rec = self.score(quote(american=-105), "1.9")

        book_decimal = Decimal(1) / rec.implied_probability
        assert abs(rec.edge - (book_decimal / Decimal("1.9") - 1)) < Decimal("1e-20")

    def test_american_derived_from_decimal_quote(self):
        rec = self.score(quote(decimal_odds="2.5"), "2.4")
        assert rec.american_odds == 150

    def test_invalid_quote_rejected(self):
        with pytest.raises(InvalidOdds):
            self.score(quote(american=40), "2.0")

    def test_quote_without_odds_rejected(self):
        with pytest.raises(InvalidOdds):
            self.score(quote(), "2.0")

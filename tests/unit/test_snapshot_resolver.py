"""Unit tests for the snapshot resolver."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from valueengine.exceptions import InvalidOdds
from valueengine.services.odds.resolver import group_by_game, resolve_latest, resolve_lines
from valueengine.services.types import OddsObservation, ResolvedQuote

T0 = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def obs(id, game_id=1, provider_id=1, outcome="HOME", minutes=0, american=None, decimal_odds=None):
    return OddsObservation(
        id=id,
        provider_id=provider_id,
        game_id=game_id,
        outcome=outcome,
        snapshot_time=T0 + timedelta(minutes=minutes),
        american_odds=american,
        decimal_odds=Decimal(decimal_odds) if decimal_odds else None,
    )


class TestResolveLatest:
    """Test latest-observation selection."""

    def test_selects_most_recent_snapshot(self):
        t1 = obs(1, minutes=0, american=-110)
        t2 = obs(2, minutes=5, american=-115)
        t3 = obs(3, minutes=10, american=-120)

        latest = resolve_latest([t2, t3, t1])

        assert latest == {(1, 1, "HOME"): t3}

    def test_order_of_input_does_not_matter(self):
        observations = [obs(i, minutes=i) for i in range(1, 6)]
        assert resolve_latest(observations) == resolve_latest(reversed(observations))

    def test_tie_broken_by_highest_id(self):
        first = obs(7, minutes=5, american=120)
        second = obs(9, minutes=5, american=125)

        assert resolve_latest([second, first])[(1, 1, "HOME")] is second
        assert resolve_latest([first, second])[(1, 1, "HOME")] is second

    def test_keys_are_per_game_provider_outcome(self):
        observations = [
            obs(1, provider_id=1, outcome="HOME"),
            obs(2, provider_id=1, outcome="AWAY"),
            obs(3, provider_id=2, outcome="HOME"),
            obs(4, game_id=2, provider_id=1, outcome="HOME"),
        ]
        assert len(resolve_latest(observations)) == 4

    def test_empty_input(self):
        assert resolve_latest([]) == {}


class TestGroupByGame:
    """Test grouping resolved quotes into lines."""

    def test_groups_lines_by_game_and_provider(self):
        latest = resolve_latest(
            [
                obs(1, game_id=1, provider_id=2, outcome="HOME"),
                obs(2, game_id=1, provider_id=1, outcome="HOME"),
                obs(3, game_id=1, provider_id=1, outcome="AWAY"),
                obs(4, game_id=2, provider_id=3, outcome="AWAY"),
            ]
        )

        grouped = group_by_game(latest)

        assert list(grouped) == [1, 2]
        assert [line.provider_id for line in grouped[1]] == [1, 2]
        assert set(grouped[1][0].quotes) == {"HOME", "AWAY"}
        assert set(grouped[1][1].quotes) == {"HOME"}

    def test_provider_missing_a_side_is_absent_for_that_side(self):
        grouped = resolve_lines([obs(1, provider_id=1, outcome="AWAY")])
        assert "HOME" not in grouped[1][0].quotes

    def test_single_provider_game_is_kept(self):
        grouped = resolve_lines([obs(1), obs(2, outcome="AWAY")])
        assert len(grouped[1]) == 1

    def test_resolve_lines_uses_latest_quote(self):
        grouped = resolve_lines(
            [obs(1, minutes=0, american=-110), obs(2, minutes=30, american=+105)]
        )
        quote = grouped[1][0].quotes["HOME"]
        assert quote.observation.id == 2
        assert quote.american() == 105


class TestResolvedQuote:
    """Test price extraction from a resolved quote."""

    def test_prefers_decimal_odds(self):
        quote = ResolvedQuote(obs(1, american=150, decimal_odds="2.45"))
        assert quote.price() == Decimal("2.45")
        assert quote.american() == 150

    def test_converts_american_when_no_decimal(self):
        assert ResolvedQuote(obs(1, american=-200)).price() == Decimal("1.5")

    def test_derives_american_from_decimal(self):
        assert ResolvedQuote(obs(1, decimal_odds="1.5")).american() == -200

    def test_no_odds_is_invalid(self):
        with pytest.raises(InvalidOdds):
            ResolvedQuote(obs(1)).price()

    def test_decimal_at_or_below_one_is_invalid(self):
        quote = ResolvedQuote(obs(1, decimal_odds="1.0"))
        with pytest.raises(InvalidOdds):
            quote.price()
        with pytest.raises(InvalidOdds):
            quote.american()

    def test_out_of_range_american_is_invalid(self):
        with pytest.raises(InvalidOdds):
            ResolvedQuote(obs(1, american=50)).american()

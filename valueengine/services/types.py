"""Value objects passed between the engine stages."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from valueengine.exceptions import InvalidOdds, NoMarketToCompare, UnsupportedOutcome
from valueengine.services.odds.conversion import american_to_decimal, decimal_to_american

HOME = "HOME"
AWAY = "AWAY"


@dataclass(frozen=True)
class OddsObservation:
    """One provider quote for one outcome of a game at a point in time."""

    id: int
    provider_id: int
    game_id: int
    outcome: str
    snapshot_time: datetime
    american_odds: int | None = None
    decimal_odds: Decimal | None = None


@dataclass(frozen=True)
class ResolvedQuote:
    """Latest observation for a (game, provider, outcome)."""

    observation: OddsObservation

    def price(self) -> Decimal:
        """Decimal odds, converted from American when only American is quoted."""
        obs = self.observation
        if obs.decimal_odds is not None:
            if obs.decimal_odds <= 1:
                raise InvalidOdds(
                    f"Observation {obs.id}: decimal odds {obs.decimal_odds} must be > 1"
                )
            return Decimal(obs.decimal_odds)
        if obs.american_odds is not None:
            return american_to_decimal(obs.american_odds)
        raise InvalidOdds(f"Observation {obs.id} carries no odds")

    def american(self) -> int:
        """American odds, converted from the decimal price when not quoted."""
        obs = self.observation
        if obs.american_odds is not None:
            # validates the magnitude
            american_to_decimal(obs.american_odds)
            return obs.american_odds
        american = decimal_to_american(self.price())
        if american == 0:
            raise InvalidOdds(f"Observation {obs.id} has no valid American equivalent")
        return american


@dataclass
class ResolvedLine:
    """Latest quotes of one provider for one game, keyed by outcome."""

    game_id: int
    provider_id: int
    quotes: dict[str, ResolvedQuote] = field(default_factory=dict)


@dataclass(frozen=True)
class GameInfo:
    """Game reference data needed by the models."""

    game_id: int
    home_team_id: int
    away_team_id: int
    season: int
    start_time: datetime | None = None


@dataclass(frozen=True)
class RunScope:
    """League and market type a run covers."""

    league_id: int
    league_code: str
    market_type_id: int
    market_type_code: str


@dataclass(frozen=True)
class FairPrice:
    """
    Model-derived fair price for one outcome of a game.

    excluded_provider_id is set when the price was built without that
    provider's own quote (market consensus); None means the price holds for
    every provider.
    """

    game_id: int
    outcome: str
    probability: Decimal
    decimal_odds: Decimal
    excluded_provider_id: int | None = None


class FairPrices:
    """Fair prices of one game, looked up per (provider, outcome).

    outcomes, when given, lists every outcome the model can price at all.
    """

    def __init__(self, game_id: int, outcomes: frozenset[str] | None = None):
        self.game_id = game_id
        self.outcomes = outcomes
        self._shared: dict[str, FairPrice] = {}
        self._per_provider: dict[tuple[int, str], FairPrice] = {}

    def add(self, price: FairPrice) -> None:
        if price.excluded_provider_id is None:
            key: Any = price.outcome
            store: dict = self._shared
        else:
            key = (price.excluded_provider_id, price.outcome)
            store = self._per_provider
        if key in store:
            raise ValueError(f"Duplicate fair price for game {self.game_id}: {key}")
        store[key] = price

    def lookup(self, provider_id: int, outcome: str) -> FairPrice:
        """Fair price benchmarking a provider's quote for an outcome."""
        if self.outcomes is not None and outcome not in self.outcomes:
            raise UnsupportedOutcome(f"Game {self.game_id}: outcome {outcome} is not priced")
        price = self._per_provider.get((provider_id, outcome)) or self._shared.get(outcome)
        if price is None:
            raise NoMarketToCompare(
                f"No fair price for game {self.game_id}, provider {provider_id}, {outcome}"
            )
        return price

    def all(self) -> list[FairPrice]:
        return list(self._shared.values()) + list(self._per_provider.values())

    def __len__(self) -> int:
        return len(self._shared) + len(self._per_provider)


@dataclass
class Recommendation:
    """Provider quote scored against a fair price."""

    run_id: int
    game_id: int
    provider_id: int
    outcome: str
    market_type_code: str
    american_odds: int
    implied_probability: Decimal
    model_probability: Decimal
    edge: Decimal
    risk_level: str
    created_at: datetime
    is_active: bool = True
    stake_fraction: Decimal | None = None

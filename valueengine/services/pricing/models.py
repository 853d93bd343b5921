"""Probability models.

Each model turns the resolved lines of one game into fair prices. The
orchestrator picks one model per run and only ever calls the
ProbabilityModel interface.

Market consensus:
    fair_decimal(provider, outcome) = mean(decimal odds of every OTHER
    provider quoting that outcome). Each provider is benchmarked against a
    different market average. Implied probabilities are not de-vigged.

Elo rating:
    p_home = 1 / (1 + 10 ** (-(rating_home - rating_away) / scale))
    p_away = 1 - p_home
    One price per side, shared by every provider. A side whose fair price
    would exceed MAX_FAIR_DECIMAL skips the game as degenerate. Outcomes
    other than HOME and AWAY are unsupported.
"""

from abc import ABC, abstractmethod
from decimal import Decimal, Overflow
from typing import TYPE_CHECKING, Any

import structlog

from valueengine.config import get_settings
from valueengine.exceptions import DegenerateProbability, InvalidOdds
from valueengine.services.types import (
    AWAY,
    HOME,
    FairPrice,
    FairPrices,
    GameInfo,
    ResolvedLine,
    RunScope,
)

if TYPE_CHECKING:
    from valueengine.services.engine.store import ValueStore

logger = structlog.get_logger(__name__)

ONE = Decimal(1)
TEN = Decimal(10)
# Largest fair decimal price the prediction table can hold
MAX_FAIR_DECIMAL = Decimal(1_000_000)
ELO_OUTCOMES = frozenset({HOME, AWAY})


def load_model_config(key: str) -> dict[str, Any]:
    """Load the parameters of one model from defaults.yaml."""
    full_config = get_settings().load_defaults_config()
    return (full_config.get("models") or {}).get(key) or {}


class ProbabilityModel(ABC):
    """Strategy producing fair prices for a game."""

    #: Registry key used by build_model and the CLI
    key: str = ""
    #: Persisted model identity
    name: str = ""
    type_code: str = ""

    def __init__(self, config: dict[str, Any] | None = None):
        if config is None:
            config = load_model_config(self.key)
        self.config = config
        self.version = str(config.get("version", "1.0"))

    @property
    def parameters(self) -> dict[str, Any]:
        """Parameters recorded on the model run."""
        return {"model": self.key, "version": self.version}

    async def prepare(
        self,
        store: "ValueStore",
        scope: RunScope,
        games: dict[int, GameInfo],
    ) -> None:
        """Load reference data the model needs. Nothing by default."""
        return None

    @abstractmethod
    def compute_fair_prices(
        self, game: GameInfo, lines: list[ResolvedLine]
    ) -> FairPrices:
        """Fair prices for every outcome of the game the model can price."""


class MarketConsensusModel(ProbabilityModel):
    """Average of the other providers' decimal odds, per provider."""

    key = "market_consensus"
    name = "MarketConsensusML"
    type_code = "CONSENSUS"

    def compute_fair_prices(
        self, game: GameInfo, lines: list[ResolvedLine]
    ) -> FairPrices:
        prices = FairPrices(game.game_id)
        if len(lines) < 2:
            # Single provider: no market to compare against
            return prices

        for line in lines:
            for outcome in line.quotes:
                market = self._market_prices(lines, line.provider_id, outcome)
                if not market:
                    continue
                mean_decimal = sum(market) / len(market)
                prices.add(
                    FairPrice(
                        game_id=game.game_id,
                        outcome=outcome,
                        probability=ONE / mean_decimal,
                        decimal_odds=mean_decimal,
                        excluded_provider_id=line.provider_id,
                    )
                )
        return prices

    @staticmethod
    def _market_prices(
        lines: list[ResolvedLine], provider_id: int, outcome: str
    ) -> list[Decimal]:
        """Valid decimal prices of every other provider quoting the outcome."""
        market = []
        for other in lines:
            if other.provider_id == provider_id:
                continue
            quote = other.quotes.get(outcome)
            if quote is None:
                continue
            try:
                market.append(quote.price())
            except InvalidOdds:
                continue
        return market


class EloRatingModel(ProbabilityModel):
    """Logistic win probability from the Elo rating difference."""

    key = "elo"
    name = "EloRatingML"
    type_code = "RATING"

    def __init__(self, config: dict[str, Any] | None = None):
        super().__init__(config)
        self.default_rating = Decimal(str(self.config.get("default_rating", 1500)))
        self.scale = Decimal(str(self.config.get("scale", 400)))
        if self.scale <= 0:
            raise ValueError(f"Elo scale must be positive, got {self.scale}")
        self.ratings: dict[int, dict[int, Decimal]] = {}

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            **super().parameters,
            "default_rating": str(self.default_rating),
            "scale": str(self.scale),
        }

    async def prepare(
        self,
        store: "ValueStore",
        scope: RunScope,
        games: dict[int, GameInfo],
    ) -> None:
        for season in sorted({game.season for game in games.values()}):
            ratings = await store.load_team_ratings(season)
            self.ratings[season] = {
                team_id: Decimal(rating) for team_id, rating in ratings.items()
            }
            logger.debug("team_ratings_loaded", season=season, teams=len(ratings))

    def rating(self, team_id: int, season: int) -> Decimal:
        return self.ratings.get(season, {}).get(team_id, self.default_rating)

    def home_win_probability(self, rating_home: Decimal, rating_away: Decimal) -> Decimal:
        exponent = -(Decimal(rating_home) - Decimal(rating_away)) / self.scale
        try:
            return ONE / (ONE + TEN**exponent)
        except Overflow:
            return Decimal(0)

    def compute_fair_prices(
        self, game: GameInfo, lines: list[ResolvedLine]
    ) -> FairPrices:
        p_home = self.home_win_probability(
            self.rating(game.home_team_id, game.season),
            self.rating(game.away_team_id, game.season),
        )
        p_away = ONE - p_home

        for probability in (p_home, p_away):
            if probability <= 0 or probability >= 1:
                raise DegenerateProbability(
                    f"Game {game.game_id}: probability {probability} outside (0, 1)"
                )
            if ONE / probability > MAX_FAIR_DECIMAL:
                raise DegenerateProbability(
                    f"Game {game.game_id}: fair price for probability {probability} "
                    f"exceeds {MAX_FAIR_DECIMAL}"
                )

        prices = FairPrices(game.game_id, outcomes=ELO_OUTCOMES)
        for outcome, probability in ((HOME, p_home), (AWAY, p_away)):
            prices.add(
                FairPrice(
                    game_id=game.game_id,
                    outcome=outcome,
                    probability=probability,
                    decimal_odds=ONE / probability,
                )
            )
        return prices


MODEL_REGISTRY: dict[str, type[ProbabilityModel]] = {
    MarketConsensusModel.key: MarketConsensusModel,
    EloRatingModel.key: EloRatingModel,
}


def build_model(key: str, config: dict[str, Any] | None = None) -> ProbabilityModel:
    """Instantiate a probability model by registry key."""
    try:
        model_cls = MODEL_REGISTRY[key]
    except KeyError:
        raise ValueError(
            f"Unknown model {key!r}; expected one of {sorted(MODEL_REGISTRY)}"
        ) from None
    return model_cls(config)

"""Domain models for the value engine.

Reference data (leagues, market types, providers, teams, games, ratings) and
raw odds snapshots are owned by the ingestion side and only read here.
Predictive models, model runs, model predictions and bet recommendations are
written by the engine.

Bet recommendations are append-only. Superseding a batch flips is_active to
False on the earlier rows; rows are never deleted or otherwise updated.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from valueengine.models.base import Base, TimestampMixin

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


class League(Base, TimestampMixin):
    """League a game belongs to (NBA, NFL, ...)."""

    __tablename__ = "leagues"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    games: Mapped[list["Game"]] = relationship("Game", back_populates="league")

    def __repr__(self) -> str:
        return f"<League {self.code}>"


class MarketType(Base):
    """Bet market type (MONEYLINE, SPREAD, TOTAL)."""

    __tablename__ = "market_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<MarketType {self.code}>"


class OddsProvider(Base, TimestampMixin):
    """Sportsbook or exchange quoting prices."""

    __tablename__ = "odds_providers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    def __repr__(self) -> str:
        return f"<OddsProvider {self.code}>"


class Team(Base, TimestampMixin):
    """Team within a league."""

    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    league_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("leagues.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    ratings: Mapped[list["TeamRating"]] = relationship(
        "TeamRating", back_populates="team"
    )

    def __repr__(self) -> str:
        return f"<Team {self.name}>"


class TeamRating(Base):
    """
    Strength rating of a team for a season (Elo scale).

    Teams without a row for the season are rated at the model default.
    """

    __tablename__ = "team_ratings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("teams.id"), nullable=False
    )
    season: Mapped[int] = mapped_column(Integer, nullable=False)
    rating: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    team: Mapped["Team"] = relationship("Team", back_populates="ratings")

    __table_args__ = (
        UniqueConstraint("team_id", "season", name="uq_team_rating_season"),
    )

    def __repr__(self) -> str:
        return f"<TeamRating team={self.team_id} season={self.season} rating={self.rating}>"


class Game(Base, TimestampMixin):
    """Single scheduled game between a home and an away team."""

    __tablename__ = "games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    league_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("leagues.id"), nullable=False
    )
    home_team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("teams.id"), nullable=False
    )
    away_team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("teams.id"), nullable=False
    )
    season: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    status: Mapped[str] = mapped_column(String(20), default="SCHEDULED")

    league: Mapped["League"] = relationship("League", back_populates="games")
    home_team: Mapped["Team"] = relationship("Team", foreign_keys=[home_team_id])
    away_team: Mapped["Team"] = relationship("Team", foreign_keys=[away_team_id])

    __table_args__ = (Index("idx_games_league_start", "league_id", "start_time"),)

    def __repr__(self) -> str:
        return f"<Game {self.id} {self.home_team_id} v {self.away_team_id}>"


class OddsSnapshot(Base):
    """
    Point-in-time quote from one provider for one outcome of a game.

    At least one of american_odds / decimal_odds is populated. Rows are
    immutable facts written by the ingestion side.
    """

    __tablename__ = "odds_snapshots"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("games.id"), nullable=False
    )
    provider_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("odds_providers.id"), nullable=False
    )
    market_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("market_types.id"), nullable=False
    )
    outcome: Mapped[str] = mapped_column(
        String(30), nullable=False, doc="'HOME', 'AWAY', 'DRAW', ..."
    )
    snapshot_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    american_odds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    decimal_odds: Mapped[Decimal | None] = mapped_column(Numeric(10, 4), nullable=True)

    __table_args__ = (
        Index("idx_odds_snapshots_game_time", "game_id", snapshot_time.desc()),
        Index("idx_odds_snapshots_time", "snapshot_time"),
    )

    def __repr__(self) -> str:
        return f"<OddsSnapshot game={self.game_id} provider={self.provider_id} {self.outcome} at={self.snapshot_time}>"


class PredictiveModel(Base, TimestampMixin):
    """Identity of a probability model (name + version)."""

    __tablename__ = "predictive_models"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    version: Mapped[str] = mapped_column(String(20), nullable=False)
    type_code: Mapped[str] = mapped_column(
        String(20), nullable=False, doc="'CONSENSUS' or 'RATING'"
    )

    __table_args__ = (
        UniqueConstraint("name", "version", name="uq_predictive_model_version"),
    )

    def __repr__(self) -> str:
        return f"<PredictiveModel {self.name} v{self.version}>"


class ModelRun(Base):
    """
    One execution of the value engine.

    finished_at is stamped exactly once on success. A NULL finished_at after
    the process has exited marks a failed run; runs are never retried
    automatically.
    """

    __tablename__ = "model_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    model_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("predictive_models.id"), nullable=False
    )
    model_name: Mapped[str] = mapped_column(String(100), nullable=False)
    run_type: Mapped[str] = mapped_column(String(20), nullable=False)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    finished_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    parameters: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    model: Mapped["PredictiveModel"] = relationship("PredictiveModel")
    recommendations: Mapped[list["BetRecommendation"]] = relationship(
        "BetRecommendation", back_populates="run"
    )

    __table_args__ = (Index("idx_model_runs_started", started_at.desc()),)

    def __repr__(self) -> str:
        return f"<ModelRun {self.id} {self.model_name} finished={self.finished_at}>"


class ModelPrediction(Base):
    """
    Fair price produced by a model run for one game outcome.

    benchmark_provider_id is the provider whose own quote was excluded
    (market consensus). NULL means the price applies to every provider.
    """

    __tablename__ = "model_predictions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    run_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("model_runs.id"), nullable=False
    )
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("games.id"), nullable=False
    )
    outcome: Mapped[str] = mapped_column(String(30), nullable=False)
    benchmark_provider_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("odds_providers.id"), nullable=True
    )
    probability: Mapped[Decimal] = mapped_column(Numeric(12, 8), nullable=False)
    decimal_odds: Mapped[Decimal] = mapped_column(Numeric(14, 6), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "run_id",
            "game_id",
            "outcome",
            "benchmark_provider_id",
            name="uq_prediction_run_game_outcome",
        ),
    )

    def __repr__(self) -> str:
        return f"<ModelPrediction run={self.run_id} game={self.game_id} {self.outcome} p={self.probability}>"


class BetRecommendation(Base):
    """
    Provider price scored against a model fair price.

    edge = book_decimal / fair_decimal - 1. stake_fraction is reserved and
    never populated by the engine.
    """

    __tablename__ = "bet_recommendations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    run_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("model_runs.id"), nullable=False
    )
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("games.id"), nullable=False
    )
    provider_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("odds_providers.id"), nullable=False
    )
    market_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("market_types.id"), nullable=False
    )
    outcome: Mapped[str] = mapped_column(String(30), nullable=False)
    american_odds: Mapped[int] = mapped_column(Integer, nullable=False)
    implied_probability: Mapped[Decimal] = mapped_column(Numeric(12, 8), nullable=False)
    model_probability: Mapped[Decimal] = mapped_column(Numeric(12, 8), nullable=False)
    edge: Mapped[Decimal] = mapped_column(Numeric(12, 8), nullable=False)
    risk_level: Mapped[str] = mapped_column(
        String(20), nullable=False, doc="'High', 'Medium', 'Low', 'Negative'"
    )
    stake_fraction: Mapped[Decimal | None] = mapped_column(Numeric(8, 6), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    run: Mapped["ModelRun"] = relationship("ModelRun", back_populates="recommendations")

    __table_args__ = (
        Index("idx_recommendations_active", "is_active", "created_at"),
        Index("idx_recommendations_game", "game_id", "provider_id"),
    )

    def __repr__(self) -> str:
        return f"<BetRecommendation game={self.game_id} provider={self.provider_id} {self.outcome} edge={self.edge}>"

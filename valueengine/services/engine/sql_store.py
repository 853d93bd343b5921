"""SQLAlchemy implementation of the value store."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from valueengine.exceptions import ConfigurationMissing, PersistenceFailure
from valueengine.models.domain import (
    BetRecommendation,
    Game,
    League,
    MarketType,
    ModelPrediction,
    ModelRun,
    OddsSnapshot,
    PredictiveModel,
    TeamRating,
)
from valueengine.services.types import (
    FairPrice,
    GameInfo,
    OddsObservation,
    Recommendation,
    RunScope,
)

logger = structlog.get_logger(__name__)


class SqlAlchemyValueStore:
    """
    Value store over an async SQLAlchemy session.

    create_run and load_or_create_model_identity commit straight away. All
    other writes are expected inside transaction() and commit together.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the store.

        Args:
            session: Database session owned by the caller
        """
        self.session = session

    async def resolve_scope(self, league_code: str, market_type_code: str) -> RunScope:
        league = await self._scalar(
            "resolve_scope", select(League).where(League.code == league_code)
        )
        if league is None:
            raise ConfigurationMissing(f"League {league_code!r} is not configured")

        market_type = await self._scalar(
            "resolve_scope", select(MarketType).where(MarketType.code == market_type_code)
        )
        if market_type is None:
            raise ConfigurationMissing(f"Market type {market_type_code!r} is not configured")

        return RunScope(
            league_id=league.id,
            league_code=league.code,
            market_type_id=market_type.id,
            market_type_code=market_type.code,
        )

    async def load_observations(
        self, scope: RunScope, since: datetime
    ) -> list[OddsObservation]:
        result = await self._execute(
            "load_observations",
            select(OddsSnapshot)
            .join(Game, Game.id == OddsSnapshot.game_id)
            .where(
                Game.league_id == scope.league_id,
                OddsSnapshot.market_type_id == scope.market_type_id,
                OddsSnapshot.snapshot_time >= since,
            ),
        )
        return [
            OddsObservation(
                id=row.id,
                provider_id=row.provider_id,
                game_id=row.game_id,
                outcome=row.outcome,
                snapshot_time=row.snapshot_time,
                american_odds=row.american_odds,
                decimal_odds=row.decimal_odds,
            )
            for row in result.scalars().all()
        ]

    async def load_team_ratings(self, season: int) -> dict[int, Decimal]:
        result = await self._execute(
            "load_team_ratings",
            select(TeamRating.team_id, TeamRating.rating).where(TeamRating.season == season),
        )
        return {team_id: Decimal(rating) for team_id, rating in result.all()}

    async def load_games(self, scope: RunScope, game_ids: list[int]) -> list[GameInfo]:
        if not game_ids:
            return []
        result = await self._execute(
            "load_games",
            select(Game).where(
                Game.league_id == scope.league_id,
                Game.id.in_(game_ids),
            ),
        )
        return [
            GameInfo(
                game_id=game.id,
                home_team_id=game.home_team_id,
                away_team_id=game.away_team_id,
                season=game.season,
                start_time=game.start_time,
            )
            for game in result.scalars().all()
        ]

    async def load_or_create_model_identity(
        self, name: str, version: str, type_code: str
    ) -> int:
        model = await self._scalar(
            "load_model_identity",
            select(PredictiveModel).where(
                PredictiveModel.name == name,
                PredictiveModel.version == version,
            ),
        )
        if model is not None:
            return model.id

        model = PredictiveModel(name=name, version=version, type_code=type_code)
        self.session.add(model)
        await self._flush("create_model_identity")
        model_id = model.id
        await self._commit("create_model_identity")
        logger.info("model_identity_created", name=name, version=version, model_id=model_id)
        return model_id

    async def create_run(
        self,
        model_id: int,
        model_name: str,
        run_type: str,
        parameters: dict[str, Any],
        started_at: datetime,
    ) -> int:
        run = ModelRun(
            model_id=model_id,
            model_name=model_name,
            run_type=run_type,
            started_at=started_at,
            parameters=parameters,
        )
        self.session.add(run)
        await self._flush("create_run")
        run_id = run.id
        await self._commit("create_run")
        return run_id

    async def finalize_run(self, run_id: int, finished_at: datetime) -> None:
        result = await self._execute(
            "finalize_run",
            update(ModelRun)
            .where(ModelRun.id == run_id, ModelRun.finished_at.is_(None))
            .values(finished_at=finished_at),
        )
        if result.rowcount != 1:
            raise PersistenceFailure(f"Run {run_id} is missing or already finalized")

    async def deactivate_recommendations(self, scope: RunScope, day: date) -> int:
        day_start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        day_end = day_start + timedelta(days=1)
        games_in_scope = select(Game.id).where(Game.league_id == scope.league_id)
        result = await self._execute(
            "deactivate_recommendations",
            update(BetRecommendation)
            .where(
                BetRecommendation.is_active.is_(True),
                BetRecommendation.market_type_id == scope.market_type_id,
                BetRecommendation.created_at >= day_start,
                BetRecommendation.created_at < day_end,
                BetRecommendation.game_id.in_(games_in_scope),
            )
            .values(is_active=False)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount

    async def insert_recommendations(
        self, scope: RunScope, recommendations: list[Recommendation]
    ) -> int:
        self.session.add_all(
            [
                BetRecommendation(
                    run_id=rec.run_id,
                    game_id=rec.game_id,
                    provider_id=rec.provider_id,
                    market_type_id=scope.market_type_id,
                    outcome=rec.outcome,
                    american_odds=rec.american_odds,
                    implied_probability=rec.implied_probability,
                    model_probability=rec.model_probability,
                    edge=rec.edge,
                    risk_level=rec.risk_level,
                    stake_fraction=rec.stake_fraction,
                    created_at=rec.created_at,
                    is_active=rec.is_active,
                )
                for rec in recommendations
            ]
        )
        await self._flush("insert_recommendations")
        return len(recommendations)

    async def insert_fair_prices(self, run_id: int, prices: list[FairPrice]) -> int:
        self.session.add_all(
            [
                ModelPrediction(
                    run_id=run_id,
                    game_id=price.game_id,
                    outcome=price.outcome,
                    benchmark_provider_id=price.excluded_provider_id,
                    probability=price.probability,
                    decimal_odds=price.decimal_odds,
                )
                for price in prices
            ]
        )
        await self._flush("insert_fair_prices")
        return len(prices)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        try:
            yield
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceFailure(f"Transaction failed: {e}") from e
        except Exception:
            await self.session.rollback()
            raise

    async def _flush(self, operation: str) -> None:
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"{operation} failed: {e}") from e

    async def _commit(self, operation: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceFailure(f"{operation} failed: {e}") from e

    async def _execute(self, operation: str, statement):
        try:
            return await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"{operation} failed: {e}") from e

    async def _scalar(self, operation: str, statement):
        try:
            return await self.session.scalar(statement)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"{operation} failed: {e}") from e

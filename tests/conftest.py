"""Pytest configuration and fixtures for value engine tests."""

import copy
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from itertools import count
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from valueengine.exceptions import ConfigurationMissing, PersistenceFailure
from valueengine.services.types import (
    FairPrice,
    GameInfo,
    OddsObservation,
    Recommendation,
    RunScope,
)

RUN_TIME = datetime(2026, 10, 18, 15, 0, tzinfo=timezone.utc)
TIP_OFF = datetime(2026, 10, 18, 23, 30, tzinfo=timezone.utc)


class InMemoryValueStore:
    """
    ValueStore kept in plain Python structures.

    Writes inside transaction() are rolled back when the block raises.
    Operation names listed in fail_on raise PersistenceFailure.
    """

    def __init__(self):
        self.leagues = {"NBA": 1, "NFL": 2}
        self.market_types = {"MONEYLINE": 1}
        self.games: dict[int, tuple[int, GameInfo]] = {}
        self.observations: list[tuple[int, OddsObservation]] = []
        self.ratings: dict[int, dict[int, Decimal]] = {}
        self.model_identities: dict[tuple[str, str], int] = {}
        self.runs: dict[int, dict[str, Any]] = {}
        self.recommendations: list[tuple[int, Recommendation]] = []
        self.fair_prices: list[tuple[int, FairPrice]] = []
        self.fail_on: set[str] = set()
        self._ids = count(1)
        self._observation_ids = count(1)

    # Seeding helpers

    def add_game(
        self,
        game_id: int,
        home_team_id: int = 10,
        away_team_id: int = 20,
        season: int = 2026,
        league_id: int = 1,
        start_time: datetime = TIP_OFF,
    ) -> GameInfo:
        game = GameInfo(game_id, home_team_id, away_team_id, season, start_time)
        self.games[game_id] = (league_id, game)
        return game

    def add_quote(
        self,
        game_id: int,
        provider_id: int,
        outcome: str,
        american: int | None = None,
        decimal_odds: str | None = None,
        snapshot_time: datetime | None = None,
        market_type_id: int = 1,
    ) -> OddsObservation:
        obs = OddsObservation(
            id=next(self._observation_ids),
            provider_id=provider_id,
            game_id=game_id,
            outcome=outcome,
            snapshot_time=snapshot_time or RUN_TIME - timedelta(hours=1),
            american_odds=american,
            decimal_odds=Decimal(decimal_odds) if decimal_odds is not None else None,
        )
        self.observations.append((market_type_id, obs))
        return obs

    def active(self) -> list[Recommendation]:
        return [rec for _, rec in self.recommendations if rec.is_active]

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise PersistenceFailure(f"{operation} failed")

    def _league_of(self, game_id: int) -> int | None:
        entry = self.games.get(game_id)
        return entry[0] if entry else None

    # ValueStore protocol

    async def resolve_scope(self, league_code: str, market_type_code: str) -> RunScope:
        if league_code not in self.leagues:
            raise ConfigurationMissing(f"League {league_code!r} is not configured")
        if market_type_code not in self.market_types:
            raise ConfigurationMissing(f"Market type {market_type_code!r} is not configured")
        return RunScope(
            league_id=self.leagues[league_code],
            league_code=league_code,
            market_type_id=self.market_types[market_type_code],
            market_type_code=market_type_code,
        )

    async def load_observations(self, scope: RunScope, since: datetime) -> list[OddsObservation]:
        return [
            obs
            for market_type_id, obs in self.observations
            if market_type_id == scope.market_type_id
            and self._league_of(obs.game_id) in (scope.league_id, None)
            and obs.snapshot_time >= since
        ]

    async def load_team_ratings(self, season: int) -> dict[int, Decimal]:
        return dict(self.ratings.get(season, {}))

    async def load_games(self, scope: RunScope, game_ids: list[int]) -> list[GameInfo]:
        return [
            game
            for league_id, game in self.games.values()
            if league_id == scope.league_id and game.game_id in game_ids
        ]

    async def load_or_create_model_identity(self, name: str, version: str, type_code: str) -> int:
        key = (name, version)
        if key not in self.model_identities:
            self._check("load_or_create_model_identity")
            self.model_identities[key] = next(self._ids)
        return self.model_identities[key]

    async def create_run(self, model_id, model_name, run_type, parameters, started_at) -> int:
        self._check("create_run")
        run_id = next(self._ids)
        self.runs[run_id] = {
            "model_id": model_id,
            "model_name": model_name,
            "run_type": run_type,
            "parameters": parameters,
            "started_at": started_at,
            "finished_at": None,
        }
        return run_id

    async def finalize_run(self, run_id: int, finished_at: datetime) -> None:
        self._check("finalize_run")
        if self.runs[run_id]["finished_at"] is not None:
            raise PersistenceFailure(f"Run {run_id} already finalized")
        self.runs[run_id]["finished_at"] = finished_at

    async def deactivate_recommendations(self, scope: RunScope, day: date) -> int:
        self._check("deactivate_recommendations")
        deactivated = 0
        for market_type_id, rec in self.recommendations:
            if (
                rec.is_active
                and market_type_id == scope.market_type_id
                and self._league_of(rec.game_id) == scope.league_id
                and rec.created_at.date() == day
            ):
                rec.is_active = False
                deactivated += 1
        return deactivated

    async def insert_recommendations(self, scope: RunScope, recommendations: list[Recommendation]) -> int:
        self._check("insert_recommendations")
        self.recommendations.extend(
            (scope.market_type_id, copy.copy(rec)) for rec in recommendations
        )
        return len(recommendations)

    async def insert_fair_prices(self, run_id: int, prices: list[FairPrice]) -> int:
        self._check("insert_fair_prices")
        self.fair_prices.extend((run_id, price) for price in prices)
        return len(prices)

    @asynccontextmanager
    async def transaction(self):
        saved = (
            copy.deepcopy(self.recommendations),
            copy.deepcopy(self.fair_prices),
            copy.deepcopy(self.runs),
        )
        try:
            yield
        except Exception:
            self.recommendations, self.fair_prices, self.runs = saved
            raise


@pytest.fixture
def store():
    """Empty in-memory store with NBA/NFL leagues and the MONEYLINE market."""
    return InMemoryValueStore()


@pytest.fixture
def clock():
    """Fixed UTC clock."""
    return lambda: RUN_TIME


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine with every table created."""
    from valueengine.models.base import Base

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Session bound to the in-memory SQLite engine."""
    session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session

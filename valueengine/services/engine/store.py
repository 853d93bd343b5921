"""Data store collaborator used by the value engine.

The engine only talks to this protocol, so the same run logic works over a
flat odds table or a normalized game/market/snapshot schema. Adapt the store,
not the engine.
"""

from contextlib import AbstractAsyncContextManager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Protocol

from valueengine.services.types import (
    FairPrice,
    GameInfo,
    OddsObservation,
    Recommendation,
    RunScope,
)


class ValueStore(Protocol):
    """Reads reference data and odds, writes runs and their outputs."""

    async def resolve_scope(self, league_code: str, market_type_code: str) -> RunScope:
        """Raises ConfigurationMissing when the league or market type is unknown."""
        ...

    async def load_observations(
        self, scope: RunScope, since: datetime
    ) -> list[OddsObservation]:
        ...

    async def load_team_ratings(self, season: int) -> dict[int, Decimal]:
        ...

    async def load_games(self, scope: RunScope, game_ids: list[int]) -> list[GameInfo]:
        """Games of the scope's league among game_ids; others are left out."""
        ...

    async def load_or_create_model_identity(
        self, name: str, version: str, type_code: str
    ) -> int:
        ...

    async def create_run(
        self,
        model_id: int,
        model_name: str,
        run_type: str,
        parameters: dict[str, Any],
        started_at: datetime,
    ) -> int:
        """Persist a run row immediately so failed attempts stay auditable."""
        ...

    async def finalize_run(self, run_id: int, finished_at: datetime) -> None:
        ...

    async def deactivate_recommendations(self, scope: RunScope, day: date) -> int:
        ...

    async def insert_recommendations(
        self, scope: RunScope, recommendations: list[Recommendation]
    ) -> int:
        ...

    async def insert_fair_prices(self, run_id: int, prices: list[FairPrice]) -> int:
        ...

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Unit of work: every write inside commits together or not at all."""
        ...

"""Value engine run orchestrator.

One run:
1. Resolve the scope (league + market type). Unknown scope aborts before any
   run row exists.
2. Look up the model identity and persist the run row.
3. Load observations since midnight UTC lookback_days ago. None found ends
   the run as completed with zero recommendations.
4. Load the games those observations quote, whatever their start time, and
   the model's reference context (team ratings, ...).
5. Resolve the latest line per provider/outcome and price every game.
6. Score every (provider, outcome) quote against its fair price.
7. In one transaction: deactivate today's recommendations for the scope,
   insert the new batch (and fair prices), stamp finished_at.

Skipped pairings and games are counted on the RunContext. Anything else
fails the run, leaving finished_at NULL, and propagates. Nothing is retried.

Two concurrent runs for the same scope and day are not supported and may
leave two active batches.
"""

from collections.abc import Callable
from datetime import datetime, time, timedelta, timezone
from typing import Any

import structlog

from valueengine.exceptions import RecoverableError
from valueengine.services.engine.context import RunContext, RunState
from valueengine.services.engine.store import ValueStore
from valueengine.services.odds.resolver import resolve_lines
from valueengine.services.pricing.edge import RiskLevel, score_quote
from valueengine.services.pricing.models import ProbabilityModel
from valueengine.services.types import FairPrices, GameInfo, ResolvedLine

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def observation_window_start(started_at: datetime, lookback_days: int) -> datetime:
    """Midnight UTC, lookback_days before the run's start date."""
    start_day = started_at.astimezone(timezone.utc).date() - timedelta(days=lookback_days)
    return datetime.combine(start_day, time.min, tzinfo=timezone.utc)


class ValueEngine:
    """
    Drive a model run from raw observations to persisted recommendations.

    The probability model is chosen by the caller when the engine is built;
    the run logic never branches on which model it holds.
    """

    def __init__(
        self,
        store: ValueStore,
        model: ProbabilityModel,
        run_type: str = "Live",
        lookback_days: int = 1,
        persist_fair_prices: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the engine.

        Args:
            store: Data store collaborator
            model: Probability model used for every game of the run
            run_type: Label recorded on the run row ("Live", "Manual", ...)
            lookback_days: Observation window in whole days before today
            persist_fair_prices: Also write the fair prices as an audit trail
            clock: Source of the current UTC time
        """
        self.store = store
        self.model = model
        self.run_type = run_type
        self.lookback_days = lookback_days
        self.persist_fair_prices = persist_fair_prices
        self.clock = clock

    async def run(
        self,
        league_code: str,
        market_type_code: str,
        parameters: dict[str, Any] | None = None,
    ) -> RunContext:
        """
        Execute one run for a league and market type.

        Returns:
            The completed RunContext

        Raises:
            ConfigurationMissing: Scope is not configured (no run row created)
            PersistenceFailure: A store write failed (run left unfinalized)
        """
        scope = await self.store.resolve_scope(league_code, market_type_code)
        model_id = await self.store.load_or_create_model_identity(
            self.model.name, self.model.version, self.model.type_code
        )

        started_at = self.clock()
        since = observation_window_start(started_at, self.lookback_days)
        run_parameters = {
            **self.model.parameters,
            "league": scope.league_code,
            "market_type": scope.market_type_code,
            "lookback_days": self.lookback_days,
            "since": since.isoformat(),
            **(parameters or {}),
        }
        run_id = await self.store.create_run(
            model_id=model_id,
            model_name=self.model.name,
            run_type=self.run_type,
            parameters=run_parameters,
            started_at=started_at,
        )

        ctx = RunContext(
            run_id=run_id,
            scope=scope,
            model_name=self.model.name,
            started_at=started_at,
            since=since,
        )
        logger.info(
            "value_run_started",
            run_id=run_id,
            model=self.model.name,
            league=scope.league_code,
            market_type=scope.market_type_code,
            since=since.isoformat(),
        )

        try:
            await self._execute(ctx)
        except Exception as e:
            ctx.fail(str(e))
            logger.error(
                "value_run_failed",
                run_id=run_id,
                model=self.model.name,
                state=ctx.state.value,
                error=str(e),
            )
            raise

        logger.info(
            "value_run_complete",
            duration_seconds=(ctx.finished_at - started_at).total_seconds(),
            **ctx.summary(),
        )
        return ctx

    async def _execute(self, ctx: RunContext) -> None:
        ctx.transition(RunState.LOADING)
        observations = await self.store.load_observations(ctx.scope, ctx.since)
        ctx.count("observations_loaded", len(observations))
        logger.info(
            "observations_loaded",
            run_id=ctx.run_id,
            count=len(observations),
        )
        if not observations:
            ctx.transition(RunState.FINALIZING)
            await self._finalize(ctx, supersede=False)
            return

        games = await self._load_context(ctx, {obs.game_id for obs in observations})

        ctx.transition(RunState.MODELING)
        priced = self._price_games(ctx, games, resolve_lines(observations))

        ctx.transition(RunState.SCORING)
        self._score_games(ctx, priced)

        ctx.transition(RunState.FINALIZING)
        await self._finalize(ctx, supersede=True)

    async def _load_context(
        self, ctx: RunContext, game_ids: set[int]
    ) -> dict[int, GameInfo]:
        """Games quoted in the window plus whatever reference data the model needs."""
        games = {
            game.game_id: game
            for game in await self.store.load_games(ctx.scope, sorted(game_ids))
        }
        ctx.count("games_loaded", len(games))
        await self.model.prepare(self.store, ctx.scope, games)
        return games

    def _price_games(
        self,
        ctx: RunContext,
        games: dict[int, GameInfo],
        lines_by_game: dict[int, list[ResolvedLine]],
    ) -> list[tuple[list[ResolvedLine], FairPrices]]:
        """Fair prices per game; skipped games are counted, not raised."""
        priced = []
        for game_id, lines in lines_by_game.items():
            game = games.get(game_id)
            if game is None:
                ctx.count("skipped_unknown_game")
                continue
            try:
                fair_prices = self.model.compute_fair_prices(game, lines)
            except RecoverableError as e:
                ctx.count(e.counter_key)
                logger.debug(
                    "game_skipped",
                    run_id=ctx.run_id,
                    game_id=game_id,
                    reason=e.counter_key,
                    error=str(e),
                )
                continue

            ctx.count("games_priced")
            ctx.fair_prices.extend(fair_prices.all())
            priced.append((lines, fair_prices))
        return priced

    def _score_games(
        self,
        ctx: RunContext,
        priced: list[tuple[list[ResolvedLine], FairPrices]],
    ) -> None:
        """Score every provider quote against the fair price benchmarking it."""
        created_at = self.clock()
        for lines, fair_prices in priced:
            for line in lines:
                for outcome, quote in line.quotes.items():
                    try:
                        fair_price = fair_prices.lookup(line.provider_id, outcome)
                        recommendation = score_quote(
                            run_id=ctx.run_id,
                            provider_id=line.provider_id,
                            quote=quote,
                            fair_price=fair_price,
                            market_type_code=ctx.scope.market_type_code,
                            created_at=created_at,
                        )
                    except RecoverableError as e:
                        ctx.count(e.counter_key)
                        continue

                    ctx.recommendations.append(recommendation)
                    ctx.count(f"risk_{recommendation.risk_level.lower()}")
                    if recommendation.risk_level == RiskLevel.HIGH.value:
                        logger.info(
                            "high_risk_recommendation",
                            run_id=ctx.run_id,
                            game_id=recommendation.game_id,
                            provider_id=recommendation.provider_id,
                            outcome=recommendation.outcome,
                            american_odds=recommendation.american_odds,
                            edge=str(round(recommendation.edge, 4)),
                        )

    async def _finalize(self, ctx: RunContext, supersede: bool) -> None:
        """Publish the batch and stamp finished_at in a single transaction."""
        async with self.store.transaction():
            if supersede:
                day = (
                    ctx.recommendations[0].created_at.date()
                    if ctx.recommendations
                    else self.clock().date()
                )
                deactivated = await self.store.deactivate_recommendations(ctx.scope, day)
                ctx.count("recommendations_deactivated", deactivated)

            if ctx.recommendations:
                inserted = await self.store.insert_recommendations(
                    ctx.scope, ctx.recommendations
                )
                ctx.count("recommendations_inserted", inserted)

            if self.persist_fair_prices and ctx.fair_prices:
                await self.store.insert_fair_prices(ctx.run_id, ctx.fair_prices)

            finished_at = self.clock()
            await self.store.finalize_run(ctx.run_id, finished_at)

        ctx.finished_at = finished_at
        ctx.transition(RunState.COMPLETED)
        logger.info(
            "recommendations_inserted",
            run_id=ctx.run_id,
            count=ctx.counters["recommendations_inserted"],
        )

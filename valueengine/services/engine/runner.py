"""Build and execute a value run from application settings."""

from sqlalchemy.ext.asyncio import AsyncSession

from valueengine.config import get_settings
from valueengine.services.engine.context import RunContext
from valueengine.services.engine.orchestrator import ValueEngine
from valueengine.services.engine.sql_store import SqlAlchemyValueStore
from valueengine.services.pricing.models import build_model


async def execute_value_run(
    session: AsyncSession,
    model_key: str | None = None,
    league_code: str | None = None,
    market_type_code: str | None = None,
    run_type: str | None = None,
) -> RunContext:
    """
    Run the value engine once against the database.

    Arguments left as None fall back to the settings defaults.
    """
    settings = get_settings()
    engine = ValueEngine(
        store=SqlAlchemyValueStore(session),
        model=build_model(model_key or settings.default_model),
        run_type=run_type or settings.run_type,
        lookback_days=settings.lookback_days,
        persist_fair_prices=settings.persist_fair_prices,
    )
    return await engine.run(
        league_code or settings.default_league_code,
        market_type_code or settings.default_market_type_code,
    )

"""Value engine run task.

Runs the engine for the configured league and market type and records the
outcome. A failed run keeps finished_at NULL on its model_runs row and is not
retried; the next scheduled run starts a fresh one.
"""

from datetime import datetime, timezone
from typing import Any

import structlog

from valueengine.exceptions import ConfigurationMissing
from valueengine.models.base import get_task_session
from valueengine.services.engine.runner import execute_value_run
from valueengine.tasks import celery_app

logger = structlog.get_logger(__name__)


@celery_app.task(bind=True, soft_time_limit=540, time_limit=600)
def run_value_engine(
    self,
    model_name: str | None = None,
    league_code: str | None = None,
    market_type_code: str | None = None,
):
    """
    Scheduled: every run_interval_seconds (default 15 minutes)
    Timeout: 10 minutes

    1. Resolve scope and create the model run row
    2. Load observations and price every game
    3. Supersede today's recommendations and insert the new batch
    """
    import asyncio

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(
            _run_value_engine_async(self, model_name, league_code, market_type_code)
        )
    finally:
        loop.close()


async def _run_value_engine_async(
    task,
    model_name: str | None,
    league_code: str | None,
    market_type_code: str | None,
) -> dict[str, Any]:
    """Async implementation of the value run task."""
    started_at = datetime.now(timezone.utc)
    task_id = task.request.id if task is not None else None

    async with get_task_session() as session:
        try:
            ctx = await execute_value_run(
                session,
                model_key=model_name,
                league_code=league_code,
                market_type_code=market_type_code,
            )
        except ConfigurationMissing as e:
            logger.error("value_run_not_configured", error=str(e), task_id=task_id)
            return {"status": "not_configured", "error": str(e)}
        except Exception as e:
            logger.error("value_run_task_failed", error=str(e), task_id=task_id)
            return {"status": "failed", "error": str(e)}

    logger.info(
        "value_run_task_complete",
        run_id=ctx.run_id,
        duration_seconds=(datetime.now(timezone.utc) - started_at).total_seconds(),
    )
    return {"status": "success", **ctx.summary()}

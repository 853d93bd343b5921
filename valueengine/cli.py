"""Command line entry point.

    valueengine run [--model elo] [--league NBA] [--market MONEYLINE]
    valueengine init-db
"""

import argparse
import asyncio
import sys

import structlog

from valueengine.config import configure_logging, get_settings
from valueengine.exceptions import ConfigurationMissing, ValueEngineError
from valueengine.models.base import get_engine, get_task_session, init_models
from valueengine.services.engine.runner import execute_value_run
from valueengine.services.pricing.models import MODEL_REGISTRY

logger = structlog.get_logger(__name__)


async def _run(args: argparse.Namespace) -> int:
    async with get_task_session() as session:
        ctx = await execute_value_run(
            session,
            model_key=args.model,
            league_code=args.league,
            market_type_code=args.market,
            run_type=args.run_type,
        )
    summary = ctx.summary()
    print(
        f"Run {summary['run_id']} ({summary['model']}): "
        f"{summary.get('observations_loaded', 0)} observations, "
        f"{summary['recommendations']} recommendations"
    )
    return 0


async def _init_db(args: argparse.Namespace) -> int:
    engine = get_engine()
    try:
        await init_models(engine)
    finally:
        await engine.dispose()
    logger.info("database_initialised")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="valueengine",
        description="Compare provider odds with model fair prices and emit bet recommendations",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Execute one value engine run")
    run_parser.add_argument("--model", choices=sorted(MODEL_REGISTRY), default=None)
    run_parser.add_argument("--league", default=None, help="League code")
    run_parser.add_argument("--market", default=None, help="Market type code")
    run_parser.add_argument("--run-type", default="Manual", help="Label stored on the run")
    run_parser.set_defaults(handler=_run)

    init_parser = subparsers.add_parser("init-db", help="Create missing tables")
    init_parser.set_defaults(handler=_init_db)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(get_settings().log_level)

    try:
        return asyncio.run(args.handler(args))
    except ConfigurationMissing as e:
        logger.error("configuration_missing", error=str(e))
        return 2
    except ValueEngineError as e:
        logger.error("value_run_failed", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())

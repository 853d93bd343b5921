"""Snapshot resolver.

Reduces raw odds observations to the latest quote per
(game, provider, outcome) and groups the result by game.
"""

from collections import defaultdict
from collections.abc import Iterable

import structlog

from valueengine.services.types import OddsObservation, ResolvedLine, ResolvedQuote

logger = structlog.get_logger(__name__)

LineKey = tuple[int, int, str]


def _recency(observation: OddsObservation) -> tuple:
    # Ties on snapshot_time resolve to the highest id so reruns are reproducible
    return (observation.snapshot_time, observation.id)


def resolve_latest(
    observations: Iterable[OddsObservation],
) -> dict[LineKey, OddsObservation]:
    """
    Select the most recent observation per (game, provider, outcome).

    Args:
        observations: Raw observations in any order

    Returns:
        Mapping of (game_id, provider_id, outcome) to the latest observation
    """
    latest: dict[LineKey, OddsObservation] = {}
    for obs in observations:
        key = (obs.game_id, obs.provider_id, obs.outcome)
        current = latest.get(key)
        if current is None or _recency(obs) > _recency(current):
            latest[key] = obs
    return latest


def group_by_game(
    latest: dict[LineKey, OddsObservation],
) -> dict[int, list[ResolvedLine]]:
    """Group resolved observations into per-provider lines for each game."""
    lines: dict[int, dict[int, ResolvedLine]] = defaultdict(dict)
    for (game_id, provider_id, outcome), obs in latest.items():
        line = lines[game_id].get(provider_id)
        if line is None:
            line = ResolvedLine(game_id=game_id, provider_id=provider_id)
            lines[game_id][provider_id] = line
        line.quotes[outcome] = ResolvedQuote(obs)

    return {
        game_id: [by_provider[pid] for pid in sorted(by_provider)]
        for game_id, by_provider in sorted(lines.items())
    }


def resolve_lines(
    observations: Iterable[OddsObservation],
) -> dict[int, list[ResolvedLine]]:
    """Latest line per provider for every game in the observations."""
    latest = resolve_latest(observations)
    grouped = group_by_game(latest)
    logger.debug(
        "lines_resolved",
        distinct_quotes=len(latest),
        games=len(grouped),
    )
    return grouped

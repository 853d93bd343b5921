"""Run state machine and the context threaded through every run stage."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from valueengine.exceptions import RunStateError
from valueengine.services.types import FairPrice, Recommendation, RunScope


class RunState(str, Enum):
    """Lifecycle of a model run."""
    CREATED = "created"
    LOADING = "loading"
    MODELING = "modeling"
    SCORING = "scoring"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.CREATED: {RunState.LOADING},
    # LOADING -> FINALIZING when no observations were found
    RunState.LOADING: {RunState.MODELING, RunState.FINALIZING},
    RunState.MODELING: {RunState.SCORING},
    RunState.SCORING: {RunState.FINALIZING},
    RunState.FINALIZING: {RunState.COMPLETED},
    RunState.COMPLETED: set(),
    RunState.FAILED: set(),
}

TERMINAL_STATES = {RunState.COMPLETED, RunState.FAILED}


@dataclass
class RunContext:
    """Everything one run accumulates, passed explicitly between stages."""

    run_id: int
    scope: RunScope
    model_name: str
    started_at: datetime
    since: datetime
    state: RunState = RunState.CREATED
    counters: Counter = field(default_factory=Counter)
    fair_prices: list[FairPrice] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    finished_at: datetime | None = None
    error_message: str | None = None

    def transition(self, new_state: RunState) -> None:
        """Move to new_state. FAILED is reachable from any non-terminal state."""
        if new_state == RunState.FAILED and self.state not in TERMINAL_STATES:
            self.state = new_state
            return
        if new_state not in _TRANSITIONS[self.state]:
            raise RunStateError(
                f"Run {self.run_id}: illegal transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state

    def fail(self, error_message: str) -> None:
        self.error_message = error_message
        if self.state not in TERMINAL_STATES:
            self.transition(RunState.FAILED)

    def count(self, key: str, amount: int = 1) -> None:
        self.counters[key] += amount

    @property
    def completed(self) -> bool:
        return self.state == RunState.COMPLETED

    def summary(self) -> dict[str, Any]:
        """Stats dict for logs and task results."""
        return {
            "run_id": self.run_id,
            "model": self.model_name,
            "league": self.scope.league_code,
            "market_type": self.scope.market_type_code,
            "state": self.state.value,
            "recommendations": len(self.recommendations),
            "fair_prices": len(self.fair_prices),
            **dict(self.counters),
        }

"""Value engine run orchestration and data store collaborators."""

from valueengine.services.engine.context import RunContext, RunState
from valueengine.services.engine.orchestrator import ValueEngine
from valueengine.services.engine.sql_store import SqlAlchemyValueStore
from valueengine.services.engine.store import ValueStore

__all__ = [
    "RunContext",
    "RunState",
    "SqlAlchemyValueStore",
    "ValueEngine",
    "ValueStore",
]

"""Error taxonomy for the value engine.

Two families:
- Fatal errors abort a run (ConfigurationMissing, PersistenceFailure).
- Recoverable errors skip a single game or provider/outcome pairing and are
  counted on the run context (InvalidOdds, DegenerateProbability,
  NoMarketToCompare, UnsupportedOutcome).
"""


class ValueEngineError(Exception):
    """Base class for all value engine errors."""


class ConfigurationMissing(ValueEngineError):
    """Required reference data (league, market type) is absent.

    Raised before a model run row is created.
    """


class PersistenceFailure(ValueEngineError):
    """A store write failed. The run is left unfinalized."""


class RunStateError(ValueEngineError):
    """Illegal run state transition."""


class RecoverableError(ValueEngineError):
    """Condition that skips one pairing or game without aborting the run."""

    counter_key = "skipped"


class InvalidOdds(RecoverableError, ValueError):
    """Malformed, zero or out-of-range odds."""

    counter_key = "skipped_invalid_odds"


class DegenerateProbability(RecoverableError):
    """A model produced a probability <= 0 or >= 1."""

    counter_key = "skipped_degenerate_probability"


class NoMarketToCompare(RecoverableError):
    """No other provider quotes the outcome, so there is no benchmark."""

    counter_key = "skipped_no_market"


class UnsupportedOutcome(RecoverableError):
    """The model does not price this outcome at all (e.g. DRAW under Elo)."""

    counter_key = "skipped_unsupported_outcome"

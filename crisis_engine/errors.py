"""Errors raised by the crisis engine.

Every error derives from ValueError so callers that already treat
ValueError as "rejected command" keep working.
"""


class CrisisEngineError(ValueError):
    """Base class for rejected engine commands. State is never mutated."""


class NoActiveScenarioError(CrisisEngineError):
    """A choice or timeout was submitted while no scenario is active."""


class InvalidChoiceError(CrisisEngineError):
    """The submitted choice id does not belong to the active scenario."""


class IllegalTransitionError(CrisisEngineError):
    """The command is not allowed in the session's current status."""


class DeckConfigurationError(CrisisEngineError):
    """The scenario collection cannot support the requested session."""

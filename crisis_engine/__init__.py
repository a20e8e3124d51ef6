"""Crisis engine package for the business-crisis simulation.

The round resolution, rescue and session lifecycle logic here is pure and
framework-agnostic so it can be driven from tests, the session controller
and the FastAPI router alike.
"""

from . import (  # noqa: F401
    coach,
    deck,
    errors,
    metrics,
    persistence,
    rescue,
    rules_engine,
    session,
    settings,
    state,
    state_machine,
    templates,
)

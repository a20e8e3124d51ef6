"""Static difficulty table, rulesets and environment-driven engine config."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class Difficulty(str, Enum):
    EASY = "Easy"
    NORMAL = "Normal"
    HARD = "Hard"


@dataclass(frozen=True)
class DifficultySetting:
    time_limit: int  # seconds, advisory for the presentation layer
    volatility: float  # multiplier applied to every base impact
    rounds: int


DIFFICULTY_SETTINGS: Dict[Difficulty, DifficultySetting] = {
    Difficulty.EASY: DifficultySetting(time_limit=45, volatility=1.0, rounds=8),
    Difficulty.NORMAL: DifficultySetting(time_limit=30, volatility=1.2, rounds=10),
    Difficulty.HARD: DifficultySetting(time_limit=20, volatility=1.5, rounds=12),
}


class ReliefKind(str, Enum):
    LOAN = "loan"
    BAILOUT = "bailout"


@dataclass(frozen=True)
class Ruleset:
    """One coherent set of balance rules; mechanics are never mixed."""

    name: str
    momentum_step: float
    fractional_feedback: bool
    relief: ReliefKind


ENHANCED = Ruleset(name="enhanced", momentum_step=0.25, fractional_feedback=True, relief=ReliefKind.LOAN)
BASELINE = Ruleset(name="baseline", momentum_step=0.0, fractional_feedback=False, relief=ReliefKind.BAILOUT)

RULESETS: Dict[str, Ruleset] = {r.name: r for r in (ENHANCED, BASELINE)}
DEFAULT_RULESET = ENHANCED.name


def get_difficulty(difficulty: Difficulty | str) -> DifficultySetting:
    try:
        return DIFFICULTY_SETTINGS[Difficulty(difficulty)]
    except ValueError as exc:
        raise ValueError(f"Unknown difficulty: {difficulty!r}") from exc


def get_ruleset(name: Optional[str]) -> Ruleset:
    ruleset = RULESETS.get(name or DEFAULT_RULESET)
    if ruleset is None:
        raise ValueError(f"Unknown ruleset: {name!r}")
    return ruleset


@dataclass(frozen=True)
class EngineConfig:
    ruleset: str = DEFAULT_RULESET
    reveal_delay: float = 0.5
    strict_deck: bool = False


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_config() -> EngineConfig:
    """Read engine configuration from the environment.

    Unknown rulesets and unparsable delays fall back to defaults with a
    warning rather than failing startup.
    """
    ruleset = os.getenv("CRISIS_RULESET", DEFAULT_RULESET).strip().lower()
    if ruleset not in RULESETS:
        logger.warning("Unknown CRISIS_RULESET %r, using %s", ruleset, DEFAULT_RULESET)
        ruleset = DEFAULT_RULESET

    raw_delay = os.getenv("CRISIS_REVEAL_DELAY", "0.5")
    try:
        reveal_delay = max(0.0, float(raw_delay))
    except ValueError:
        logger.warning("Invalid CRISIS_REVEAL_DELAY %r, using 0.5s", raw_delay)
        reveal_delay = 0.5

    return EngineConfig(
        ruleset=ruleset,
        reveal_delay=reveal_delay,
        strict_deck=_env_bool("CRISIS_STRICT_DECK", False),
    )

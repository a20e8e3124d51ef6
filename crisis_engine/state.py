"""Immutable session records shared by the resolution and rescue code."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

from .metrics import MetricKind, MetricVector, initial_metrics
from .settings import DEFAULT_RULESET, Difficulty
from .templates import Scenario


class GameStatus(str, Enum):
    IDLE = "IDLE"
    PLAYING = "PLAYING"
    ROUND_FEEDBACK = "ROUND_FEEDBACK"
    GAME_OVER = "GAME_OVER"
    VICTORY = "VICTORY"


TERMINAL_STATUSES = frozenset({GameStatus.GAME_OVER, GameStatus.VICTORY})
LIVE_STATUSES = frozenset({GameStatus.PLAYING, GameStatus.ROUND_FEEDBACK})


@dataclass(frozen=True)
class HistoryEntry:
    round: int
    metrics: Dict[MetricKind, float]
    event_title: str
    choice_selected: str


@dataclass(frozen=True)
class RoundFeedback:
    scenario: Scenario
    selected_choice_id: str
    impacts: Tuple[str, ...]
    is_timeout: bool


@dataclass(frozen=True)
class SessionState:
    """Root aggregate for one play session.

    Transitions never mutate an instance; they build a new one with
    ``dataclasses.replace``.
    """

    round: int = 1
    max_rounds: int = 10
    metrics: MetricVector = field(default_factory=initial_metrics)
    status: GameStatus = GameStatus.IDLE
    difficulty: Difficulty = Difficulty.NORMAL
    ruleset: str = DEFAULT_RULESET
    history: Tuple[HistoryEntry, ...] = ()
    resilience_score: int = 0
    bailout_used: bool = False
    final_bailout_used: bool = False
    loan_taken: bool = False
    investor_debuff_rounds: int = 0
    current_scenario: Optional[Scenario] = None
    last_round_feedback: Optional[RoundFeedback] = None
    game_over_reason: Optional[str] = None
    loading: bool = False
    time_limit: int = 30
    deck: Tuple[Scenario, ...] = ()

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

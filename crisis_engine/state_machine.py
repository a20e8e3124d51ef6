"""Finite state machine for a crisis session.

IDLE -> PLAYING -> ROUND_FEEDBACK -> PLAYING ... -> GAME_OVER | VICTORY.
Each function takes a SessionState and returns a new one; invalid
transitions raise before anything is built.
"""

from __future__ import annotations

import random
from dataclasses import replace
from typing import Optional, Sequence, Tuple

from .deck import scenario_for_round, shuffle_deck, validate_deck
from .errors import IllegalTransitionError, InvalidChoiceError, NoActiveScenarioError
from .metrics import initial_metrics, snapshot
from .rules_engine import resolve, select_timeout_choice
from .settings import Difficulty, get_difficulty, get_ruleset
from .state import GameStatus, HistoryEntry, RoundFeedback, SessionState
from .templates import Scenario


def idle_state() -> SessionState:
    return SessionState()


def initialize_state(
    difficulty: Difficulty | str,
    scenarios: Sequence[Scenario],
    ruleset: Optional[str] = None,
    rng: Optional[random.Random] = None,
    strict_deck: bool = False,
) -> SessionState:
    """Create a fresh PLAYING session waiting for its first scenario reveal."""
    difficulty = Difficulty(difficulty)
    settings = get_difficulty(difficulty)
    rules = get_ruleset(ruleset)
    deck = shuffle_deck(scenarios, rng)
    validate_deck(deck, settings.rounds, strict_deck)

    metrics = initial_metrics()
    start = HistoryEntry(round=0, metrics=snapshot(metrics), event_title="Game Start", choice_selected="N/A")
    return SessionState(
        round=1,
        max_rounds=settings.rounds,
        metrics=metrics,
        status=GameStatus.PLAYING,
        difficulty=difficulty,
        ruleset=rules.name,
        history=(start,),
        time_limit=settings.time_limit,
        loading=True,
        deck=deck,
    )


def reveal_scenario(state: SessionState) -> SessionState:
    """End the loading gap by exposing this round's scenario."""
    if state.status != GameStatus.PLAYING or not state.loading:
        raise IllegalTransitionError("There is no pending scenario to reveal.")
    return replace(state, current_scenario=scenario_for_round(state.deck, state.round), loading=False)


def apply_choice(state: SessionState, choice_id: str) -> Tuple[SessionState, RoundFeedback]:
    """Resolve the active round with the player's choice."""
    scenario = state.current_scenario
    if scenario is None:
        raise NoActiveScenarioError("No scenario is active; choices are not accepted right now.")
    choice = scenario.find_choice(choice_id)
    if choice is None:
        raise InvalidChoiceError(f"Choice {choice_id!r} is not part of scenario {scenario.id!r}.")
    return resolve(state, choice, is_timeout=False)


def apply_timeout(state: SessionState) -> Tuple[SessionState, RoundFeedback]:
    """Resolve the active round with the safe default and the timeout penalty."""
    scenario = state.current_scenario
    if scenario is None:
        raise NoActiveScenarioError("No scenario is active; nothing to time out.")
    return resolve(state, select_timeout_choice(scenario), is_timeout=True)


def advance_round(state: SessionState) -> SessionState:
    """Leave the feedback screen: start the next round or declare victory."""
    if state.status != GameStatus.ROUND_FEEDBACK:
        raise IllegalTransitionError(f"Cannot advance while {state.status.value}.")
    if state.round > state.max_rounds:
        return replace(state, status=GameStatus.VICTORY, current_scenario=None, loading=False)
    return replace(
        state,
        status=GameStatus.PLAYING,
        current_scenario=None,
        loading=True,
        loan_taken=False,
    )


def restart(state: SessionState) -> SessionState:
    """Abandon or finish the session and return to IDLE."""
    if state.status == GameStatus.IDLE:
        raise IllegalTransitionError("No session is running.")
    return idle_state()

"""Round resolution and scoring rules.

``resolve`` is the core state transition: it applies a choice to the
metric vector, scores the round and detects game over. ``compute_outcome``
summarises a session for the end-of-game debrief.
"""

from __future__ import annotations

import math
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Tuple

from .errors import IllegalTransitionError, NoActiveScenarioError
from .metrics import MetricKind, MetricState, all_at_least, apply_delta, below, snapshot, with_updates
from .rescue import final_rescue_available
from .settings import Ruleset, get_difficulty, get_ruleset
from .state import GameStatus, HistoryEntry, RoundFeedback, SessionState
from .templates import Choice, RiskLevel, Scenario

CRITICAL_THRESHOLD = 2.0
STABILITY_FLOOR = 4.0
STABILITY_BONUS = 20
GAIN_POINTS = 10
LOSS_POINTS = 5
TIMEOUT_PENALTY = 1.0
FEEDBACK_EPSILON = 0.01

TIMEOUT_LABEL = "TIMEOUT"


def select_timeout_choice(scenario: Scenario) -> Choice:
    """Default choice on timer expiry: first Low-risk choice, else the first."""
    if not scenario.choices:
        raise NoActiveScenarioError(f"Scenario {scenario.id} has no choices.")
    return next((c for c in scenario.choices if c.risk == RiskLevel.LOW), scenario.choices[0])


def round_half_up(value: float) -> int:
    """Nearest integer, exact halves toward positive infinity."""
    return math.floor(value + 0.5)


def _one_decimal(value: float) -> str:
    # Halves round away from zero on the exact binary value.
    return str(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def momentum_bonus(ruleset: Ruleset, round_number: int) -> float:
    return ruleset.momentum_step * (round_number - 1)


def format_change(kind: MetricKind, diff: float, ruleset: Ruleset) -> str | None:
    """Feedback line for one metric, or None when the change is negligible."""
    if ruleset.fractional_feedback:
        if abs(diff) <= FEEDBACK_EPSILON:
            return None
        sign = "+" if diff > 0 else ""
        shown = str(int(diff)) if float(diff).is_integer() else _one_decimal(diff)
        return f"{kind.value} {sign}{shown}"

    whole = int(diff)
    if whole == 0:
        return None
    sign = "+" if whole > 0 else ""
    return f"{kind.value} {sign}{whole}"


def score_change(diff: float) -> float:
    if diff > 0:
        return diff * GAIN_POINTS
    if diff < 0:
        return diff * LOSS_POINTS
    return 0.0


def resolve(state: SessionState, choice: Choice, is_timeout: bool = False) -> Tuple[SessionState, RoundFeedback]:
    """Apply ``choice`` to the active round.

    Returns (new_state, feedback). Raises NoActiveScenarioError when no
    scenario is active and IllegalTransitionError outside PLAYING.
    """
    scenario = state.current_scenario
    if scenario is None:
        raise NoActiveScenarioError("No scenario is active; wait for the round to start.")
    if state.status != GameStatus.PLAYING:
        raise IllegalTransitionError(f"Cannot resolve a round while {state.status.value}.")

    ruleset = get_ruleset(state.ruleset)
    volatility = get_difficulty(state.difficulty).volatility
    momentum = momentum_bonus(ruleset, state.round)

    updates: Dict[MetricKind, MetricState] = {}
    impacts: List[str] = []
    score_delta = 0.0

    for key, base_impact in choice.impacts.items():
        change = base_impact * volatility + momentum

        if (
            key == MetricKind.FINANCES
            and state.investor_debuff_rounds > 0
            and change > 0
        ):
            change = 0.0
            impacts.append("Finances frozen by Investors")

        if is_timeout:
            change -= TIMEOUT_PENALTY

        old = updates.get(key, state.metrics[key])
        new = apply_delta(old, change)
        updates[key] = new
        diff = new.value - old.value

        line = format_change(key, diff, ruleset)
        if line:
            impacts.append(line)
        score_delta += score_change(diff)

    if momentum > 0 and not is_timeout:
        impacts.append(f"Exp. Bonus: +{momentum:.2f}")
    if is_timeout:
        impacts.append("Timeout Penalty (-1 All)")

    # Untouched metrics keep their value but no longer carry last round's delta.
    for kind in MetricKind:
        if kind not in updates:
            updates[kind] = replace(state.metrics[kind], last_delta=0.0)
    new_metrics = with_updates(state.metrics, updates)

    feedback = RoundFeedback(
        scenario=scenario,
        selected_choice_id=choice.id,
        impacts=tuple(impacts),
        is_timeout=is_timeout,
    )
    entry = HistoryEntry(
        round=state.round,
        metrics=snapshot(new_metrics),
        event_title=scenario.title,
        choice_selected=TIMEOUT_LABEL if is_timeout else choice.text,
    )

    failed = below(new_metrics, CRITICAL_THRESHOLD)
    if failed:
        reason = "Critical failure in: " + ", ".join(k.value for k in failed)
        return (
            replace(
                state,
                metrics=new_metrics,
                status=GameStatus.GAME_OVER,
                game_over_reason=reason,
                last_round_feedback=feedback,
                history=state.history + (entry,),
                current_scenario=None,
            ),
            feedback,
        )

    if all_at_least(new_metrics, STABILITY_FLOOR):
        score_delta += STABILITY_BONUS

    new_state = replace(
        state,
        round=state.round + 1,
        metrics=new_metrics,
        resilience_score=round_half_up(state.resilience_score + score_delta),
        investor_debuff_rounds=max(0, state.investor_debuff_rounds - 1),
        status=GameStatus.ROUND_FEEDBACK,
        last_round_feedback=feedback,
        history=state.history + (entry,),
        current_scenario=None,
    )
    return new_state, feedback


def victory_tier(state: SessionState) -> str | None:
    """Rank a won session by its weakest final metric."""
    if state.status != GameStatus.VICTORY or not state.history:
        return None
    weakest = min(state.history[-1].metrics.values())
    if weakest >= 6:
        return "Legendary CEO (All Metrics Strong)"
    if weakest >= 5:
        return "Stable Leadership (Solid)"
    return "Survivalist (Barely Made It)"


def metric_trend(state: SessionState) -> Dict[str, List[Tuple[int, float]]]:
    """Per-metric (round, value) series built from the history."""
    return {
        kind.value: [(entry.round, entry.metrics[kind]) for entry in state.history]
        for kind in MetricKind
    }


def compute_outcome(state: SessionState, relief_unlocked: bool = False) -> dict:
    """Summarise a session into a debrief-friendly structure."""
    is_victory = state.status == GameStatus.VICTORY
    if is_victory:
        title = "Company Saved!"
        subtitle = "You successfully navigated the crisis period."
    else:
        title = "Bankruptcy Declared"
        subtitle = state.game_over_reason or "Indicators fell below critical levels."

    return {
        "title": title,
        "subtitle": subtitle,
        "status": state.status.value,
        "tier": victory_tier(state),
        "final_score": state.resilience_score,
        "difficulty": state.difficulty.value,
        "rounds_played": len(state.history) - 1 if state.history else 0,
        "trend": metric_trend(state),
        "can_rescue": final_rescue_available(state, relief_unlocked),
    }

"""Emergency relief outside normal round resolution.

Each ruleset offers exactly one mid-round relief: a repeatable bank loan
(enhanced) or a single-use, crisis-gated bailout (baseline). The final
rescue is shared by both and can revive a lost session once.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Tuple

from . import coach
from .errors import IllegalTransitionError
from .metrics import MetricKind, apply_delta, below, set_value, with_updates
from .settings import ReliefKind, get_ruleset
from .state import LIVE_STATUSES, GameStatus, SessionState

LOAN_FINANCE_BOOST = 2.0
LOAN_PENALTY = 10

BAILOUT_FINANCE_BOOST = 3.0
BAILOUT_IMAGE_BOOST = 1.0
BAILOUT_MORALE_COST = 2.0
BAILOUT_PENALTY = 50
BAILOUT_DEBUFF_ROUNDS = 2
CRISIS_THRESHOLD = 3.0

RESCUE_CRITICAL_THRESHOLD = 2.0
RESCUE_RESET_VALUE = 3.0


def _loan_refusal(state: SessionState) -> Optional[str]:
    if state.status not in LIVE_STATUSES:
        return f"Cannot take a loan while {state.status.value}."
    if get_ruleset(state.ruleset).relief != ReliefKind.LOAN:
        return f"Loans are not offered under the {state.ruleset} ruleset."
    return None


def _bailout_refusal(state: SessionState, relief_unlocked: bool) -> Optional[str]:
    if state.status not in LIVE_STATUSES:
        return f"Cannot take a bailout while {state.status.value}."
    if get_ruleset(state.ruleset).relief != ReliefKind.BAILOUT:
        return f"Bailouts are not offered under the {state.ruleset} ruleset."
    if not relief_unlocked:
        return "Emergency bailout is locked until a game has been lost."
    if state.bailout_used:
        return "Emergency bailout has already been used this session."
    if not below(state.metrics, CRISIS_THRESHOLD):
        return "Emergency bailout requires a metric below 3."
    return None


def _final_rescue_refusal(state: SessionState, relief_unlocked: bool) -> Optional[str]:
    if state.status != GameStatus.GAME_OVER:
        return f"Final rescue is only offered after a loss, not while {state.status.value}."
    if state.final_bailout_used:
        return "Final rescue has already been used this session."
    if not relief_unlocked:
        return "Final rescue is locked until a game has been lost."
    return None


def bailout_available(state: SessionState, relief_unlocked: bool) -> bool:
    return _bailout_refusal(state, relief_unlocked) is None


def relief_available(state: SessionState, relief_unlocked: bool) -> bool:
    """Whether the ruleset's mid-round relief would be accepted right now."""
    if get_ruleset(state.ruleset).relief == ReliefKind.LOAN:
        return _loan_refusal(state) is None
    return bailout_available(state, relief_unlocked)


def final_rescue_available(state: SessionState, relief_unlocked: bool) -> bool:
    return _final_rescue_refusal(state, relief_unlocked) is None


def take_loan(state: SessionState) -> Tuple[SessionState, dict]:
    refusal = _loan_refusal(state)
    if refusal:
        raise IllegalTransitionError(refusal)

    finances = apply_delta(state.metrics[MetricKind.FINANCES], LOAN_FINANCE_BOOST)
    new_state = replace(
        state,
        metrics=with_updates(state.metrics, {MetricKind.FINANCES: finances}),
        resilience_score=state.resilience_score - LOAN_PENALTY,
        loan_taken=True,
    )
    return new_state, coach.loan_notice(finances.last_delta, LOAN_PENALTY)


def take_bailout(state: SessionState, relief_unlocked: bool) -> Tuple[SessionState, dict]:
    refusal = _bailout_refusal(state, relief_unlocked)
    if refusal:
        raise IllegalTransitionError(refusal)

    finances = apply_delta(state.metrics[MetricKind.FINANCES], BAILOUT_FINANCE_BOOST)
    image = apply_delta(state.metrics[MetricKind.PUBLIC_IMAGE], BAILOUT_IMAGE_BOOST)
    morale = apply_delta(state.metrics[MetricKind.MORALE], -BAILOUT_MORALE_COST)
    new_state = replace(
        state,
        metrics=with_updates(
            state.metrics,
            {
                MetricKind.FINANCES: finances,
                MetricKind.PUBLIC_IMAGE: image,
                MetricKind.MORALE: morale,
            },
        ),
        resilience_score=state.resilience_score - BAILOUT_PENALTY,
        investor_debuff_rounds=BAILOUT_DEBUFF_ROUNDS,
        bailout_used=True,
    )
    notice = coach.bailout_notice(
        finances.last_delta, image.last_delta, -morale.last_delta, BAILOUT_PENALTY, BAILOUT_DEBUFF_ROUNDS
    )
    return new_state, notice


def take_relief(state: SessionState, relief_unlocked: bool) -> Tuple[SessionState, dict]:
    """Dispatch to the relief mechanic of the session's ruleset."""
    if get_ruleset(state.ruleset).relief == ReliefKind.LOAN:
        return take_loan(state)
    return take_bailout(state, relief_unlocked)


def accept_final_rescue(state: SessionState, relief_unlocked: bool) -> Tuple[SessionState, dict]:
    """Revive a lost session once: critical metrics reset to 3, score halved."""
    refusal = _final_rescue_refusal(state, relief_unlocked)
    if refusal:
        raise IllegalTransitionError(refusal)

    resets = {
        kind: set_value(state.metrics[kind], RESCUE_RESET_VALUE)
        for kind in below(state.metrics, RESCUE_CRITICAL_THRESHOLD)
    }
    new_state = replace(
        state,
        metrics=with_updates(state.metrics, resets),
        status=GameStatus.ROUND_FEEDBACK,
        round=state.round + 1,
        investor_debuff_rounds=max(0, state.investor_debuff_rounds - 1),
        resilience_score=state.resilience_score // 2,
        final_bailout_used=True,
        game_over_reason=None,
    )
    return new_state, coach.final_rescue_notice()

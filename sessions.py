"""FastAPI router for crisis simulation sessions."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from crisis_engine import errors, templates
from crisis_engine.persistence import FlagStore, InMemoryFlagStore
from crisis_engine.session import CrisisSession
from crisis_engine.settings import DIFFICULTY_SETTINGS, Difficulty, RULESETS
from crisis_engine.state import HistoryEntry, RoundFeedback, SessionState

logger = logging.getLogger(__name__)

router = APIRouter()

# Sessions are process-local; the only durable state is the flag store.
_SESSIONS: Dict[str, CrisisSession] = {}
_SESSION_LOCKS: Dict[str, threading.Lock] = {}

# Replaced at startup with a SqlFlagStore when the database is reachable.
_FLAG_STORE: FlagStore = InMemoryFlagStore()


def set_flag_store(store: FlagStore) -> None:
    global _FLAG_STORE
    _FLAG_STORE = store


def get_flag_store() -> FlagStore:
    return _FLAG_STORE


class DifficultyInfo(BaseModel):
    difficulty: str
    time_limit: int
    volatility: float
    rounds: int


class ScenarioSummary(BaseModel):
    id: str
    title: str
    category: str
    choice_count: int


class ChoiceModel(BaseModel):
    id: str
    text: str
    risk: str


class ScenarioModel(BaseModel):
    id: str
    title: str
    description: str
    category: str
    choices: List[ChoiceModel]


class MetricModel(BaseModel):
    kind: str
    value: float
    last_delta: float


class HistoryModel(BaseModel):
    round: int
    metrics: Dict[str, float]
    event_title: str
    choice_selected: str


class FeedbackModel(BaseModel):
    scenario: ScenarioModel
    selected_choice_id: str
    impacts: List[str]
    is_timeout: bool


class NoticeModel(BaseModel):
    title: str
    items: List[str]


class SessionStateModel(BaseModel):
    round: int
    max_rounds: int
    status: str
    difficulty: str
    ruleset: str
    metrics: List[MetricModel]
    history: List[HistoryModel]
    resilience_score: int
    bailout_used: bool
    final_bailout_used: bool
    loan_taken: bool
    investor_debuff_rounds: int
    current_scenario: Optional[ScenarioModel] = None
    last_round_feedback: Optional[FeedbackModel] = None
    game_over_reason: Optional[str] = None
    loading: bool
    time_limit: int


class SessionResponse(BaseModel):
    session_id: str
    state: SessionStateModel
    relief_unlocked: bool
    relief_available: bool
    notice: Optional[NoticeModel] = None


class StartRequest(BaseModel):
    difficulty: Difficulty = Difficulty.NORMAL
    ruleset: Optional[str] = Field(None, description="Ruleset name; defaults to the configured ruleset.")


class ChoiceRequest(BaseModel):
    choice_id: str = Field(..., description="ID of the selected choice for the active scenario.")


class DebriefSummary(BaseModel):
    title: str
    subtitle: str
    status: str
    tier: Optional[str] = None
    final_score: int
    difficulty: str
    rounds_played: int
    trend: Dict[str, List[List[float]]]
    can_rescue: bool


def _to_scenario_model(scenario: templates.Scenario) -> ScenarioModel:
    return ScenarioModel(
        id=scenario.id,
        title=scenario.title,
        description=scenario.description,
        category=scenario.category,
        choices=[ChoiceModel(id=c.id, text=c.text, risk=c.risk.value) for c in scenario.choices],
    )


def _to_history_model(entry: HistoryEntry) -> HistoryModel:
    return HistoryModel(
        round=entry.round,
        metrics={k.value: v for k, v in entry.metrics.items()},
        event_title=entry.event_title,
        choice_selected=entry.choice_selected,
    )


def _to_feedback_model(feedback: RoundFeedback) -> FeedbackModel:
    return FeedbackModel(
        scenario=_to_scenario_model(feedback.scenario),
        selected_choice_id=feedback.selected_choice_id,
        impacts=list(feedback.impacts),
        is_timeout=feedback.is_timeout,
    )


def _to_state_model(state: SessionState) -> SessionStateModel:
    return SessionStateModel(
        round=state.round,
        max_rounds=state.max_rounds,
        status=state.status.value,
        difficulty=state.difficulty.value,
        ruleset=state.ruleset,
        metrics=[
            MetricModel(kind=m.kind.value, value=m.value, last_delta=m.last_delta)
            for m in state.metrics.values()
        ],
        history=[_to_history_model(h) for h in state.history],
        resilience_score=state.resilience_score,
        bailout_used=state.bailout_used,
        final_bailout_used=state.final_bailout_used,
        loan_taken=state.loan_taken,
        investor_debuff_rounds=state.investor_debuff_rounds,
        current_scenario=_to_scenario_model(state.current_scenario) if state.current_scenario else None,
        last_round_feedback=_to_feedback_model(state.last_round_feedback) if state.last_round_feedback else None,
        game_over_reason=state.game_over_reason,
        loading=state.loading,
        time_limit=state.time_limit,
    )


def _response(session_id: str, session: CrisisSession, notice: Optional[dict] = None) -> SessionResponse:
    return SessionResponse(
        session_id=session_id,
        state=_to_state_model(session.state),
        relief_unlocked=session.relief_unlocked,
        relief_available=session.relief_available,
        notice=NoticeModel(**notice) if notice else None,
    )


def _get_session_or_404(session_id: str) -> CrisisSession:
    session = _SESSIONS.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Crisis session not found")
    return session


def _run_command(session_id: str, command):
    """Run one command against a session, serialised per session.

    Engine rejections map onto HTTP errors and leave the session untouched.
    """
    session = _get_session_or_404(session_id)
    with _SESSION_LOCKS.setdefault(session_id, threading.Lock()):
        try:
            command(session)
            # The HTTP client renders its own transition; reveal immediately.
            if session.state.loading:
                session.reveal_now()
        except (errors.NoActiveScenarioError, errors.IllegalTransitionError) as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
    return session


@router.get("/difficulties", response_model=List[DifficultyInfo])
def list_difficulties() -> List[DifficultyInfo]:
    """List the difficulty tiers and their settings."""
    return [
        DifficultyInfo(
            difficulty=d.value,
            time_limit=s.time_limit,
            volatility=s.volatility,
            rounds=s.rounds,
        )
        for d, s in DIFFICULTY_SETTINGS.items()
    ]


@router.get("/rulesets", response_model=List[str])
def list_rulesets() -> List[str]:
    return list(RULESETS)


@router.get("/scenarios", response_model=List[ScenarioSummary])
def list_scenarios() -> List[ScenarioSummary]:
    """List all scenarios in the built-in deck."""
    return [ScenarioSummary(**s) for s in templates.get_all_summaries()]


@router.post("/sessions", response_model=SessionResponse)
def start_session(req: StartRequest, store: FlagStore = Depends(get_flag_store)) -> SessionResponse:
    """Start a new session at the chosen difficulty."""
    session = CrisisSession(store)
    try:
        session.start_game(req.difficulty, ruleset=req.ruleset)
        session.reveal_now()
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    session_id = str(uuid.uuid4())
    _SESSIONS[session_id] = session
    logger.info("Created crisis session %s", session_id)
    return _response(session_id, session)


@router.post("/sessions/{session_id}/start", response_model=SessionResponse)
def start_game_on_session(session_id: str, req: StartRequest) -> SessionResponse:
    """Start a fresh game on an existing session, typically after a restart."""
    session = _run_command(session_id, lambda s: s.start_game(req.difficulty, ruleset=req.ruleset))
    return _response(session_id, session)


@router.delete("/sessions/{session_id}", status_code=204)
def end_session(session_id: str) -> None:
    """Drop a session and its lock from the process-local store."""
    _get_session_or_404(session_id)
    _SESSIONS.pop(session_id, None)
    _SESSION_LOCKS.pop(session_id, None)
    logger.info("Ended crisis session %s", session_id)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
def get_session(session_id: str) -> SessionResponse:
    session = _get_session_or_404(session_id)
    return _response(session_id, session)


@router.post("/sessions/{session_id}/choice", response_model=SessionResponse)
def submit_choice(session_id: str, req: ChoiceRequest) -> SessionResponse:
    """Resolve the active round with the selected choice."""
    session = _run_command(session_id, lambda s: s.submit_choice(req.choice_id))
    return _response(session_id, session)


@router.post("/sessions/{session_id}/timeout", response_model=SessionResponse)
def submit_timeout(session_id: str) -> SessionResponse:
    """Resolve the active round as a timeout (safe choice, -1 penalty)."""
    session = _run_command(session_id, lambda s: s.submit_timeout())
    return _response(session_id, session)


@router.post("/sessions/{session_id}/relief", response_model=SessionResponse)
def take_relief(session_id: str) -> SessionResponse:
    """Take the ruleset's relief: a bank loan or the emergency bailout."""
    session = _run_command(session_id, lambda s: s.take_relief())
    return _response(session_id, session, session.last_notice)


@router.post("/sessions/{session_id}/final-rescue", response_model=SessionResponse)
def accept_final_rescue(session_id: str) -> SessionResponse:
    session = _run_command(session_id, lambda s: s.accept_final_rescue())
    return _response(session_id, session, session.last_notice)


@router.post("/sessions/{session_id}/advance", response_model=SessionResponse)
def advance_round(session_id: str) -> SessionResponse:
    session = _run_command(session_id, lambda s: s.advance_round())
    return _response(session_id, session)


@router.post("/sessions/{session_id}/restart", response_model=SessionResponse)
def restart_session(session_id: str) -> SessionResponse:
    session = _run_command(session_id, lambda s: s.restart())
    return _response(session_id, session)


@router.get("/sessions/{session_id}/debrief", response_model=DebriefSummary)
def get_debrief(session_id: str) -> DebriefSummary:
    """End-of-game summary: headline, tier, trend and rescue availability."""
    session = _get_session_or_404(session_id)
    outcome = session.debrief()
    outcome["trend"] = {k: [[r, v] for r, v in points] for k, points in outcome["trend"].items()}
    return DebriefSummary(**outcome)

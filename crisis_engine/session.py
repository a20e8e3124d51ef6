"""Single-session controller exposing the command interface.

Commands must be serialised per session; the controller is not thread
safe. The only asynchronous piece is the short reveal delay at the start
of each round, which runs as an asyncio task tagged with the session
generation so a superseded reveal is discarded.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional, Sequence

from . import rescue, rules_engine, state_machine, templates
from .persistence import FlagStore
from .settings import Difficulty, EngineConfig, load_config
from .state import GameStatus, RoundFeedback, SessionState
from .templates import Scenario

logger = logging.getLogger(__name__)


class CrisisSession:
    def __init__(
        self,
        flag_store: FlagStore,
        scenarios: Optional[Sequence[Scenario]] = None,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._store = flag_store
        self._scenarios = list(scenarios) if scenarios is not None else templates.all_scenarios()
        self._config = config or load_config()
        self._rng = rng
        # Read once; only ever flips from False to True afterwards.
        self._relief_unlocked = bool(flag_store.get_has_ever_lost())
        self._state = state_machine.idle_state()
        self._generation = 0
        self._reveal_task: Optional[asyncio.Task] = None
        self.last_notice: Optional[dict] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def feedback(self) -> Optional[RoundFeedback]:
        return self._state.last_round_feedback

    @property
    def relief_unlocked(self) -> bool:
        return self._relief_unlocked

    @property
    def relief_available(self) -> bool:
        return rescue.relief_available(self._state, self._relief_unlocked)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending_reveal(self) -> Optional[asyncio.Task]:
        return self._reveal_task

    # -- lifecycle -------------------------------------------------------

    def start_game(self, difficulty: Difficulty | str, ruleset: Optional[str] = None) -> SessionState:
        """Start (or replace) the session with a freshly shuffled deck."""
        new_state = state_machine.initialize_state(
            difficulty,
            self._scenarios,
            ruleset=ruleset or self._config.ruleset,
            rng=self._rng,
            strict_deck=self._config.strict_deck,
        )
        self._supersede()
        self._state = new_state
        self.last_notice = None
        logger.info(
            "Session started: difficulty=%s ruleset=%s rounds=%d",
            new_state.difficulty.value,
            new_state.ruleset,
            new_state.max_rounds,
        )
        self._schedule_reveal()
        return self._state

    def restart(self) -> SessionState:
        self._state = state_machine.restart(self._state)
        self._supersede()
        self.last_notice = None
        return self._state

    def advance_round(self) -> SessionState:
        self._state = state_machine.advance_round(self._state)
        if self._state.status == GameStatus.VICTORY:
            logger.info("Victory with score %d", self._state.resilience_score)
        else:
            self._schedule_reveal()
        return self._state

    # -- round commands --------------------------------------------------

    def submit_choice(self, choice_id: str) -> SessionState:
        new_state, _ = state_machine.apply_choice(self._state, choice_id)
        return self._commit_resolution(new_state)

    def submit_timeout(self) -> SessionState:
        new_state, _ = state_machine.apply_timeout(self._state)
        return self._commit_resolution(new_state)

    def take_relief(self) -> SessionState:
        """Loan or bailout, depending on the session's ruleset."""
        new_state, notice = rescue.take_relief(self._state, self._relief_unlocked)
        self._state = new_state
        self.last_notice = notice
        return self._state

    def accept_final_rescue(self) -> SessionState:
        new_state, notice = rescue.accept_final_rescue(self._state, self._relief_unlocked)
        self._state = new_state
        self.last_notice = notice
        logger.info("Final rescue accepted; score now %d", new_state.resilience_score)
        return self._state

    def debrief(self) -> dict:
        return rules_engine.compute_outcome(self._state, self._relief_unlocked)

    # -- reveal delay ----------------------------------------------------

    def reveal_now(self) -> SessionState:
        """Skip the reveal delay and expose the current round's scenario."""
        self._cancel_pending()
        self._state = state_machine.reveal_scenario(self._state)
        return self._state

    def _schedule_reveal(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: the caller drives the reveal with reveal_now().
            return
        self._cancel_pending()
        self._reveal_task = loop.create_task(self._reveal_after_delay(self._generation))

    async def _reveal_after_delay(self, generation: int) -> bool:
        await asyncio.sleep(self._config.reveal_delay)
        return self._apply_reveal(generation)

    def _apply_reveal(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug("Discarding stale reveal for generation %d (current %d)", generation, self._generation)
            return False
        if self._state.status != GameStatus.PLAYING or not self._state.loading:
            return False
        self._state = state_machine.reveal_scenario(self._state)
        return True

    def _supersede(self) -> None:
        self._generation += 1
        self._cancel_pending()

    def _cancel_pending(self) -> None:
        task, self._reveal_task = self._reveal_task, None
        if task is not None and not task.done():
            task.cancel()

    def _commit_resolution(self, new_state: SessionState) -> SessionState:
        self._state = new_state
        if new_state.status == GameStatus.GAME_OVER:
            logger.info("Game over in round %d: %s", new_state.round, new_state.game_over_reason)
            self._record_loss()
        return self._state

    def _record_loss(self) -> None:
        if self._relief_unlocked:
            return
        self._store.set_has_ever_lost()
        self._relief_unlocked = True

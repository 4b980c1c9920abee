"""Ceremony: the single writer of session state during a live draw.

Wires the round engine to the reveal sequencer. A drawn state is held back
until its reveal finalizes, so a reset in the middle of a reveal leaves no
trace of the half-finished draw.
"""

import logging
import random
from collections.abc import Callable, Iterable, Sequence

from gitwinner import engine
from gitwinner.draw import IndexSource, SecureIndexSource
from gitwinner.errors import DrawInFlightError, IllegalTransitionError
from gitwinner.models import (
    Candidate,
    RevealPhase,
    RoundResult,
    RoundSpec,
    SessionPhase,
    SessionState,
)
from gitwinner.pool import build_pool
from gitwinner.reveal import RevealSequencer, RevealTiming, plan_reveal
from gitwinner.scheduler import Scheduler

logger = logging.getLogger(__name__)


class Ceremony:
    """Drives a multi-round draw with one reveal in flight at a time.

    Args:
        scheduler: Timeline for reveal phases.
        timing: Timing blocks keyed ``"standard"`` and ``"grand_finale"``.
        source: Winner selection source. Defaults to SecureIndexSource.
        rng: Cosmetic randomness for shuffle displays.
        on_state_change: Called with every committed SessionState.
        on_phase: Called when a reveal phase starts.
        on_display: Called with each (candidate, phase) shown by a reveal.
        on_winner: Called with (winner, round_spec, winner_number) once the reveal settles.
        on_round_complete: Called with the finished RoundResult.
        on_session_complete: Called with the final SessionState.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        timing: dict[str, RevealTiming],
        source: IndexSource | None = None,
        rng: random.Random | None = None,
        on_state_change: Callable[[SessionState], None] | None = None,
        on_phase: Callable[[RevealPhase], None] | None = None,
        on_display: Callable[[Candidate, RevealPhase], None] | None = None,
        on_winner: Callable[[Candidate, RoundSpec, int], None] | None = None,
        on_round_complete: Callable[[RoundResult], None] | None = None,
        on_session_complete: Callable[[SessionState], None] | None = None,
    ) -> None:
        if "standard" not in timing:
            raise ValueError("timing must include a 'standard' block")
        self._timing = timing
        self._source = source or SecureIndexSource()
        self._sequencer = RevealSequencer(scheduler, rng=rng, on_phase=on_phase, on_display=on_display)
        self._on_state_change = on_state_change
        self._on_winner = on_winner
        self._on_round_complete = on_round_complete
        self._on_session_complete = on_session_complete
        self._state = engine.idle_state()
        self._pending: SessionState | None = None
        self._auto = False
        self._generation = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._sequencer.in_flight

    def _commit(self, state: SessionState) -> None:
        self._state = state
        if self._on_state_change:
            self._on_state_change(state)

    def _reject_if_in_flight(self, action: str) -> None:
        if self.in_flight:
            logger.warning("Rejected %s: a draw is already in flight", action)
            raise DrawInFlightError()

    def start(self, plan: Sequence[RoundSpec], candidates: Iterable[Candidate]) -> SessionState:
        """Start a session. Only allowed from Idle; call reset() first otherwise.

        Raises:
            InvalidRoundPlanError: If the plan is invalid. State stays Idle.
            IllegalTransitionError: If a session is already running.
        """
        if self._state.phase is not SessionPhase.IDLE:
            raise IllegalTransitionError("start a session", self._state.phase.value)
        self._commit(engine.start_session(plan, build_pool(candidates)))
        return self._state

    def begin_round(self, auto_draw: bool = True) -> SessionState:
        """Begin the pending round. With ``auto_draw`` every winner is drawn in turn.

        Raises:
            DrawInFlightError: If a reveal is still running. Nothing changes.
        """
        self._reject_if_in_flight("begin round")
        generation = self._generation
        self._commit(engine.begin_round(self._state))
        if self._reset_since(generation):
            return self._state
        self._auto = auto_draw
        if self._state.phase is SessionPhase.ROUND_COMPLETED:
            self._finish_round()
        elif auto_draw:
            self.draw_next()
        return self._state

    def draw_next(self) -> Candidate | None:
        """Draw the next winner of the current round and start its reveal.

        Returns:
            The resolved winner (not yet committed), or None when the pool
            ran dry and the round finished short.

        Raises:
            DrawInFlightError: If a reveal is still running. Nothing changes.
        """
        self._reject_if_in_flight("draw")
        display_pool = self._state.pool.candidates
        new_state, winner = engine.draw_one(self._state, self._source)
        if winner is None:
            generation = self._generation
            self._commit(new_state)
            if not self._reset_since(generation):
                self._finish_round()
            return None

        spec = new_state.results[-1].round
        number = len(new_state.results[-1].winners)
        timing = self._timing.get("grand_finale", self._timing["standard"]) if spec.grand_finale else self._timing["standard"]
        self._pending = new_state
        self._sequencer.start(
            display_pool,
            winner,
            plan_reveal(timing, winner_index=number - 1),
            self._on_reveal_finalized,
        )
        return winner

    def _on_reveal_finalized(self, winner: Candidate) -> None:
        state = self._pending
        if state is None:
            return
        self._pending = None
        generation = self._generation
        result = state.results[-1]
        self._commit(state)
        if self._on_winner and not self._reset_since(generation):
            self._on_winner(winner, result.round, len(result.winners))
        if self._reset_since(generation):
            return

        if state.phase is SessionPhase.ROUND_COMPLETED:
            self._finish_round()
        elif self._auto:
            self.draw_next()

    def _finish_round(self) -> None:
        self._auto = False
        generation = self._generation
        result = self._state.results[-1]
        if self._on_round_complete:
            self._on_round_complete(result)
            if self._reset_since(generation):
                return
        self._commit(engine.advance(self._state))
        if self._reset_since(generation):
            return
        if self._state.phase is SessionPhase.SESSION_COMPLETED and self._on_session_complete:
            self._on_session_complete(self._state)

    def _reset_since(self, generation: int) -> bool:
        """True if reset() ran (typically from a callback) after ``generation`` was read."""
        return self._generation != generation

    def reset(self) -> SessionState:
        """Cancel any reveal in flight and return to Idle, discarding all results.

        Safe to call from any callback: work queued by the discarded session
        stops at the next callback boundary.
        """
        self._generation += 1
        self._sequencer.cancel()
        self._pending = None
        self._auto = False
        self._commit(engine.reset_session(self._state))
        return self._state

"""Round engine: pure state transitions over an explicit SessionState value.

Every function takes the current state and returns a new one. Nothing here
holds state between calls; the caller keeps the latest value.
"""

import dataclasses
import logging
from collections.abc import Sequence

from gitwinner import pool as pool_ops
from gitwinner.draw import IndexSource, draw
from gitwinner.errors import EmptyPoolError, IllegalTransitionError, InvalidRoundPlanError
from gitwinner.models import (
    Candidate,
    CandidatePool,
    RoundResult,
    RoundSpec,
    SessionPhase,
    SessionState,
)

logger = logging.getLogger(__name__)


def validate_plan(plan: Sequence[RoundSpec]) -> None:
    """Reject plans that cannot start a session.

    Raises:
        InvalidRoundPlanError: If the plan is empty or any round needs fewer than one winner.
    """
    if not plan:
        raise InvalidRoundPlanError("Round plan must contain at least one round")
    for position, spec in enumerate(plan, start=1):
        required = spec.winners_required
        if isinstance(required, bool) or not isinstance(required, int):
            raise InvalidRoundPlanError(
                f"Round {position} ({spec.name!r}) winners_required must be an integer, got {required!r}"
            )
        if required <= 0:
            raise InvalidRoundPlanError(
                f"Round {position} ({spec.name!r}) must require at least one winner, got {required}"
            )


def _require(state: SessionState, action: str, *phases: SessionPhase) -> None:
    if state.phase not in phases:
        raise IllegalTransitionError(action, state.phase.value)


def idle_state() -> SessionState:
    return SessionState()


def start_session(plan: Sequence[RoundSpec], pool: CandidatePool) -> SessionState:
    """Idle -> RoundPending(0) with a fresh pool and no results.

    Duplicate candidate ids are collapsed to their first occurrence, so
    ``original_size`` always counts distinct people.

    Raises:
        InvalidRoundPlanError: If ``plan`` fails validation. No state is created.
    """
    validate_plan(plan)
    unique = pool_ops.build_pool(pool.candidates)
    if pool_ops.size(unique) != pool_ops.size(pool):
        logger.warning(
            "Dropped %d duplicate candidate(s) from the pool",
            pool_ops.size(pool) - pool_ops.size(unique),
        )
        pool = unique
    logger.info(
        "Session started: %d candidates, %d rounds (%s)",
        pool_ops.size(pool),
        len(plan),
        ", ".join(str(r.winners_required) for r in plan),
    )
    return SessionState(
        plan=tuple(plan),
        current_round_index=0,
        pool=pool,
        results=(),
        phase=SessionPhase.ROUND_PENDING,
        original_size=pool_ops.size(pool),
    )


def current_round(state: SessionState) -> RoundSpec | None:
    if state.phase in (SessionPhase.IDLE, SessionPhase.SESSION_COMPLETED):
        return None
    return state.plan[state.current_round_index]


def winners_so_far(state: SessionState) -> tuple[Candidate, ...]:
    """Winners drawn in the round currently in progress (or just completed)."""
    if state.phase not in (SessionPhase.ROUND_DRAWING, SessionPhase.ROUND_COMPLETED):
        return ()
    return state.results[-1].winners


def all_winners(state: SessionState) -> list[Candidate]:
    return [w for result in state.results for w in result.winners]


def shortfall(result: RoundResult) -> int:
    """How many winners the round is missing because the pool ran out."""
    return result.round.winners_required - len(result.winners)


def _complete_round(state: SessionState) -> SessionState:
    result = state.results[-1]
    missing = shortfall(result)
    if missing > 0:
        logger.warning(
            "%s completed with %d/%d winners: pool exhausted",
            result.round.name,
            len(result.winners),
            result.round.winners_required,
        )
    else:
        logger.info("%s completed with %d winners", result.round.name, len(result.winners))
    return dataclasses.replace(state, phase=SessionPhase.ROUND_COMPLETED)


def begin_round(state: SessionState) -> SessionState:
    """RoundPending(i) -> RoundDrawing(i, []).

    With an empty pool the round is recorded with no winners and moves
    straight to RoundCompleted(i); the shortfall shows in its result.
    """
    _require(state, "begin a round", SessionPhase.ROUND_PENDING)
    spec = state.plan[state.current_round_index]
    started = dataclasses.replace(
        state,
        results=state.results + (RoundResult(round=spec),),
        phase=SessionPhase.ROUND_DRAWING,
    )
    logger.info(
        "%s started: %d winners required, %d candidates left",
        spec.name,
        spec.winners_required,
        pool_ops.size(state.pool),
    )
    if pool_ops.size(state.pool) == 0:
        return _complete_round(started)
    return started


def draw_one(state: SessionState, source: IndexSource) -> tuple[SessionState, Candidate | None]:
    """Draw one winner for the current round, remove it from the pool, append it.

    Returns:
        (new_state, winner). ``winner`` is None when the pool was already
        empty; the round is then completed short instead of failing.
    """
    _require(state, "draw", SessionPhase.ROUND_DRAWING)
    result = state.results[-1]

    try:
        winner = draw(state.pool, source)
    except EmptyPoolError:
        logger.info("Pool empty during %s, ending round early", result.round.name)
        return _complete_round(state), None

    updated = RoundResult(round=result.round, winners=result.winners + (winner,))
    new_state = dataclasses.replace(
        state,
        pool=pool_ops.remove(state.pool, winner.id),
        results=state.results[:-1] + (updated,),
    )
    logger.info(
        "%s winner #%d: %s (%d left in pool)",
        result.round.name,
        len(updated.winners),
        winner.id,
        pool_ops.size(new_state.pool),
    )

    if len(updated.winners) >= result.round.winners_required or pool_ops.size(new_state.pool) == 0:
        new_state = _complete_round(new_state)
    return new_state, winner


def advance(state: SessionState) -> SessionState:
    """RoundCompleted(i) -> RoundPending(i+1), or SessionCompleted after the last round."""
    _require(state, "advance", SessionPhase.ROUND_COMPLETED)
    next_index = state.current_round_index + 1
    if next_index < len(state.plan):
        return dataclasses.replace(
            state, current_round_index=next_index, phase=SessionPhase.ROUND_PENDING
        )
    logger.info(
        "Session completed: %d winners, %d candidates not drawn",
        len(all_winners(state)),
        pool_ops.size(state.pool),
    )
    return dataclasses.replace(state, phase=SessionPhase.SESSION_COMPLETED)


def reset_session(state: SessionState) -> SessionState:
    """Discard the session and every round result."""
    if state.phase is not SessionPhase.IDLE:
        logger.info("Session reset (%d results discarded)", len(state.results))
    return idle_state()


def run_session(
    plan: Sequence[RoundSpec],
    pool: CandidatePool,
    source: IndexSource,
) -> SessionState:
    """Run every round to completion without any reveal animation."""
    state = start_session(plan, pool)
    while state.phase is not SessionPhase.SESSION_COMPLETED:
        state = begin_round(state)
        while state.phase is SessionPhase.ROUND_DRAWING:
            state, _ = draw_one(state, source)
        state = advance(state)
    return state

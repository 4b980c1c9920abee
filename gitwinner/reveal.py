"""Reveal sequencer: turn one already-drawn winner into a timed slot-machine reveal.

The winner is resolved before the first tick and threaded unchanged through
every phase. Shuffle and decelerate ticks show random candidates purely for
show; only the reveal phase shows the winner.

Phases run strictly in order: shuffle -> decelerate -> reveal -> settle.
"""

import logging
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from gitwinner.errors import DrawInFlightError
from gitwinner.models import Candidate, RevealPhase
from gitwinner.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class RevealTiming(Protocol):
    """Timing knobs for one reveal. All durations in milliseconds."""

    shuffle_interval_ms: int
    shuffle_ticks: int
    shuffle_ticks_per_winner: int
    shuffle_fraction: float
    decelerate_ticks: int
    decelerate_base_ms: int
    decelerate_factor: float
    settle_ms: int


@dataclass(frozen=True)
class RevealPlan:
    shuffle_interval_sec: float
    shuffle_ticks: int
    decelerate_delays_sec: tuple[float, ...]
    reveal_delay_sec: float
    settle_sec: float

    @property
    def total_duration_sec(self) -> float:
        return (
            self.shuffle_interval_sec * self.shuffle_ticks
            + sum(self.decelerate_delays_sec)
            + self.reveal_delay_sec
            + self.settle_sec
        )


def plan_reveal(timing: RevealTiming, winner_index: int = 0) -> RevealPlan:
    """Compute the deterministic schedule for one reveal.

    Args:
        timing: Timing block for the round (standard or grand finale).
        winner_index: 0-based position of this winner within its round. Each
            later winner spins a little longer.

    Returns:
        RevealPlan. Decelerate gaps grow geometrically from
        ``decelerate_base_ms`` by ``decelerate_factor``; the gap before the
        reveal continues the same progression.
    """
    total_shuffles = timing.shuffle_ticks + timing.shuffle_ticks_per_winner * max(winner_index, 0)
    shuffle_ticks = max(1, int(round(total_shuffles * timing.shuffle_fraction, 6)) + 1)
    delays = tuple(
        timing.decelerate_base_ms * timing.decelerate_factor ** j / 1000.0
        for j in range(timing.decelerate_ticks)
    )
    reveal_delay = timing.decelerate_base_ms * timing.decelerate_factor ** timing.decelerate_ticks / 1000.0
    return RevealPlan(
        shuffle_interval_sec=timing.shuffle_interval_ms / 1000.0,
        shuffle_ticks=shuffle_ticks,
        decelerate_delays_sec=delays,
        reveal_delay_sec=reveal_delay,
        settle_sec=timing.settle_ms / 1000.0,
    )


class RevealRun:
    """One reveal in progress. Only the sequencer creates these."""

    def __init__(
        self,
        sequencer: "RevealSequencer",
        candidates: Sequence[Candidate],
        winner: Candidate,
        plan: RevealPlan,
        on_finalized: Callable[[Candidate], None],
    ) -> None:
        self._sequencer = sequencer
        self._candidates = tuple(candidates) or (winner,)
        self.winner = winner
        self.plan = plan
        self._on_finalized = on_finalized
        self._handle: TimerHandle | None = None
        self._shuffles_done = 0
        self._decelerates_done = 0
        self.phase: RevealPhase | None = None
        self.finished = False
        self.cancelled = False

    def cancel(self) -> None:
        """Stop the reveal. No further phase, display or finalize callback fires."""
        if self.finished or self.cancelled:
            return
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._sequencer._release(self)
        logger.info("Reveal for %s cancelled during %s", self.winner.id, self.phase)

    # -- phase steps -----------------------------------------------------

    def _schedule(self, delay: float, step: Callable[[], None]) -> None:
        self._handle = self._sequencer._scheduler.call_later(delay, step)

    def _enter(self, phase: RevealPhase) -> None:
        self.phase = phase
        logger.debug("Reveal %s: %s", self.winner.id, phase.value)
        self._sequencer._emit_phase(phase)

    def _start(self) -> None:
        self._enter(RevealPhase.SHUFFLE)
        self._schedule(self.plan.shuffle_interval_sec, self._shuffle_tick)

    def _random_display(self) -> Candidate:
        return self._candidates[self._sequencer._rng.randrange(len(self._candidates))]

    def _shuffle_tick(self) -> None:
        self._sequencer._emit_display(self._random_display(), RevealPhase.SHUFFLE)
        self._shuffles_done += 1
        if self._shuffles_done < self.plan.shuffle_ticks:
            self._schedule(self.plan.shuffle_interval_sec, self._shuffle_tick)
            return
        self._enter(RevealPhase.DECELERATE)
        self._schedule_decelerate()

    def _schedule_decelerate(self) -> None:
        if self._decelerates_done < len(self.plan.decelerate_delays_sec):
            self._schedule(self.plan.decelerate_delays_sec[self._decelerates_done], self._decelerate_tick)
        else:
            self._schedule(self.plan.reveal_delay_sec, self._reveal)

    def _decelerate_tick(self) -> None:
        self._sequencer._emit_display(self._random_display(), RevealPhase.DECELERATE)
        self._decelerates_done += 1
        self._schedule_decelerate()

    def _reveal(self) -> None:
        self._enter(RevealPhase.REVEAL)
        self._sequencer._emit_display(self.winner, RevealPhase.REVEAL)
        self._enter(RevealPhase.SETTLE)
        self._schedule(self.plan.settle_sec, self._finalize)

    def _finalize(self) -> None:
        self._handle = None
        self.finished = True
        self._sequencer._release(self)
        self._on_finalized(self.winner)


class RevealSequencer:
    """Plays reveals one at a time on a scheduler.

    Args:
        scheduler: Timeline the phases run on.
        rng: Cosmetic randomness for shuffle displays. Never used to pick winners.
        on_phase: Called with each RevealPhase as it starts.
        on_display: Called with (candidate, phase) for every displayed candidate.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        rng: random.Random | None = None,
        on_phase: Callable[[RevealPhase], None] | None = None,
        on_display: Callable[[Candidate, RevealPhase], None] | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._rng = rng or random.Random()
        self._on_phase = on_phase
        self._on_display = on_display
        self._active: RevealRun | None = None

    @property
    def in_flight(self) -> bool:
        return self._active is not None

    def start(
        self,
        candidates: Sequence[Candidate],
        winner: Candidate,
        plan: RevealPlan,
        on_finalized: Callable[[Candidate], None],
    ) -> RevealRun:
        """Begin revealing ``winner``. ``on_finalized`` fires once, after the settle pause.

        Raises:
            DrawInFlightError: If another reveal is still running.
        """
        if self._active is not None:
            raise DrawInFlightError()
        run = RevealRun(self, candidates, winner, plan, on_finalized)
        self._active = run
        logger.debug(
            "Reveal for %s scheduled: %.2fs total", winner.id, plan.total_duration_sec
        )
        run._start()
        return run

    def cancel(self) -> None:
        if self._active is not None:
            self._active.cancel()

    def _release(self, run: RevealRun) -> None:
        if self._active is run:
            self._active = None

    def _emit_phase(self, phase: RevealPhase) -> None:
        if self._on_phase:
            self._on_phase(phase)

    def _emit_display(self, candidate: Candidate, phase: RevealPhase) -> None:
        if self._on_display:
            self._on_display(candidate, phase)

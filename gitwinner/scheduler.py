"""Timer scheduling: asyncio in production, a logical clock in tests."""

import asyncio
import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(ABC):
    """Runs callbacks after a delay on a single logical timeline."""

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds."""
        ...

    @abstractmethod
    def call_later(self, delay_sec: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule ``callback`` to run once after ``delay_sec`` seconds.

        Returns:
            Handle whose ``cancel()`` prevents the callback from running.
        """
        ...


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop.

    Args:
        loop: Event loop to schedule on. Defaults to the running loop.
        on_error: Receives any exception raised by a timer callback. Without it
            the exception goes to the loop's exception handler.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._on_error = on_error

    def now(self) -> float:
        return self._loop.time()

    def call_later(self, delay_sec: float, callback: Callable[[], None]) -> TimerHandle:
        return self._loop.call_later(max(delay_sec, 0.0), self._run, callback)

    def _run(self, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception as exc:
            if self._on_error is None:
                raise
            logger.debug("Timer callback failed: %s", exc)
            self._on_error(exc)


class _VirtualTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler(Scheduler):
    """Deterministic scheduler driven by ``advance()``. Nothing runs until time moves."""

    def __init__(self) -> None:
        self._now = 0.0
        self._queue: list[tuple[float, int, _VirtualTimer]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_sec: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _VirtualTimer(self._now + max(delay_sec, 0.0), callback)
        heapq.heappush(self._queue, (timer.due, next(self._seq), timer))
        return timer

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that have not run or been cancelled."""
        return sum(1 for _, _, t in self._queue if not t.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running every callback that falls due in order."""
        if seconds < 0:
            raise ValueError("Cannot move virtual time backwards")
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = due
            timer.callback()
        self._now = target

    def run_until_idle(self, limit: int = 100_000) -> None:
        """Run callbacks until none are left, jumping the clock to each due time."""
        for _ in range(limit):
            while self._queue and self._queue[0][2].cancelled:
                heapq.heappop(self._queue)
            if not self._queue:
                return
            due, _, timer = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            timer.callback()
        raise RuntimeError(f"Scheduler still busy after {limit} callbacks")

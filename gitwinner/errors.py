"""Exceptions raised by the draw core."""


class RaffleError(Exception):
    """Base class for draw core failures."""


class EmptyPoolError(RaffleError):
    """Raised when a draw is attempted against a pool with no candidates."""

    def __init__(self) -> None:
        super().__init__("Cannot draw from an empty candidate pool")


class InvalidRoundPlanError(RaffleError):
    """Raised when a round plan cannot start a session."""


class DrawInFlightError(RaffleError):
    """Raised when a new draw is requested while a reveal is still running."""

    def __init__(self) -> None:
        super().__init__("A draw is already in flight")


class IllegalTransitionError(RaffleError):
    """Raised when a session transition is requested from the wrong phase."""

    def __init__(self, action: str, phase: str) -> None:
        self.action = action
        self.phase = phase
        super().__init__(f"Cannot {action} while session is {phase}")

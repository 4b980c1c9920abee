"""Pure dataclasses for the GitWinner raffle. No logic, no deps."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Candidate:
    id: str                # unique handle (GitHub login)
    display_name: str
    avatar_ref: str

    @property
    def profile_url(self) -> str:
        return f"https://github.com/{self.id}"


@dataclass(frozen=True)
class CandidatePool:
    candidates: tuple[Candidate, ...] = ()


@dataclass(frozen=True)
class RoundSpec:
    name: str
    winners_required: int
    grand_finale: bool = False


@dataclass(frozen=True)
class RoundResult:
    round: RoundSpec
    winners: tuple[Candidate, ...] = ()   # draw order, first drawn at index 0


class SessionPhase(str, Enum):
    IDLE = "idle"
    ROUND_PENDING = "round_pending"
    ROUND_DRAWING = "round_drawing"
    ROUND_COMPLETED = "round_completed"
    SESSION_COMPLETED = "session_completed"


class RevealPhase(str, Enum):
    SHUFFLE = "shuffle"
    DECELERATE = "decelerate"
    REVEAL = "reveal"
    SETTLE = "settle"


@dataclass(frozen=True)
class SessionState:
    plan: tuple[RoundSpec, ...] = ()
    current_round_index: int = 0
    pool: CandidatePool = field(default_factory=CandidatePool)
    results: tuple[RoundResult, ...] = ()
    phase: SessionPhase = SessionPhase.IDLE
    original_size: int = 0


@dataclass
class RaffleRecord:
    issue_url: str
    state: SessionState
    participant_count: int
    total_duration_sec: float
    announcements: dict[str, str] = field(default_factory=dict)   # login -> message
    seeded: bool = False


@dataclass
class Announcement:
    provider: str          # "gemini", "openai", "claude", "grok", or "canned"
    model: str
    winner_id: str
    content: str
    latency_sec: float = 0.0

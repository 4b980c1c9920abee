"""Candidate pool operations. Pools are values: every operation returns a new pool."""

from collections.abc import Iterable

from gitwinner.models import Candidate, CandidatePool


def build_pool(candidates: Iterable[Candidate]) -> CandidatePool:
    """Build a pool keeping the first occurrence of each candidate id, in order."""
    seen: set[str] = set()
    unique: list[Candidate] = []
    for candidate in candidates:
        if candidate.id in seen:
            continue
        seen.add(candidate.id)
        unique.append(candidate)
    return CandidatePool(candidates=tuple(unique))


def remove(pool: CandidatePool, candidate_id: str) -> CandidatePool:
    """Return ``pool`` without ``candidate_id``. Unknown ids return the pool unchanged."""
    if not contains(pool, candidate_id):
        return pool
    return CandidatePool(
        candidates=tuple(c for c in pool.candidates if c.id != candidate_id)
    )


def size(pool: CandidatePool) -> int:
    return len(pool.candidates)


def contains(pool: CandidatePool, candidate_id: str) -> bool:
    return any(c.id == candidate_id for c in pool.candidates)

"""Random draw primitive: pick one candidate uniformly from a pool."""

import logging
import random
import secrets
from abc import ABC, abstractmethod

from gitwinner.errors import EmptyPoolError
from gitwinner.models import Candidate, CandidatePool

logger = logging.getLogger(__name__)

# Width of the raw value reduced modulo the pool size
_SOURCE_BITS = 32


class IndexSource(ABC):
    """Generator of uniformly random indexes."""

    @abstractmethod
    def index(self, n: int) -> int:
        """Return an index in ``[0, n)``.

        Args:
            n: Number of choices. Always greater than zero.
        """
        ...


class SecureIndexSource(IndexSource):
    """Cryptographically strong source: a 32-bit value from ``secrets`` reduced modulo n."""

    def index(self, n: int) -> int:
        if n <= 0:
            raise ValueError("n must be positive")
        return secrets.randbits(_SOURCE_BITS) % n


class SeededIndexSource(IndexSource):
    """Deterministic source for tests and rehearsal runs. Never use for a live draw."""

    def __init__(self, seed: int | str | None = None) -> None:
        self._rng = random.Random(seed)

    def index(self, n: int) -> int:
        if n <= 0:
            raise ValueError("n must be positive")
        return self._rng.randrange(n)


def draw(pool: CandidatePool, source: IndexSource) -> Candidate:
    """Pick one candidate from ``pool`` with probability 1/n each.

    Raises:
        EmptyPoolError: If the pool has no candidates.
    """
    n = len(pool.candidates)
    if n == 0:
        raise EmptyPoolError()
    idx = source.index(n)
    if not 0 <= idx < n:
        raise ValueError(f"Index source returned {idx} for a pool of {n}")
    logger.debug("Drew index %d of %d", idx, n)
    return pool.candidates[idx]

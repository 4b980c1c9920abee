"""Tests for gitwinner/draw.py."""

from collections import Counter

import pytest

from gitwinner.draw import IndexSource, SecureIndexSource, SeededIndexSource, draw
from gitwinner.errors import EmptyPoolError, RaffleError
from gitwinner.pool import build_pool
from tests.conftest import make_candidates


class FixedIndexSource(IndexSource):
    def __init__(self, value: int) -> None:
        self.value = value
        self.calls: list[int] = []

    def index(self, n: int) -> int:
        self.calls.append(n)
        return self.value


def test_draw_empty_pool_raises():
    with pytest.raises(EmptyPoolError):
        draw(build_pool([]), SecureIndexSource())


def test_empty_pool_error_is_raffle_error():
    assert issubclass(EmptyPoolError, RaffleError)


def test_draw_uses_index_from_source():
    pool = build_pool(make_candidates(5))
    source = FixedIndexSource(3)
    assert draw(pool, source).id == "user4"
    assert source.calls == [5]


def test_draw_rejects_out_of_range_index():
    pool = build_pool(make_candidates(2))
    with pytest.raises(ValueError, match="Index source returned 2"):
        draw(pool, FixedIndexSource(2))


def test_draw_single_candidate_always_wins():
    pool = build_pool(make_candidates(1))
    assert all(draw(pool, SecureIndexSource()).id == "user1" for _ in range(50))


def test_secure_source_stays_in_range():
    source = SecureIndexSource()
    for n in (1, 2, 7, 100):
        for _ in range(200):
            assert 0 <= source.index(n) < n


@pytest.mark.parametrize("source_cls", [SecureIndexSource, SeededIndexSource])
def test_source_rejects_non_positive_n(source_cls):
    with pytest.raises(ValueError):
        source_cls().index(0)


def test_seeded_source_is_deterministic():
    a = SeededIndexSource(42)
    b = SeededIndexSource(42)
    assert [a.index(10) for _ in range(20)] == [b.index(10) for _ in range(20)]


@pytest.mark.parametrize("n", [2, 5, 10])
def test_secure_draw_frequency_is_uniform(n):
    """10,000 draws land within ±15% of the expected 1/n frequency for every candidate."""
    pool = build_pool(make_candidates(n))
    source = SecureIndexSource()
    trials = 10_000
    counts = Counter(draw(pool, source).id for _ in range(trials))

    expected = trials / n
    assert set(counts) == {c.id for c in pool.candidates}
    for candidate_id, count in counts.items():
        assert abs(count - expected) <= expected * 0.15, f"{candidate_id}: {count} vs {expected}"

"""Tests for the puzzle session engine."""
import random
from datetime import UTC, datetime, timedelta
from itertools import combinations

import pytest

from wordpuzzle.models.level_models import LevelSpec, WordSpec
from wordpuzzle.models.session_models import PlacementRejection
from wordpuzzle.services.session_service import PuzzleSession


class FakeClock:
    """Manually advanced clock."""

    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def solve(session: PuzzleSession) -> None:
    """Place every cluster of every word in order."""
    used = set()
    for word_index, word in enumerate(session.level.target_words):
        cell = 0
        for cluster in word.clusters:
            token = next(
                t for t in session.find_clusters_by_text(cluster) if t.cluster_id not in used
            )
            used.add(token.cluster_id)
            assert session.place(token.cluster_id, word_index, cell)
            cell += len(cluster)


def test_place_completes_word_and_level(test_level: LevelSpec) -> None:
    """Test TE at cell 0 then ST at cell 2 completes TEST and the level."""
    session = PuzzleSession(test_level)

    assert session.place(0, 0, 0) is True
    assert session.completed_words_order == []
    assert session.is_completed is False

    assert session.place(1, 0, 2) is True
    assert session.completed_words_order == ["TEST"]
    assert session.is_completed is True
    assert session.available_clusters == []


def test_overlapping_placement_is_rejected(test_level: LevelSpec) -> None:
    """Test that ST at cell 1 overlaps TE and changes nothing."""
    session = PuzzleSession(test_level)
    assert session.place(0, 0, 0)
    snapshot = session.field_snapshot()

    result = session.try_place(1, 0, 1)
    assert not result
    assert result.rejection is PlacementRejection.CELLS_OCCUPIED
    assert session.place(1, 0, 1) is False
    assert session.field_snapshot() == snapshot
    assert not session.get_cluster(1).is_placed
    assert [t.cluster_id for t in session.placed_clusters] == [0]


def test_word_index_out_of_range(four_word_level: LevelSpec) -> None:
    """Test placing on word 99 of a four-word level."""
    session = PuzzleSession(four_word_level)
    result = session.try_place(0, 99, 0)
    assert result.accepted is False
    assert result.rejection is PlacementRejection.WORD_OUT_OF_RANGE
    assert session.place(0, -1, 0) is False


@pytest.mark.parametrize("start", [-1, 5, 6])
def test_cell_range_is_enforced(test_level: LevelSpec, start: int) -> None:
    """Test that a cluster must fit inside the row."""
    session = PuzzleSession(test_level)
    result = session.try_place(0, 0, start)
    assert result.rejection is PlacementRejection.CELL_OUT_OF_RANGE


def test_cluster_fits_at_row_end(test_level: LevelSpec) -> None:
    """Test that the last two cells accept a two-letter cluster."""
    session = PuzzleSession(test_level)
    assert session.place(0, 0, 4)


def test_unknown_and_already_placed_clusters(test_level: LevelSpec) -> None:
    """Test rejections for bad cluster ids."""
    session = PuzzleSession(test_level)
    assert session.try_place(42, 0, 0).rejection is PlacementRejection.UNKNOWN_CLUSTER
    assert session.place(0, 0, 0)
    assert session.try_place(0, 0, 3).rejection is PlacementRejection.ALREADY_PLACED


def test_remove(test_level: LevelSpec) -> None:
    """Test removal returns a token to the available view."""
    session = PuzzleSession(test_level)
    assert session.remove(0) is False
    assert session.try_remove(0).rejection is PlacementRejection.NOT_PLACED
    assert session.try_remove(9).rejection is PlacementRejection.UNKNOWN_CLUSTER

    assert session.place(0, 0, 0)
    assert session.remove(0) is True
    assert not session.get_cluster(0).is_placed
    assert {t.cluster_id for t in session.available_clusters} == {0, 1}
    assert session.place(0, 0, 1)


def test_remove_keeps_completed_word_and_completion(test_level: LevelSpec) -> None:
    """Test that completed words and the completed flag survive removal."""
    session = PuzzleSession(test_level)
    session.place(0, 0, 0)
    session.place(1, 0, 2)
    assert session.is_completed

    assert session.remove(1)
    assert session.completed_words_order == ["TEST"]
    assert session.is_completed is True

    assert session.place(1, 0, 2)
    assert session.completed_words_order == ["TEST"]


def test_word_completion_does_not_duplicate(four_word_level: LevelSpec) -> None:
    """Test that re-forming a word before level completion is not recorded twice."""
    session = PuzzleSession(four_word_level)
    gar = session.find_clusters_by_text("GAR")[0].cluster_id
    den = session.find_clusters_by_text("DEN")[0].cluster_id

    assert session.place(gar, 1, 0)
    result = session.try_place(den, 1, 3)
    assert result.completed_word == "GARDEN"
    assert session.is_word_completed(1)

    assert session.remove(den)
    assert session.try_place(den, 1, 3).completed_word is None
    assert session.completed_words_order == ["GARDEN"]


def test_completed_words_follow_solving_order(four_word_level: LevelSpec) -> None:
    """Test that words are logged in the order they were finished."""
    session = PuzzleSession(four_word_level)

    def place(text: str, word_index: int, cell: int):
        token = session.find_clusters_by_text(text)[0]
        return session.try_place(token.cluster_id, word_index, cell)

    place("CAS", 3, 0)
    place("TLE", 3, 3)
    place("WIN", 2, 0)
    place("TER", 2, 3)
    place("GAR", 1, 0)
    place("DEN", 1, 3)
    place("PL", 0, 0)
    place("AN", 0, 2)
    assert not session.is_completed
    result = place("ET", 0, 4)

    assert result.level_completed is True
    assert session.completed_words_order == ["CASTLE", "WINTER", "GARDEN", "PLANET"]


def test_level_needs_every_cluster_placed() -> None:
    """Test that stray pool clusters block completion until placed."""
    level = LevelSpec(
        level_id=2,
        target_words=(WordSpec("TEST", ("TE", "ST")),),
        available_clusters=("TE", "ST", "X"),
        cells_per_word=6,
    )
    session = PuzzleSession(level)
    session.place(0, 0, 0)
    session.place(1, 0, 2)
    assert session.completed_words_order == ["TEST"]
    assert session.is_completed is False

    result = session.try_place(2, 0, 5)
    assert result.level_completed is True
    assert session.is_completed is True


def test_completion_time_uses_clock(test_level: LevelSpec) -> None:
    """Test that completion time is measured once at completion."""
    clock = FakeClock()
    session = PuzzleSession(test_level, clock=clock)
    assert session.completion_time_seconds == 0.0

    clock.advance(12.5)
    assert session.elapsed_seconds() == pytest.approx(12.5)
    session.place(0, 0, 0)
    clock.advance(30)
    session.place(1, 0, 2)

    assert session.completion_time_seconds == pytest.approx(42.5)
    clock.advance(100)
    session.remove(0)
    assert session.completion_time_seconds == pytest.approx(42.5)
    assert session.elapsed_seconds() == pytest.approx(42.5)


def test_field_snapshot(four_word_level: LevelSpec) -> None:
    """Test the derived letter grid."""
    session = PuzzleSession(four_word_level)
    grid = session.field_snapshot()
    assert len(grid) == 4
    assert all(row == [None] * 6 for row in grid)

    win = session.find_clusters_by_text("WIN")[0].cluster_id
    session.place(win, 2, 1)
    grid = session.field_snapshot()
    assert grid[2] == [None, "W", "I", "N", None, None]


def test_full_solve(four_word_level: LevelSpec) -> None:
    """Test solving the reference-sized level."""
    session = PuzzleSession(four_word_level)
    solve(session)
    assert session.is_completed
    assert session.completed_words_order == ["PLANET", "GARDEN", "WINTER", "CASTLE"]
    assert ["".join(row) for row in session.field_snapshot()] == ["PLANET", "GARDEN", "WINTER", "CASTLE"]


def test_random_operations_never_overlap(four_word_level: LevelSpec) -> None:
    """Test the no-overlap invariant and completion monotonicity under random play."""
    rng = random.Random(2024)
    session = PuzzleSession(four_word_level)
    seen_completed = False

    for _ in range(2000):
        cluster_id = rng.randrange(len(four_word_level.available_clusters))
        if rng.random() < 0.3:
            session.remove(cluster_id)
        else:
            session.place(cluster_id, rng.randrange(-1, 5), rng.randrange(-1, 7))

        for word_index in range(session.word_count):
            tokens = session.get_word_tokens(word_index)
            for a, b in combinations(tokens, 2):
                a_end = a.position.start_cell_index + a.length
                b_end = b.position.start_cell_index + b.length
                assert a_end <= b.position.start_cell_index or b_end <= a.position.start_cell_index

        if seen_completed:
            assert session.is_completed
        seen_completed = session.is_completed

        order = session.completed_words_order
        assert len(order) == len(set(order))


def test_invalid_level_cannot_start_session() -> None:
    """Test that sessions refuse levels failing validation."""
    level = LevelSpec(level_id=0, target_words=(WordSpec("AB", ("AB",)),), available_clusters=("AB",))
    with pytest.raises(ValueError):
        PuzzleSession(level)


if __name__ == "__main__":
    pytest.main([__file__])

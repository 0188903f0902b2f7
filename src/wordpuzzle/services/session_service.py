"""Puzzle session engine: placement, removal and completion tracking."""
import logging
from datetime import UTC, datetime
from typing import Callable, List, Optional

from wordpuzzle import monitoring
from wordpuzzle.models.level_models import LevelSpec, validate_level
from wordpuzzle.models.session_models import ClusterToken, PlacementRejection, PlacementResult
from wordpuzzle.services.cluster_registry import ClusterRegistry

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class PuzzleSession:
    """State of one attempt at a level.

    The session moves from active to completed exactly once. Completion is
    decided from the token collection alone; ``field_snapshot`` is a derived
    view for display. Calls must be serialized by the owner.
    """

    def __init__(self, level: LevelSpec, clock: Optional[Clock] = None):
        result = validate_level(level)
        if not result:
            raise ValueError(f"Cannot start session for invalid level {level.level_id}: {result.reason}")

        self._level = level
        self._clock = clock or utc_now
        self._registry = ClusterRegistry.from_level(level)
        self._completed_words_order: List[str] = []
        self._is_completed = False
        self.start_time: datetime = self._clock()
        self.completion_time: Optional[datetime] = None

        logger.info(
            f"Session started for level {level.level_id}: "
            f"{level.word_count} words, {len(self._registry)} clusters"
        )

    @property
    def level(self) -> LevelSpec:
        return self._level

    @property
    def level_id(self) -> int:
        return self._level.level_id

    @property
    def word_count(self) -> int:
        return self._level.word_count

    @property
    def cells_per_word(self) -> int:
        return self._level.cells_per_word

    @property
    def is_completed(self) -> bool:
        return self._is_completed

    @property
    def completed_words_order(self) -> List[str]:
        return list(self._completed_words_order)

    @property
    def available_clusters(self) -> List[ClusterToken]:
        return self._registry.available

    @property
    def placed_clusters(self) -> List[ClusterToken]:
        return self._registry.placed

    @property
    def clusters(self) -> ClusterRegistry:
        return self._registry

    def get_cluster(self, cluster_id: int) -> Optional[ClusterToken]:
        return self._registry.get(cluster_id)

    def find_clusters_by_text(self, text: str) -> List[ClusterToken]:
        """Convenience lookup for display; completion never relies on it."""
        return self._registry.find_by_text(text)

    def get_word_tokens(self, word_index: int) -> List[ClusterToken]:
        return self._registry.tokens_in_word(word_index)

    def is_word_completed(self, word_index: int) -> bool:
        if not 0 <= word_index < self.word_count:
            return False
        return self._level.target_words[word_index].word in self._completed_words_order

    def place(self, cluster_id: int, word_index: int, start_cell_index: int) -> bool:
        """Place a cluster on a row; False leaves the session untouched."""
        return self.try_place(cluster_id, word_index, start_cell_index).accepted

    def remove(self, cluster_id: int) -> bool:
        """Take a placed cluster off the field; False leaves the session untouched."""
        return self.try_remove(cluster_id).accepted

    def try_place(self, cluster_id: int, word_index: int, start_cell_index: int) -> PlacementResult:
        """Place a cluster and report what happened."""
        rejection = self._check_placement(cluster_id, word_index, start_cell_index)
        if rejection is not None:
            logger.warning(
                f"Rejected placement of cluster {cluster_id} at word {word_index}, "
                f"cell {start_cell_index}: {rejection.value}"
            )
            monitoring.placements.labels(result=rejection.value).inc()
            return PlacementResult.rejected(cluster_id, rejection)

        self._registry.mark_placed(cluster_id, word_index, start_cell_index)
        monitoring.placements.labels(result="accepted").inc()
        logger.debug(f"Placed cluster {cluster_id} at word {word_index}, cell {start_cell_index}")

        completed_word = self._check_word_completion(word_index)
        level_completed = self._check_level_completion()
        return PlacementResult(
            accepted=True,
            cluster_id=cluster_id,
            completed_word=completed_word,
            level_completed=level_completed,
        )

    def try_remove(self, cluster_id: int) -> PlacementResult:
        """Remove a cluster and report what happened.

        Words already recorded as completed stay in the order log, and a
        completed session stays completed.
        """
        token = self._registry.get(cluster_id)
        if token is None:
            rejection = PlacementRejection.UNKNOWN_CLUSTER
        elif not token.is_placed:
            rejection = PlacementRejection.NOT_PLACED
        else:
            rejection = None

        if rejection is not None:
            logger.warning(f"Rejected removal of cluster {cluster_id}: {rejection.value}")
            monitoring.removals.labels(result=rejection.value).inc()
            return PlacementResult.rejected(cluster_id, rejection)

        self._registry.mark_unplaced(cluster_id)
        monitoring.removals.labels(result="accepted").inc()
        logger.debug(f"Removed cluster {cluster_id} ({token.text!r}) from the field")
        return PlacementResult(accepted=True, cluster_id=cluster_id)

    def _check_placement(
        self, cluster_id: int, word_index: int, start_cell_index: int
    ) -> Optional[PlacementRejection]:
        token = self._registry.get(cluster_id)
        if token is None:
            return PlacementRejection.UNKNOWN_CLUSTER
        if token.is_placed:
            return PlacementRejection.ALREADY_PLACED
        if not 0 <= word_index < self.word_count:
            return PlacementRejection.WORD_OUT_OF_RANGE
        if start_cell_index < 0 or start_cell_index + token.length > self.cells_per_word:
            return PlacementRejection.CELL_OUT_OF_RANGE
        if not self._registry.is_range_free(word_index, start_cell_index, token.length):
            return PlacementRejection.CELLS_OCCUPIED
        return None

    def _check_word_completion(self, word_index: int) -> Optional[str]:
        """Record the row's word if its placed clusters now spell it."""
        target = self._level.target_words[word_index].word
        reconstructed = "".join(token.text for token in self._registry.tokens_in_word(word_index))
        if reconstructed != target or target in self._completed_words_order:
            return None

        self._completed_words_order.append(target)
        monitoring.words_completed.inc()
        logger.info(
            f"Word {target!r} completed in level {self.level_id} "
            f"({len(self._completed_words_order)}/{self.word_count})"
        )
        return target

    def _check_level_completion(self) -> bool:
        """Complete the level once every cluster is placed and every word is spelled."""
        if self._is_completed:
            return False
        if not self._registry.all_placed:
            return False
        if len(self._completed_words_order) != self.word_count:
            return False

        self._is_completed = True
        self.completion_time = self._clock()
        seconds = self.completion_time_seconds
        monitoring.levels_completed.inc()
        monitoring.level_completion_time.observe(seconds)
        logger.info(f"Level {self.level_id} completed in {seconds:.1f}s, order: {self._completed_words_order}")
        return True

    @property
    def completion_time_seconds(self) -> float:
        """Seconds from start to completion, 0 while the level is unfinished."""
        if not self._is_completed or self.completion_time is None:
            return 0.0
        return max(0.0, (self.completion_time - self.start_time).total_seconds())

    def elapsed_seconds(self) -> float:
        """Live elapsed time; frozen at the completion time once completed."""
        if self._is_completed:
            return self.completion_time_seconds
        return max(0.0, (self._clock() - self.start_time).total_seconds())

    def field_snapshot(self) -> List[List[Optional[str]]]:
        """Letters currently on the field, one row per word."""
        grid: List[List[Optional[str]]] = [
            [None] * self.cells_per_word for _ in range(self.word_count)
        ]
        for token in self._registry.placed:
            position = token.position
            for offset, letter in enumerate(token.text):
                cell = position.start_cell_index + offset
                if 0 <= position.word_index < self.word_count and 0 <= cell < self.cells_per_word:
                    grid[position.word_index][cell] = letter
        return grid

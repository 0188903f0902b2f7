"""Models for in-session cluster state."""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class ClusterPosition:
    """Cells a placed cluster covers: ``[start_cell_index, start_cell_index + length)`` of a row."""
    word_index: int
    start_cell_index: int

    def end_cell_index(self, length: int) -> int:
        """Exclusive end of the covered range."""
        return self.start_cell_index + length

    def overlaps(self, own_length: int, start_cell_index: int, length: int) -> bool:
        """Whether this position intersects ``[start_cell_index, start_cell_index + length)``."""
        return (
            self.start_cell_index < start_cell_index + length
            and start_cell_index < self.end_cell_index(own_length)
        )


@dataclass
class ClusterToken:
    """One cluster chip of a session; ``position`` is None while unplaced."""
    cluster_id: int
    text: str
    position: Optional[ClusterPosition] = None

    @property
    def is_placed(self) -> bool:
        return self.position is not None

    @property
    def length(self) -> int:
        return len(self.text)

    def place_at(self, word_index: int, start_cell_index: int) -> None:
        self.position = ClusterPosition(word_index, start_cell_index)

    def remove_from_field(self) -> None:
        self.position = None

    def copy(self) -> "ClusterToken":
        """Detached copy; positions are immutable so sharing them is safe."""
        return replace(self)


class PlacementRejection(Enum):
    """Why a placement or removal was refused."""
    UNKNOWN_CLUSTER = "unknown_cluster"
    ALREADY_PLACED = "already_placed"
    NOT_PLACED = "not_placed"
    WORD_OUT_OF_RANGE = "word_out_of_range"
    CELL_OUT_OF_RANGE = "cell_out_of_range"
    CELLS_OCCUPIED = "cells_occupied"


@dataclass(frozen=True)
class PlacementResult:
    """Result of a placement or removal; truthy when it was applied."""
    accepted: bool
    cluster_id: int
    rejection: Optional[PlacementRejection] = None
    completed_word: Optional[str] = None  # word first completed by this placement
    level_completed: bool = False  # level reached completion with this placement

    def __bool__(self) -> bool:
        return self.accepted

    @classmethod
    def rejected(cls, cluster_id: int, rejection: PlacementRejection) -> "PlacementResult":
        return cls(accepted=False, cluster_id=cluster_id, rejection=rejection)

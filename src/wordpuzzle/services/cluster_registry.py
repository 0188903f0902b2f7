"""Per-session collection of cluster tokens."""
import logging
import random
from collections import Counter
from typing import Dict, Iterable, Iterator, List, Optional

from wordpuzzle.models.level_models import LevelSpec, is_valid_cluster_text, normalize_cluster_text
from wordpuzzle.models.session_models import ClusterPosition, ClusterToken

logger = logging.getLogger(__name__)


class ClusterRegistry:
    """Tracks every cluster token of a session and where it is placed.

    Tokens are distinct by id, never by text: two chips reading "ST" are two
    tokens. Public accessors hand out copies, so the available and placed
    views can never alias the registry's own state.
    """

    def __init__(self, tokens: Optional[Iterable[ClusterToken]] = None):
        self._tokens: Dict[int, ClusterToken] = {}
        self._placed_order: List[int] = []
        for token in tokens or []:
            self.add(token)

    @classmethod
    def from_texts(cls, texts: Iterable[str], start_id: int = 0) -> "ClusterRegistry":
        """Create one token per text; the id is the source index offset by ``start_id``."""
        registry = cls()
        for index, text in enumerate(texts):
            cluster_id = start_id + index
            if not is_valid_cluster_text(text):
                logger.warning(f"Skipping invalid cluster text {text!r} at index {index}")
                continue
            registry.add(ClusterToken(cluster_id=cluster_id, text=text))
        logger.debug(f"Created {len(registry)} clusters from text array")
        return registry

    @classmethod
    def from_level(cls, level: LevelSpec) -> "ClusterRegistry":
        logger.info(f"Creating {len(level.available_clusters)} clusters from level {level.level_id}")
        registry = cls.from_texts(level.available_clusters)
        if len(registry) != len(level.available_clusters):
            logger.warning(
                f"Cluster count mismatch: created {len(registry)}, expected {len(level.available_clusters)}"
            )
        return registry

    def add(self, token: ClusterToken) -> ClusterToken:
        """Register a token, assigning a fresh id if its id is already taken."""
        token = token.copy()
        if token.cluster_id in self._tokens:
            new_id = self._generate_unique_id()
            logger.info(f"Assigned new ID {new_id} to duplicate cluster {token.text!r} (was {token.cluster_id})")
            token.cluster_id = new_id
        self._tokens[token.cluster_id] = token
        if token.is_placed:
            self._placed_order.append(token.cluster_id)
        logger.debug(f"Added cluster {token.text!r} (ID: {token.cluster_id})")
        return token.copy()

    def _generate_unique_id(self) -> int:
        cluster_id = 0
        while cluster_id in self._tokens:
            cluster_id += 1
        return cluster_id

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, cluster_id: object) -> bool:
        return cluster_id in self._tokens

    def __iter__(self) -> Iterator[ClusterToken]:
        return (token.copy() for token in self._tokens.values())

    def get(self, cluster_id: int) -> Optional[ClusterToken]:
        token = self._tokens.get(cluster_id)
        return token.copy() if token else None

    @property
    def available(self) -> List[ClusterToken]:
        """Unplaced tokens in source order."""
        return [token.copy() for token in self._tokens.values() if not token.is_placed]

    @property
    def placed(self) -> List[ClusterToken]:
        """Placed tokens in the order they were placed."""
        return [self._tokens[cluster_id].copy() for cluster_id in self._placed_order]

    @property
    def all_placed(self) -> bool:
        return bool(self._tokens) and all(token.is_placed for token in self._tokens.values())

    def mark_placed(self, cluster_id: int, word_index: int, start_cell_index: int) -> None:
        """Move a token to the placed view. Legality is the caller's concern."""
        token = self._tokens[cluster_id]
        token.place_at(word_index, start_cell_index)
        self._placed_order.append(cluster_id)

    def mark_unplaced(self, cluster_id: int) -> None:
        """Move a token back to the available view."""
        token = self._tokens[cluster_id]
        token.remove_from_field()
        self._placed_order.remove(cluster_id)

    def tokens_in_word(self, word_index: int) -> List[ClusterToken]:
        """Tokens placed in a row, sorted by start cell."""
        tokens = [
            token for token in self._tokens.values()
            if token.position is not None and token.position.word_index == word_index
        ]
        tokens.sort(key=lambda t: t.position.start_cell_index)
        return [token.copy() for token in tokens]

    def is_range_free(self, word_index: int, start_cell_index: int, length: int) -> bool:
        """Whether no placed token of the row intersects the cell range."""
        for token in self._tokens.values():
            position: Optional[ClusterPosition] = token.position
            if position is None or position.word_index != word_index:
                continue
            if position.overlaps(token.length, start_cell_index, length):
                return False
        return True

    def find_by_text(self, text: str) -> List[ClusterToken]:
        """Tokens whose text matches, ignoring case. Display helper only."""
        if not text:
            return []
        wanted = normalize_cluster_text(text)
        return [token.copy() for token in self._tokens.values() if token.text.upper() == wanted]

    def shuffled(self, rng: Optional[random.Random] = None) -> List[ClusterToken]:
        """Available tokens in random display order; ids are untouched."""
        tokens = self.available
        (rng or random).shuffle(tokens)
        return tokens

    def statistics(self) -> Dict[str, object]:
        by_length = Counter(token.length for token in self._tokens.values())
        placed = len(self._placed_order)
        return {
            "total": len(self._tokens),
            "by_length": dict(sorted(by_length.items())),
            "placed": placed,
            "available": len(self._tokens) - placed,
        }

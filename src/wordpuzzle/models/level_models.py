"""Models describing puzzle levels and their validation."""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from wordpuzzle.config import settings

logger = logging.getLogger(__name__)


def normalize_cluster_text(text: str) -> str:
    """Trim, upper-case and drop every non-letter character."""
    cleaned = text.strip().upper()
    result = "".join(ch for ch in cleaned if ch.isalpha())
    if result != cleaned:
        logger.debug(f"Cleaned cluster text: {text!r} -> {result!r}")
    return result


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation step: truthy when valid, otherwise carries a reason."""
    is_valid: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.is_valid

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(True)

    @classmethod
    def invalid(cls, reason: str) -> "ValidationResult":
        return cls(False, reason)


@dataclass(frozen=True)
class WordSpec:
    """A target word and the ordered clusters it is built from."""
    word: str
    clusters: Tuple[str, ...] = ()

    @property
    def word_length(self) -> int:
        return len(self.word)

    @property
    def clusters_count(self) -> int:
        return len(self.clusters)

    def contains_cluster(self, cluster: str) -> bool:
        return cluster in self.clusters

    def get_cluster_index(self, cluster: str) -> int:
        """Index of the first cluster equal to ``cluster``, or -1."""
        for index, text in enumerate(self.clusters):
            if text == cluster:
                return index
        return -1

    def validate(self) -> ValidationResult:
        """Check that the clusters are non-empty and spell the word."""
        if not self.word:
            return ValidationResult.invalid("word text is empty")
        if not self.clusters:
            return ValidationResult.invalid(f"word {self.word!r} has no clusters")
        if "".join(self.clusters) != self.word:
            return ValidationResult.invalid(
                f"clusters {list(self.clusters)} do not spell word {self.word!r}"
            )
        if any(not cluster for cluster in self.clusters):
            return ValidationResult.invalid(f"word {self.word!r} has an empty cluster")
        return ValidationResult.ok()

    def to_dict(self) -> Dict[str, Any]:
        return {"word": self.word, "clusters": list(self.clusters)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], normalize: bool = True) -> "WordSpec":
        """Build a word from its level-file representation.

        Raises:
            ValueError, KeyError, TypeError: if the entry is malformed.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Word entry must be an object, got {type(data).__name__}")
        word = data["word"]
        clusters = data["clusters"]
        if not isinstance(word, str):
            raise TypeError("Word text must be a string")
        if not isinstance(clusters, list) or not all(isinstance(c, str) for c in clusters):
            raise TypeError(f"Clusters of word {word!r} must be a list of strings")
        if normalize:
            word = normalize_cluster_text(word)
            clusters = [normalize_cluster_text(c) for c in clusters]
        return cls(word=word, clusters=tuple(clusters))


@dataclass(frozen=True)
class LevelSpec:
    """Immutable description of one puzzle level."""
    level_id: int
    target_words: Tuple[WordSpec, ...] = ()
    available_clusters: Tuple[str, ...] = ()
    cells_per_word: int = field(default_factory=lambda: settings.game.cells_per_word)

    @property
    def word_count(self) -> int:
        return len(self.target_words)

    def get_target_words_as_strings(self) -> List[str]:
        return [word.word for word in self.target_words]

    def with_level_id(self, level_id: int) -> "LevelSpec":
        """Copy of this level under another id."""
        return LevelSpec(
            level_id=level_id,
            target_words=self.target_words,
            available_clusters=self.available_clusters,
            cells_per_word=self.cells_per_word,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "levelId": self.level_id,
            "cellsPerWord": self.cells_per_word,
            "targetWords": [word.to_dict() for word in self.target_words],
            "availableClusters": list(self.available_clusters),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], normalize: bool = True) -> "LevelSpec":
        """Build a level from a parsed level document.

        The result is not validated; run ``validate_level`` before use.

        Raises:
            ValueError, KeyError, TypeError: if the document is malformed.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Level document must be an object, got {type(data).__name__}")

        level_id = data["levelId"]
        if isinstance(level_id, bool) or not isinstance(level_id, int):
            raise TypeError("levelId must be an integer")

        raw_words = data.get("targetWords", [])
        raw_clusters = data.get("availableClusters", [])
        if not isinstance(raw_words, list):
            raise TypeError("targetWords must be a list")
        if not isinstance(raw_clusters, list) or not all(isinstance(c, str) for c in raw_clusters):
            raise TypeError("availableClusters must be a list of strings")

        cells_per_word = data.get("cellsPerWord", settings.game.cells_per_word)
        if isinstance(cells_per_word, bool) or not isinstance(cells_per_word, int) or cells_per_word < 1:
            raise ValueError(f"cellsPerWord must be a positive integer, got {cells_per_word!r}")

        words = tuple(WordSpec.from_dict(entry, normalize=normalize) for entry in raw_words)
        if normalize:
            raw_clusters = [normalize_cluster_text(c) for c in raw_clusters]

        return cls(
            level_id=level_id,
            target_words=words,
            available_clusters=tuple(raw_clusters),
            cells_per_word=cells_per_word,
        )


def is_valid_cluster_text(
    text: str,
    min_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> bool:
    """Whether ``text`` is a usable cluster: only letters, 1-4 of them by default."""
    if min_length is None:
        min_length = settings.game.min_cluster_length
    if max_length is None:
        max_length = settings.game.max_cluster_length
    if not text or not (min_length <= len(text) <= max_length):
        return False
    return all(ch.isalpha() for ch in text)


def check_cluster_pool(level: LevelSpec) -> ValidationResult:
    """Check that every required cluster can be drawn from the pool.

    Multiplicity counts: a cluster used by two words needs two pool entries.
    """
    pool = Counter(level.available_clusters)
    required: Counter = Counter()
    for word in level.target_words:
        required.update(word.clusters)

    for cluster, needed in required.items():
        if pool[cluster] < needed:
            return ValidationResult.invalid(
                f"cluster {cluster!r} needed {needed} time(s) but pool has {pool[cluster]}"
            )
    return ValidationResult.ok()


def validate_level(level: LevelSpec, check_pool: bool = True) -> ValidationResult:
    """Validate a level, stopping at the first failed check.

    Order: id, words present, pool present, each word (spelling and row
    fit), pool text, pool sufficiency.
    """
    if level.level_id <= 0:
        return ValidationResult.invalid(f"level id must be positive, got {level.level_id}")
    if not level.target_words:
        return ValidationResult.invalid("level has no target words")
    if not level.available_clusters:
        return ValidationResult.invalid("level has no available clusters")

    seen_words = set()
    for index, word in enumerate(level.target_words):
        result = word.validate()
        if not result:
            return ValidationResult.invalid(f"target word {index}: {result.reason}")
        if word.word_length > level.cells_per_word:
            return ValidationResult.invalid(
                f"target word {index}: {word.word!r} does not fit in {level.cells_per_word} cells"
            )
        # Completed words are recorded by text, so a repeated word could never count twice
        if word.word in seen_words:
            return ValidationResult.invalid(f"target word {index}: {word.word!r} is repeated")
        seen_words.add(word.word)

    for index, cluster in enumerate(level.available_clusters):
        if not is_valid_cluster_text(cluster):
            return ValidationResult.invalid(f"available cluster {index} has invalid text {cluster!r}")

    if check_pool:
        return check_cluster_pool(level)
    return ValidationResult.ok()

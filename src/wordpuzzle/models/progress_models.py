"""Models for cross-level player progress."""
import logging
import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional, Sequence

from wordpuzzle.config import SAVE_VERSION
from wordpuzzle.models.level_models import ValidationResult

logger = logging.getLogger(__name__)


def _parse_instant(value: Any) -> datetime:
    """Parse an ISO-8601 instant written by ``to_data``."""
    if not isinstance(value, str):
        raise TypeError(f"Timestamp must be an ISO string, got {type(value).__name__}")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass
class LevelCompletionRecord:
    """How a single level was completed."""
    level_id: int
    completed_words: List[str] = field(default_factory=list)
    completion_time_seconds: float = 0.0
    completion_date: datetime = field(default_factory=lambda: datetime.now(UTC))

    def validate(self) -> ValidationResult:
        if self.level_id <= 0:
            return ValidationResult.invalid(f"record level id must be positive, got {self.level_id}")
        if not self.completed_words:
            return ValidationResult.invalid(f"record for level {self.level_id} has no words")
        if not math.isfinite(self.completion_time_seconds) or self.completion_time_seconds < 0:
            return ValidationResult.invalid(
                f"record for level {self.level_id} has invalid time {self.completion_time_seconds}"
            )
        return ValidationResult.ok()

    def to_data(self) -> Dict[str, Any]:
        """Convert to serializable data for storage."""
        return {
            "levelId": self.level_id,
            "completedWords": list(self.completed_words),
            "completionTime": self.completion_time_seconds,
            "completionDate": self.completion_date.isoformat(),
        }

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "LevelCompletionRecord":
        """Create a record from stored data.

        Raises:
            ValueError, KeyError, TypeError: if the data is malformed.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Completion record must be an object, got {type(data).__name__}")
        words = data["completedWords"]
        if not isinstance(words, list) or not all(isinstance(w, str) for w in words):
            raise TypeError("completedWords must be a list of strings")
        return cls(
            level_id=int(data["levelId"]),
            completed_words=list(words),
            completion_time_seconds=float(data.get("completionTime", 0.0)),
            completion_date=_parse_instant(data["completionDate"]),
        )


@dataclass
class PlayerProgress:
    """Player-wide progress document with a save-format version tag."""
    save_version: int = SAVE_VERSION
    completed_levels: Dict[int, LevelCompletionRecord] = field(default_factory=dict)
    completed_levels_count: int = 0
    last_save_time: datetime = field(default_factory=lambda: datetime.now(UTC))

    def mark_level_completed(
        self,
        level_id: int,
        completed_words: Sequence[str],
        completion_time_seconds: float = 0.0,
    ) -> bool:
        """Insert or replace the record for ``level_id``.

        Returns False without touching the document for a non-positive id,
        an empty word list or a negative or non-finite time.
        """
        if level_id <= 0:
            logger.error(f"Invalid level ID: {level_id}")
            return False
        if not completed_words:
            logger.error(f"Cannot mark level {level_id} completed - no words provided")
            return False
        if not math.isfinite(completion_time_seconds) or completion_time_seconds < 0:
            logger.error(f"Cannot mark level {level_id} completed - invalid time {completion_time_seconds}")
            return False

        is_new = level_id not in self.completed_levels
        self.completed_levels[level_id] = LevelCompletionRecord(
            level_id=level_id,
            completed_words=list(completed_words),
            completion_time_seconds=float(completion_time_seconds),
        )
        self.completed_levels_count = len(self.completed_levels)
        self.last_save_time = datetime.now(UTC)

        if is_new:
            logger.info(f"Level {level_id} completed for the first time. Total completed: {self.completed_levels_count}")
        else:
            logger.info(f"Level {level_id} completed again, record replaced")
        return True

    def is_level_completed(self, level_id: int) -> bool:
        return level_id in self.completed_levels

    def get_level_completion(self, level_id: int) -> Optional[LevelCompletionRecord]:
        return self.completed_levels.get(level_id)

    def get_next_level_number(self) -> int:
        """Level after the highest completed one, or 1 when nothing is completed."""
        if not self.completed_levels:
            return 1
        return max(self.completed_levels) + 1

    def are_all_levels_completed(self, total_levels: int) -> bool:
        if total_levels <= 0:
            return False
        return all(level_id in self.completed_levels for level_id in range(1, total_levels + 1))

    def reset_progress(self) -> None:
        self.completed_levels.clear()
        self.completed_levels_count = 0
        self.last_save_time = datetime.now(UTC)

    def validate(self) -> ValidationResult:
        """Structural checks applied to every loaded or saved document."""
        if self.completed_levels_count < 0:
            return ValidationResult.invalid("completed level count is negative")
        if self.completed_levels_count != len(self.completed_levels):
            return ValidationResult.invalid(
                f"completed level count {self.completed_levels_count} "
                f"does not match {len(self.completed_levels)} records"
            )
        for level_id, record in self.completed_levels.items():
            if level_id <= 0:
                return ValidationResult.invalid(f"level id must be positive, got {level_id}")
            if record.level_id != level_id:
                return ValidationResult.invalid(
                    f"record for level {level_id} is tagged as level {record.level_id}"
                )
            result = record.validate()
            if not result:
                return result
        return ValidationResult.ok()

    def to_data(self) -> Dict[str, Any]:
        """Convert to serializable data for storage."""
        return {
            "saveVersion": self.save_version,
            "completedLevelsCount": self.completed_levels_count,
            "lastSaveTime": self.last_save_time.isoformat(),
            "completedLevels": {
                str(level_id): record.to_data()
                for level_id, record in sorted(self.completed_levels.items())
            },
        }

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "PlayerProgress":
        """Create a progress document from stored data.

        Raises:
            ValueError, KeyError, TypeError: if the data is malformed.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Progress document must be an object, got {type(data).__name__}")
        raw_levels = data.get("completedLevels", {})
        if not isinstance(raw_levels, dict):
            raise TypeError("completedLevels must be an object")

        completed_levels = {
            int(level_id): LevelCompletionRecord.from_data(record)
            for level_id, record in raw_levels.items()
        }
        return cls(
            save_version=int(data["saveVersion"]),
            completed_levels=completed_levels,
            completed_levels_count=int(data.get("completedLevelsCount", 0)),
            last_save_time=_parse_instant(data["lastSaveTime"]),
        )

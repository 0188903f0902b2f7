"""Durable storage of the player progress document."""
import json
import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wordpuzzle import monitoring
from wordpuzzle.config import ProgressSettings, settings
from wordpuzzle.models.models import SaveEntry
from wordpuzzle.models.progress_models import PlayerProgress

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveKeys:
    """Names of the keys the store writes."""
    player_progress: str
    completed_levels_count: str
    current_level: str
    last_save_time: str
    save_version: str
    first_launch: str
    launch_count: str

    @classmethod
    def with_prefix(cls, prefix: str) -> "SaveKeys":
        return cls(
            player_progress=f"{prefix}PlayerProgress",
            completed_levels_count=f"{prefix}CompletedLevels",
            current_level=f"{prefix}CurrentLevel",
            last_save_time=f"{prefix}LastSave",
            save_version=f"{prefix}SaveVersion",
            first_launch=f"{prefix}FirstLaunch",
            launch_count=f"{prefix}LaunchCount",
        )

    def progress_keys(self) -> List[str]:
        """Keys holding the document and its mirrors."""
        return [
            self.player_progress,
            self.completed_levels_count,
            self.current_level,
            self.last_save_time,
            self.save_version,
        ]


class ProgressStore:
    """Loads, migrates, validates and saves progress in the key-value table.

    ``load`` never raises: anything missing, corrupt or invalid yields a
    fresh document. ``save`` writes the document and its scalar mirrors in
    a single transaction and reports failure instead of raising.
    """

    def __init__(self, db: Session, progress_settings: Optional[ProgressSettings] = None):
        """Initialize the store with a database session."""
        self.db = db
        self.progress_settings = progress_settings or settings.progress
        self.keys = SaveKeys.with_prefix(self.progress_settings.key_prefix)

    @property
    def current_version(self) -> int:
        return self.progress_settings.save_version

    def _get(self, key: str) -> Optional[str]:
        entry = self.db.get(SaveEntry, key)
        return entry.value if entry is not None else None

    def _set(self, key: str, value: str) -> None:
        entry = self.db.get(SaveEntry, key)
        if entry is None:
            self.db.add(SaveEntry(key=key, value=value))
        else:
            entry.value = value

    def create_new_progress(self, record_launch: bool = True) -> PlayerProgress:
        """Fresh document; unless told otherwise, also records first launch and bumps the launch counter."""
        progress = PlayerProgress(save_version=self.current_version)
        if not record_launch:
            return progress
        try:
            if self._get(self.keys.first_launch) is None:
                self._set(self.keys.first_launch, datetime.now(UTC).isoformat())
                logger.info("First launch detected")
            launch_count = int(self._get(self.keys.launch_count) or 0) + 1
            self._set(self.keys.launch_count, str(launch_count))
            self.db.commit()
        except (SQLAlchemyError, ValueError) as e:
            self.db.rollback()
            logger.warning(f"Could not record launch statistics: {e}")
        return progress

    def _fallback(self, reason: str, record_launch: bool) -> PlayerProgress:
        monitoring.progress_load_fallbacks.labels(reason=reason).inc()
        return self.create_new_progress(record_launch)

    def load(self, record_launch: bool = True) -> PlayerProgress:
        """Load the stored document or fall back to a fresh one.

        With ``record_launch`` False a fallback leaves the launch statistics
        untouched, so read-only callers never write.
        """
        logger.info("Loading player progress...")
        try:
            raw = self._get(self.keys.player_progress)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to read progress: {e}")
            return self._fallback("io", record_launch)

        if raw is None:
            logger.info("No save data found, creating new progress")
            return self._fallback("missing", record_launch)
        if not raw.strip():
            logger.warning("Save data is empty, creating new progress")
            return self._fallback("empty", record_launch)

        try:
            progress = PlayerProgress.from_data(json.loads(raw))
        except (json.JSONDecodeError, RecursionError) as e:
            logger.warning(f"Save data is not valid JSON ({e}), creating new progress")
            return self._fallback("corrupt", record_launch)
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logger.warning(f"Failed to deserialize progress ({e!r}), creating new progress")
            return self._fallback("corrupt", record_launch)

        if progress.save_version != self.current_version:
            logger.info(f"Save version mismatch: {progress.save_version} vs {self.current_version}, migrating...")
            migrated = self.migrate(progress)
            if migrated is None:
                return self._fallback("unsupported_version", record_launch)
            progress = migrated

        result = progress.validate()
        if not result:
            logger.warning(f"Loaded progress is invalid ({result.reason}), creating new progress")
            return self._fallback("invalid", record_launch)

        logger.info(f"Player progress loaded successfully. Completed levels: {progress.completed_levels_count}")
        return progress

    def migrate(self, progress: PlayerProgress) -> Optional[PlayerProgress]:
        """Bring an older document up to the current format.

        Every known format shares the current schema, so only the tag
        changes. Unknown versions, including newer ones, return None.
        """
        if not 1 <= progress.save_version <= self.current_version:
            logger.warning(f"Unsupported save version {progress.save_version}")
            return None
        logger.info(f"Migrating save data from version {progress.save_version} to {self.current_version}")
        progress.save_version = self.current_version
        return progress

    def mark_level_completed(
        self,
        progress: PlayerProgress,
        level_id: int,
        completed_words: Sequence[str],
        completion_time_seconds: float = 0.0,
    ) -> bool:
        """Upsert the completion record; False means the input was rejected."""
        return progress.mark_level_completed(level_id, completed_words, completion_time_seconds)

    def reset_progress(self, progress: PlayerProgress) -> None:
        """Clear every completion. Does not save."""
        logger.info("Resetting all progress...")
        progress.reset_progress()

    def save(self, progress: PlayerProgress) -> bool:
        """Write the document and its mirrors in one transaction."""
        result = progress.validate()
        if not result:
            logger.error(f"Cannot save invalid progress data: {result.reason}")
            monitoring.progress_saves.labels(result="invalid").inc()
            return False

        # Stamp a copy; the caller's document only changes once the commit succeeds
        stamped = replace(progress, last_save_time=datetime.now(UTC), save_version=self.current_version)

        try:
            payload = json.dumps(stamped.to_data(), ensure_ascii=False, separators=(",", ":"))
            self._set(self.keys.player_progress, payload)
            self._set(self.keys.completed_levels_count, str(stamped.completed_levels_count))
            self._set(self.keys.current_level, str(stamped.get_next_level_number()))
            self._set(self.keys.last_save_time, stamped.last_save_time.isoformat())
            self._set(self.keys.save_version, str(self.current_version))
            self.db.commit()
        except (SQLAlchemyError, TypeError, ValueError) as e:
            self.db.rollback()
            logger.error(f"Failed to save progress: {e}")
            monitoring.progress_saves.labels(result="failed").inc()
            return False

        progress.last_save_time = stamped.last_save_time
        progress.save_version = stamped.save_version

        monitoring.progress_saves.labels(result="ok").inc()
        logger.info(f"Player progress saved successfully. Completed levels: {progress.completed_levels_count}")
        return True

    def delete_all(self) -> bool:
        """Remove the document and its mirrors."""
        logger.info("Deleting all save data...")
        try:
            for key in self.keys.progress_keys():
                entry = self.db.get(SaveEntry, key)
                if entry is not None:
                    self.db.delete(entry)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete save data: {e}")
            return False
        logger.info("All save data deleted successfully")
        return True

    def get_stored_version(self) -> Optional[int]:
        raw = self._get(self.keys.save_version)
        try:
            return int(raw) if raw is not None else None
        except ValueError:
            return None

    def save_info(self) -> Dict[str, Any]:
        """Summary built from the scalar mirrors only."""
        if self._get(self.keys.player_progress) is None:
            return {"exists": False}

        def _int(key: str, default: int) -> int:
            try:
                return int(self._get(key) or default)
            except ValueError:
                return default

        return {
            "exists": True,
            "save_version": _int(self.keys.save_version, 0),
            "completed_levels": _int(self.keys.completed_levels_count, 0),
            "current_level": _int(self.keys.current_level, 1),
            "last_save": self._get(self.keys.last_save_time),
            "launch_count": _int(self.keys.launch_count, 0),
        }

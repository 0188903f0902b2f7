"""Service owning the player's progress for the lifetime of the process."""
import asyncio
import logging
import threading
from typing import List, Optional, Sequence

from wordpuzzle.models.progress_models import LevelCompletionRecord, PlayerProgress
from wordpuzzle.services.progress_store import ProgressStore

logger = logging.getLogger(__name__)


class ProgressService:
    """Keeps the authoritative in-memory progress and persists it through a store.

    Mutation and persistence happen inside one critical section, so a save
    never writes a stale snapshot and a completion is always followed by a
    save of that completion. A failed save leaves the in-memory document in
    charge; the write is retried at the next save point.
    """

    def __init__(self, store: ProgressStore):
        """Initialize the service with a progress store."""
        self.store = store
        self._progress: Optional[PlayerProgress] = None
        self._lock = threading.RLock()
        self._async_lock = asyncio.Lock()
        self.pending_save = False

    @property
    def is_initialized(self) -> bool:
        return self._progress is not None

    @property
    def progress(self) -> Optional[PlayerProgress]:
        return self._progress

    def initialize(self, record_launch: bool = True) -> None:
        """Load progress. Never fails: the store falls back to fresh progress."""
        logger.info("Initializing progress service...")
        with self._lock:
            self._progress = self.store.load(record_launch=record_launch)
            self.pending_save = False
        logger.info(f"Progress service initialized. Completed levels: {self._progress.completed_levels_count}")

    async def initialize_async(self, record_launch: bool = True) -> None:
        async with self._async_lock:
            await asyncio.to_thread(self.initialize, record_launch)

    def shutdown(self) -> None:
        """Final best-effort save, then forget the document."""
        if not self.is_initialized:
            return
        with self._lock:
            self._save_locked()
            self._progress = None
        logger.info("Progress service shut down")

    def refresh(self) -> None:
        """Reload progress from the store, dropping unsaved changes."""
        if not self.is_initialized:
            logger.warning("Cannot refresh progress - service not initialized")
            return
        logger.info("Refreshing progress from storage...")
        self.initialize()

    def _save_locked(self) -> bool:
        ok = self.store.save(self._progress)
        self.pending_save = not ok
        if not ok:
            logger.error("Failed to save progress, will retry at the next save point")
        return ok

    def save(self) -> bool:
        """Persist the current document."""
        if not self.is_initialized:
            logger.warning("Cannot save - service not initialized")
            return False
        with self._lock:
            return self._save_locked()

    async def save_async(self) -> bool:
        async with self._async_lock:
            return await asyncio.to_thread(self.save)

    def mark_level_completed(
        self,
        level_id: int,
        completed_words: Sequence[str],
        completion_time_seconds: float = 0.0,
    ) -> bool:
        """Record a completion and save it.

        Returns False only when the completion was rejected; a failed save
        is reported through ``pending_save``.
        """
        if not self.is_initialized:
            logger.error("Cannot mark level completed - service not initialized")
            return False

        with self._lock:
            logger.info(f"Marking level {level_id} as completed with {len(completed_words)} words")
            if not self.store.mark_level_completed(
                self._progress, level_id, completed_words, completion_time_seconds
            ):
                return False
            self._save_locked()
        return True

    async def mark_level_completed_async(
        self,
        level_id: int,
        completed_words: Sequence[str],
        completion_time_seconds: float = 0.0,
    ) -> bool:
        async with self._async_lock:
            return await asyncio.to_thread(
                self.mark_level_completed, level_id, completed_words, completion_time_seconds
            )

    def reset_progress(self) -> bool:
        """Clear all completions, wipe stored data and save the empty document."""
        if not self.is_initialized:
            logger.warning("Cannot reset progress - service not initialized")
            return False
        with self._lock:
            self.store.reset_progress(self._progress)
            self.store.delete_all()
            ok = self._save_locked()
        logger.info("Progress reset completed")
        return ok

    async def reset_progress_async(self) -> bool:
        async with self._async_lock:
            return await asyncio.to_thread(self.reset_progress)

    def get_completed_levels_count(self) -> int:
        if not self.is_initialized:
            logger.warning("Service not initialized, returning 0 completed levels")
            return 0
        return self._progress.completed_levels_count

    def get_current_level_number(self) -> int:
        """Next level to play."""
        if not self.is_initialized:
            logger.warning("Service not initialized, returning level 1")
            return 1
        return self._progress.get_next_level_number()

    def is_level_completed(self, level_id: int) -> bool:
        if not self.is_initialized:
            return False
        return self._progress.is_level_completed(level_id)

    def get_level_completion(self, level_id: int) -> Optional[LevelCompletionRecord]:
        if not self.is_initialized:
            return None
        return self._progress.get_level_completion(level_id)

    def get_level_completion_words(self, level_id: int) -> Optional[List[str]]:
        record = self.get_level_completion(level_id)
        return list(record.completed_words) if record else None

    def are_all_levels_completed(self, total_levels: int) -> bool:
        if not self.is_initialized:
            return False
        return self._progress.are_all_levels_completed(total_levels)

    def debug_info(self) -> str:
        """Human-readable report of the in-memory and stored progress."""
        if not self.is_initialized:
            return "Progress service not initialized"

        progress = self._progress
        lines = [
            "Current Progress:",
            f"Completed Levels: {progress.completed_levels_count}",
            f"Next Level: {progress.get_next_level_number()}",
            f"Last Save: {progress.last_save_time:%Y-%m-%d %H:%M:%S}",
            "",
            "Completed Levels Details:",
        ]
        for level_id, record in sorted(progress.completed_levels.items()):
            lines.append(
                f"  Level {level_id}: {', '.join(record.completed_words)} "
                f"({record.completion_time_seconds:.1f}s)"
            )

        info = self.store.save_info()
        lines.append("")
        if not info["exists"]:
            lines.append("No save data found")
        else:
            lines.extend([
                f"Save Version: {info['save_version']}",
                f"Stored Completed Levels: {info['completed_levels']}",
                f"Stored Current Level: {info['current_level']}",
                f"Stored Last Save: {info['last_save'] or 'Unknown'}",
            ])
        return "\n".join(lines)

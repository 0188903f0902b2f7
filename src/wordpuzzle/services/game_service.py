"""Service tying levels, sessions and progress together."""
import logging
from typing import Optional

from wordpuzzle.services.level_service import LevelService
from wordpuzzle.services.progress_service import ProgressService
from wordpuzzle.services.session_service import Clock, PuzzleSession

logger = logging.getLogger(__name__)


class GameService:
    """Starts sessions for levels and records finished ones."""

    def __init__(
        self,
        level_service: LevelService,
        progress_service: ProgressService,
        clock: Optional[Clock] = None,
    ):
        self.level_service = level_service
        self.progress_service = progress_service
        self.clock = clock

    def start_level(self, level_id: int) -> Optional[PuzzleSession]:
        """New session for a level, or None when the level cannot be loaded."""
        level = self.level_service.load_level(level_id)
        if level is None:
            logger.warning(f"Level {level_id} not found")
            return None
        return PuzzleSession(level, clock=self.clock)

    def start_next_level(self) -> Optional[PuzzleSession]:
        return self.start_level(self.progress_service.get_current_level_number())

    def finish_level(self, session: PuzzleSession) -> bool:
        """Record a completed session's word order and time."""
        if not session.is_completed:
            logger.warning(f"Level {session.level_id} is not completed yet")
            return False
        return self.progress_service.mark_level_completed(
            session.level_id,
            session.completed_words_order,
            session.completion_time_seconds,
        )

    async def finish_level_async(self, session: PuzzleSession) -> bool:
        if not session.is_completed:
            logger.warning(f"Level {session.level_id} is not completed yet")
            return False
        return await self.progress_service.mark_level_completed_async(
            session.level_id,
            session.completed_words_order,
            session.completion_time_seconds,
        )

    def are_all_levels_completed(self) -> bool:
        return self.progress_service.are_all_levels_completed(
            self.level_service.get_total_levels_count()
        )

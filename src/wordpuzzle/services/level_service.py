"""Service for loading puzzle levels from level files."""
import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from wordpuzzle import monitoring
from wordpuzzle.config import GameSettings, settings
from wordpuzzle.models.level_models import LevelSpec, ValidationResult, validate_level

logger = logging.getLogger(__name__)


class LevelService:
    """Loads, validates and caches levels stored as ``level_NNN.json`` files."""

    def __init__(self, levels_dir: Optional[Path] = None, game_settings: Optional[GameSettings] = None):
        """Initialize the service with the directory holding the level files."""
        self.levels_dir = Path(levels_dir) if levels_dir is not None else settings.paths.levels_dir
        self.game_settings = game_settings or settings.game
        self._cached_levels: Dict[int, LevelSpec] = {}
        self._total_levels_count: Optional[int] = None

    def _level_path(self, level_id: int) -> Path:
        return self.levels_dir / self.game_settings.level_file_pattern.format(level_id=level_id)

    def parse_level(self, text: str, expected_level_id: int) -> Tuple[Optional[LevelSpec], ValidationResult]:
        """Parse and validate one level document.

        A document whose embedded id differs from ``expected_level_id`` is
        re-tagged with the expected id.
        """
        try:
            data = json.loads(text)
            level = LevelSpec.from_dict(data)
        except (json.JSONDecodeError, RecursionError) as e:
            logger.error(f"JSON parsing error for level {expected_level_id}: {e}")
            monitoring.level_load_failures.labels(reason="parse").inc()
            return None, ValidationResult.invalid(f"invalid JSON: {e}")
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Malformed level {expected_level_id}: {e!r}")
            monitoring.level_load_failures.labels(reason="parse").inc()
            return None, ValidationResult.invalid(f"malformed level document: {e!r}")

        if level.level_id != expected_level_id:
            logger.warning(f"Level ID mismatch: expected {expected_level_id}, got {level.level_id}")
            level = level.with_level_id(expected_level_id)

        result = validate_level(level)
        if not result:
            logger.error(f"Level {expected_level_id} validation failed: {result.reason}")
            monitoring.level_load_failures.labels(reason="invalid").inc()
            return None, result

        logger.info(
            f"Level {expected_level_id} parsed successfully: "
            f"{level.word_count} words, {len(level.available_clusters)} clusters"
        )
        return level, result

    def _read_level(self, level_id: int) -> Tuple[Optional[LevelSpec], ValidationResult]:
        path = self._level_path(level_id)
        if not path.is_file():
            logger.error(f"Level file not found: {path}")
            monitoring.level_load_failures.labels(reason="not_found").inc()
            return None, ValidationResult.invalid(f"level file not found: {path.name}")
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Could not read level file {path}: {e}")
            monitoring.level_load_failures.labels(reason="io").inc()
            return None, ValidationResult.invalid(f"unreadable level file: {e}")
        return self.parse_level(text, level_id)

    def load_level(self, level_id: int) -> Optional[LevelSpec]:
        """Get a validated level by id, or None when it is missing or invalid."""
        if level_id <= 0:
            logger.error(f"Invalid level ID: {level_id}")
            return None

        cached = self._cached_levels.get(level_id)
        if cached is not None:
            logger.debug(f"Returning cached level {level_id}")
            return cached

        level, _ = self._read_level(level_id)
        if level is not None:
            self._cached_levels[level_id] = level
            logger.info(f"Level {level_id} loaded and cached successfully")
        return level

    async def load_level_async(self, level_id: int) -> Optional[LevelSpec]:
        """Load a level without blocking the event loop."""
        return await asyncio.to_thread(self.load_level, level_id)

    def level_exists(self, level_id: int) -> bool:
        if level_id <= 0:
            return False
        if level_id in self._cached_levels:
            return True
        return self._level_path(level_id).is_file()

    def scan_levels(self) -> int:
        """Find the highest level id present, tolerating short gaps in numbering."""
        logger.info(f"Scanning levels in {self.levels_dir}...")
        total = 0
        for level_id in range(1, self.game_settings.max_levels + 1):
            if self._level_path(level_id).is_file():
                total = level_id
                logger.debug(f"Found level file for level {level_id}")
            elif level_id > total + self.game_settings.max_missing_levels:
                break
        self._total_levels_count = total
        logger.info(f"Scan completed. Total levels found: {total}")
        return total

    def get_total_levels_count(self) -> int:
        if self._total_levels_count is None:
            return self.scan_levels()
        return self._total_levels_count

    def check_levels(self) -> Dict[int, ValidationResult]:
        """Validate every level file up to the scanned total."""
        results: Dict[int, ValidationResult] = {}
        for level_id in range(1, self.scan_levels() + 1):
            if not self._level_path(level_id).is_file():
                continue
            _, result = self._read_level(level_id)
            results[level_id] = result
        return results

    def clear_cache(self) -> None:
        self._cached_levels.clear()
        self._total_levels_count = None

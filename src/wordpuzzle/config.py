"""Configuration settings for the puzzle."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
LEVELS_DIR = Path(os.getenv("LEVELS_DIR", str(DATA_DIR / "levels")))

# Gameplay defaults
CELLS_PER_WORD = 6
SAVE_VERSION = 1  # bump together with a migration step in progress_store


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        LEVELS_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    levels_dir: Path = LEVELS_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///wordpuzzle.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class GameSettings:
    """Puzzle field and level file settings."""
    cells_per_word: int = int(os.getenv("CELLS_PER_WORD", str(CELLS_PER_WORD)))
    min_cluster_length: int = 1
    max_cluster_length: int = 4
    max_levels: int = int(os.getenv("MAX_LEVELS", "999"))
    max_missing_levels: int = 5  # gap tolerated while scanning level files
    level_file_pattern: str = "level_{level_id:03d}.json"


@dataclass
class ProgressSettings:
    """Progress persistence settings."""
    save_version: int = SAVE_VERSION
    key_prefix: str = os.getenv("SAVE_KEY_PREFIX", "WordPuzzle_")


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_game_settings() -> GameSettings:
    """Get game settings."""
    return GameSettings()


def get_progress_settings() -> ProgressSettings:
    """Get progress settings."""
    return ProgressSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    game: GameSettings = field(default_factory=get_game_settings)
    progress: ProgressSettings = field(default_factory=get_progress_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.database.url:
            raise ValueError("DATABASE_URL is required")

        if self.game.cells_per_word < 1:
            raise ValueError("CELLS_PER_WORD must be positive")

        if self.game.min_cluster_length < 1:
            raise ValueError("Minimum cluster length must be positive")

        if self.game.min_cluster_length > self.game.max_cluster_length:
            raise ValueError("Minimum cluster length cannot be greater than maximum cluster length")

        if self.game.max_levels < 1:
            raise ValueError("MAX_LEVELS must be positive")

        if self.progress.save_version < 1:
            raise ValueError("Save version must be positive")


# Create global settings instance
settings = Settings()
settings.validate()

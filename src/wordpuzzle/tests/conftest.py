"""Test configuration."""
import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# Set test environment before any imports
os.environ["ENV"] = "test"
_test_dir = Path(tempfile.mkdtemp(prefix="wordpuzzle-test-"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_test_dir / 'test.db'}")
os.environ.setdefault("DATA_DIR", str(_test_dir / "data"))

# Import after environment setup
from sqlalchemy.orm import Session  # noqa: E402

from wordpuzzle.config import ensure_directories  # noqa: E402
from wordpuzzle.models.base import SessionLocal, init_db  # noqa: E402
from wordpuzzle.models.level_models import LevelSpec, WordSpec  # noqa: E402
from wordpuzzle.models.models import SaveEntry  # noqa: E402
from wordpuzzle.services.progress_service import ProgressService  # noqa: E402
from wordpuzzle.services.progress_store import ProgressStore  # noqa: E402


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    ensure_directories()
    yield


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a database session on an empty save table for each test."""
    init_db()
    db = SessionLocal()
    db.query(SaveEntry).delete()
    db.commit()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


@pytest.fixture
def store(db: Session) -> ProgressStore:
    """Create a progress store instance."""
    return ProgressStore(db)


@pytest.fixture
def progress_service(store: ProgressStore) -> ProgressService:
    """Create an initialized progress service."""
    service = ProgressService(store)
    service.initialize()
    return service


@pytest.fixture
def test_level() -> LevelSpec:
    """Level with the single word TEST split as TE + ST."""
    return LevelSpec(
        level_id=1,
        target_words=(WordSpec("TEST", ("TE", "ST")),),
        available_clusters=("TE", "ST"),
        cells_per_word=6,
    )


@pytest.fixture
def four_word_level() -> LevelSpec:
    """Reference-sized level: four six-letter words."""
    return LevelSpec(
        level_id=1,
        target_words=(
            WordSpec("PLANET", ("PL", "AN", "ET")),
            WordSpec("GARDEN", ("GAR", "DEN")),
            WordSpec("WINTER", ("WIN", "TER")),
            WordSpec("CASTLE", ("CAS", "TLE")),
        ),
        available_clusters=("WIN", "ET", "GAR", "CAS", "PL", "TER", "DEN", "AN", "TLE"),
        cells_per_word=6,
    )

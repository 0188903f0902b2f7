"""Database models for the puzzle."""
from sqlalchemy import Column, String, Text

from wordpuzzle.models.base import Base, TimestampMixin


class SaveEntry(Base, TimestampMixin):
    """Single key of the local key-value save store."""

    __tablename__ = "save_entries"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"SaveEntry(key={self.key!r})"

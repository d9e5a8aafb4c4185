"""Database models for the scheduler."""
from sqlalchemy import Column, DateTime, Integer, String

from vocabsched.models.base import Base, TimestampMixin


class Word(Base, TimestampMixin):
    """Vocabulary entry for one language pair."""

    __tablename__ = "words"

    id = Column(String, primary_key=True)
    text = Column(String, nullable=False)
    translation = Column(String, nullable=False)
    transcription = Column(String)
    example = Column(String)
    language_pair = Column(String, nullable=False, index=True)  # e.g., "en-hu"
    frequency_rank = Column(Integer, nullable=False, default=0)  # lower = more common

    def __repr__(self) -> str:
        return f"<Word {self.id} {self.text!r} ({self.language_pair})>"


class ProgressRow(Base, TimestampMixin):
    """Persisted progress of one word under one learning path.

    The composite primary key enforces a single record per
    (word_id, learning_path) pair.
    """

    __tablename__ = "progress_records"

    word_id = Column(String, primary_key=True)
    learning_path = Column(String, primary_key=True, index=True)
    schema_version = Column(Integer, nullable=False, default=1)
    bucket_level = Column(Integer, nullable=False, default=0)
    last_reviewed = Column(DateTime(timezone=True))
    next_review = Column(DateTime(timezone=True), nullable=False)
    success_count = Column(Integer, nullable=False, default=0)
    failure_count = Column(Integer, nullable=False, default=0)
    consecutive_successes = Column(Integer, nullable=False, default=0)
    total_review_time = Column(Integer, nullable=False, default=0)  # in milliseconds

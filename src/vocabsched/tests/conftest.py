"""Test configuration."""
import os
import random
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Callable, Generator, List

import pytest
from dotenv import load_dotenv
from faker import Faker

# Set test environment before any imports
os.environ["ENV"] = "test"

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from vocabsched.models.base import Base, init_db
from vocabsched.models.models import Word
from vocabsched.models.progress import ProgressRecord
from vocabsched.services.progress_store import SqlProgressStore
from vocabsched.services.progress_tracker import ProgressTracker
from vocabsched.services.schedule_manager import ScheduleManager
from vocabsched.services.spaced_repetition import SpacedRepetitionPolicy
from vocabsched.services.vocabulary_service import SqlVocabularyRepository

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
PATH = "en-hu"

fake = Faker()


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """In-memory database shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine: Engine) -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def store(db: Session) -> SqlProgressStore:
    return SqlProgressStore(db)


@pytest.fixture
def vocabulary(db: Session) -> SqlVocabularyRepository:
    return SqlVocabularyRepository(db)


@pytest.fixture
def policy() -> SpacedRepetitionPolicy:
    return SpacedRepetitionPolicy(
        bucket_intervals=[1, 3, 7, 14, 30],
        min_successes_for_promotion=2,
        randomization_factor=0.2,
        rng=random.Random(1234),
    )


@pytest.fixture
def tracker() -> ProgressTracker:
    return ProgressTracker(clock=lambda: NOW)


@pytest.fixture
def manager(
    store: SqlProgressStore,
    vocabulary: SqlVocabularyRepository,
    policy: SpacedRepetitionPolicy,
    tracker: ProgressTracker,
) -> ScheduleManager:
    return ScheduleManager(store, vocabulary, policy, tracker)


@pytest.fixture
def add_words(vocabulary: SqlVocabularyRepository) -> Callable[..., List[Word]]:
    """Add ``count`` words with frequency ranks starting at ``first_rank``."""

    def _add_words(count: int, prefix: str = "w", first_rank: int = 1, language_pair: str = PATH) -> List[Word]:
        return [
            vocabulary.add_word(
                word_id=f"{prefix}{index:03d}",
                text=f"{fake.word()}-{index}",
                translation=fake.word(),
                language_pair=language_pair,
                frequency_rank=first_rank + index,
            )
            for index in range(count)
        ]

    return _add_words


@pytest.fixture
def due_record(store: SqlProgressStore) -> Callable[..., ProgressRecord]:
    """Persist a record that became due ``overdue`` ago."""

    def _due_record(
        word_id: str,
        bucket_level: int = 0,
        overdue: timedelta = timedelta(hours=1),
        **fields,
    ) -> ProgressRecord:
        record = ProgressRecord.new(word_id, PATH, NOW - timedelta(days=60))
        record.bucket_level = bucket_level
        record.next_review = NOW - overdue
        record.last_reviewed = NOW - timedelta(days=2)
        for key, value in fields.items():
            setattr(record, key, value)
        store.put(record)
        return record

    return _due_record

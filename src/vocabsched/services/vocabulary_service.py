"""Repository of vocabulary words available for review."""
import logging
from typing import List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocabsched.errors import PersistenceError, ValidationError
from vocabsched.models.models import Word
from vocabsched.models.progress import split_learning_path

logger = logging.getLogger(__name__)


class VocabularyRepository(Protocol):
    """Resolves word ids and lists the words of a language pair."""

    def get_by_id(self, word_id: str) -> Optional[Word]: ...

    def get_candidates(self, source_lang: str, target_lang: str) -> List[Word]: ...


class SqlVocabularyRepository:
    """Vocabulary repository backed by the ``words`` table.

    Constructed once at application start and passed to the schedule
    manager; it holds no state besides the database session.
    """

    def __init__(self, db: Session):
        """Initialize the repository with a database session."""
        self.db = db

    def get_by_id(self, word_id: str) -> Optional[Word]:
        """Get a word by its ID."""
        try:
            return self.db.get(Word, word_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to load word {word_id}: {e}") from e

    def get_candidates(self, source_lang: str, target_lang: str) -> List[Word]:
        """Get all words of a language pair, most common first."""
        language_pair = f"{source_lang}-{target_lang}"
        try:
            return (
                self.db.query(Word)
                .filter(Word.language_pair == language_pair)
                .order_by(Word.frequency_rank, Word.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to load vocabulary for {language_pair}: {e}") from e

    def add_word(
        self,
        word_id: str,
        text: str,
        translation: str,
        language_pair: str,
        frequency_rank: int = 0,
        transcription: Optional[str] = None,
        example: Optional[str] = None,
    ) -> Word:
        """Create or update a word."""
        split_learning_path(language_pair)
        if not word_id or not text or not translation:
            raise ValidationError("Word id, text and translation are required")

        try:
            word = self.db.get(Word, word_id)
            if word is None:
                word = Word(id=word_id)
                self.db.add(word)
            word.text = text
            word.translation = translation
            word.language_pair = language_pair
            word.frequency_rank = frequency_rank
            word.transcription = transcription
            word.example = example
            self.db.commit()
            self.db.refresh(word)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to save word {word_id}: {e}") from e

        logger.info("Saved word %s (%s)", word_id, language_pair)
        return word

    def get_word_count(self, language_pair: Optional[str] = None) -> int:
        """Get the count of words, optionally for one language pair."""
        query = self.db.query(Word)
        if language_pair is not None:
            query = query.filter(Word.language_pair == language_pair)
        return query.count()

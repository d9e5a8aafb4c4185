"""Service for building and draining the daily review queue."""
import logging
from collections import defaultdict
from datetime import UTC, datetime, timedelta
from typing import Any, Dict, List, Optional, Set

from vocabsched import monitoring
from vocabsched.config import settings
from vocabsched.errors import NotFoundError, SessionStateError, ValidationError
from vocabsched.models.progress import ProgressRecord, split_learning_path
from vocabsched.models.session_models import (
    AnswerLogEntry,
    CardCompletion,
    CardRef,
    SessionStart,
    SessionState,
    SessionStats,
)
from vocabsched.services.progress_store import ProgressStore
from vocabsched.services.progress_tracker import ProgressTracker, format_duration
from vocabsched.services.spaced_repetition import SpacedRepetitionPolicy
from vocabsched.services.vocabulary_service import VocabularyRepository

logger = logging.getLogger(__name__)


class ScheduleManager:
    """Builds a session queue from due and new words and applies answers to it.

    Due records come first, most urgent first, then never-reviewed words of
    the learning path by ascending frequency rank. A correctly answered card
    leaves the queue; an incorrect one goes to the back until it is answered
    correctly. The session is complete when the queue is empty.
    """

    def __init__(
        self,
        store: ProgressStore,
        vocabulary: VocabularyRepository,
        policy: Optional[SpacedRepetitionPolicy] = None,
        tracker: Optional[ProgressTracker] = None,
    ):
        self.store = store
        self.vocabulary = vocabulary
        self.policy = policy or SpacedRepetitionPolicy()
        self.tracker = tracker

        self.state = SessionState.NOT_STARTED
        self.learning_path: Optional[str] = None
        self.total_cards = 0
        self.queue: List[str] = []
        self.candidate_pool: Set[str] = set()
        self.graduated: Set[str] = set()
        self._records: Dict[str, ProgressRecord] = {}
        self._answers: Dict[str, List[AnswerLogEntry]] = defaultdict(list)

    def start_session(
        self,
        learning_path: str,
        daily_target: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> SessionStart:
        """Build today's queue for a learning path."""
        now = now or datetime.now(UTC)
        if daily_target is None:
            daily_target = settings.scheduling.daily_target
        source_lang, target_lang = split_learning_path(learning_path)
        if not isinstance(daily_target, int) or daily_target < 1:
            raise ValidationError(f"Daily target must be a positive integer, got {daily_target!r}")

        # Store reads happen before any state changes so a failed read leaves
        # the running session answerable
        records = self.store.get_all(learning_path)
        due = self.policy.due_records(records, now)[:daily_target]

        new_words = []
        if len(due) < daily_target:
            reviewed = {record.word_id for record in records}
            candidates = [
                word for word in self.vocabulary.get_candidates(source_lang, target_lang)
                if word.id not in reviewed
            ]
            candidates.sort(key=lambda word: word.frequency_rank)
            new_words = candidates[:daily_target - len(due)]

        if self.state == SessionState.IN_PROGRESS:
            logger.info(
                "Abandoning session for %s with %d cards left",
                self.learning_path,
                len(self.queue),
            )
            self.state = SessionState.ABANDONED

        self.learning_path = learning_path
        self.queue = [record.word_id for record in due] + [word.id for word in new_words]
        self.total_cards = len(self.queue)
        self.candidate_pool = set(self.queue)
        self.graduated = set()
        self._records = {record.word_id: record for record in records}
        self._answers[learning_path] = []

        if self.queue:
            self.state = SessionState.IN_PROGRESS
            monitoring.sessions_started.labels(learning_path=learning_path).inc()
        else:
            self.state = SessionState.COMPLETE

        if self.tracker is not None:
            self.tracker.start_session(learning_path, self.total_cards)

        logger.info(
            "Started session for %s: %d due, %d new (target %d)",
            learning_path,
            len(due),
            len(new_words),
            daily_target,
        )
        return SessionStart(
            learning_path=learning_path,
            total_cards=self.total_cards,
            remaining_cards=len(self.queue),
            due_count=len(due),
            new_count=len(new_words),
        )

    def get_next_card(self) -> Optional[CardRef]:
        """Peek at the head of the queue without removing it."""
        if self.state != SessionState.IN_PROGRESS or not self.queue:
            return None

        word_id = self.queue[0]
        record = self._records.get(word_id)
        return CardRef(
            word_id=word_id,
            learning_path=self.learning_path,
            bucket_level=record.bucket_level if record else 0,
            is_new=record is None or record.total_reviews == 0,
            word=self.vocabulary.get_by_id(word_id),
        )

    def complete_card(
        self,
        word_id: str,
        was_correct: bool,
        review_time_ms: int = 0,
        learning_path: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CardCompletion:
        """Record an answer, persist the record and advance the queue."""
        if self.state != SessionState.IN_PROGRESS:
            raise SessionStateError(f"Cannot complete a card in state {self.state.value}")

        now = now or datetime.now(UTC)
        learning_path = learning_path or self.learning_path
        in_session = learning_path == self.learning_path

        try:
            self._require_word(word_id, learning_path, in_session)
        except NotFoundError as e:
            logger.warning("Skipping answer: %s", e)
            monitoring.unknown_cards.inc()
            if in_session and word_id in self.queue:
                self.queue.remove(word_id)
            return self._completion(success=False)

        record = self.store.get(word_id, learning_path)
        is_new_card = record is None
        if record is None:
            record = ProgressRecord.new(word_id, learning_path, now)
        bucket_before = record.bucket_level
        first_review = record.total_reviews == 0

        self.policy.update_progress(record, was_correct, review_time_ms, now)
        # Raises on failure; the queue is only touched after a successful write
        self.store.put(record)

        if is_new_card:
            monitoring.records_created.labels(learning_path=learning_path).inc()
        monitoring.cards_answered.labels(
            learning_path=learning_path,
            result="correct" if was_correct else "incorrect",
        ).inc()

        if in_session:
            self._records[word_id] = record
            self._answers[learning_path].append(AnswerLogEntry(
                word_id=word_id,
                was_correct=was_correct,
                review_time_ms=review_time_ms,
                bucket_level=record.bucket_level,
            ))
            if word_id in self.queue:
                self.queue.remove(word_id)
                if was_correct:
                    self.graduated.add(word_id)
                else:
                    self.queue.append(word_id)

        if self.tracker is not None:
            self.tracker.record_response(word_id, was_correct, review_time_ms, {
                "bucket_level": bucket_before,
                "new_bucket_level": record.bucket_level,
                "is_new_card": first_review,
            })

        return self._completion(success=True, record=record)

    def _require_word(self, word_id: str, learning_path: str, in_session: bool) -> None:
        """Raise NotFoundError unless the word belongs to ``learning_path``."""
        if in_session and word_id in self.candidate_pool:
            return
        word = self.vocabulary.get_by_id(word_id)
        if word is None or word.language_pair != learning_path:
            raise NotFoundError(f"Word {word_id} is not in the {learning_path} vocabulary")

    def _completion(self, success: bool, record: Optional[ProgressRecord] = None) -> CardCompletion:
        is_complete = not self.queue
        if is_complete and self.state == SessionState.IN_PROGRESS:
            self.state = SessionState.COMPLETE
            monitoring.sessions_completed.labels(learning_path=self.learning_path).inc()
            logger.info("Session for %s complete", self.learning_path)
        return CardCompletion(
            success=success,
            is_session_complete=is_complete,
            remaining_cards=len(self.queue),
            record=record,
        )

    def abandon_session(self) -> None:
        """Drop the queue. Records already answered stay persisted."""
        if self.state == SessionState.IN_PROGRESS:
            logger.info("Session for %s abandoned with %d cards left", self.learning_path, len(self.queue))
            self.state = SessionState.ABANDONED
        self.queue = []

    def get_session_statistics(self, learning_path: str) -> SessionStats:
        """Aggregate the answers recorded for ``learning_path`` in the current session."""
        answers = self._answers.get(learning_path, [])
        correct = sum(1 for answer in answers if answer.was_correct)
        time_spent = sum(answer.review_time_ms for answer in answers)
        is_current = learning_path == self.learning_path
        return SessionStats(
            cards_completed=len(answers),
            correct_count=correct,
            total_cards=self.total_cards if is_current else 0,
            success_rate=round(correct / len(answers) * 100) if answers else 0,
            time_spent_ms=time_spent,
            time_spent_formatted=format_duration(time_spent),
            is_completed=is_current and self.state == SessionState.COMPLETE,
        )

    def get_session_status(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "learning_path": self.learning_path,
            "total_cards": self.total_cards,
            "completed_count": len(self.graduated),
            "remaining_count": len(self.queue),
        }

    def get_upcoming_reviews(
        self, learning_path: str, days: int = 7, now: Optional[datetime] = None
    ) -> Dict[str, int]:
        """Number of reviews scheduled on each of the next ``days`` dates."""
        now = now or datetime.now(UTC)
        upcoming = {
            (now.astimezone(UTC) + timedelta(days=offset)).date().isoformat(): 0
            for offset in range(days)
        }
        for record in self.store.get_all(learning_path):
            date_key = record.next_review.astimezone(UTC).date().isoformat()
            if date_key in upcoming:
                upcoming[date_key] += 1
        return upcoming

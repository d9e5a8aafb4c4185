"""Per-session instrumentation: card timing, running counts and summary."""
import logging
import time
import uuid
from dataclasses import asdict
from datetime import UTC, datetime
from typing import Any, Callable, Dict, List, Optional

from vocabsched import monitoring
from vocabsched.models.session_models import CardResult, SessionState, SessionSummary

logger = logging.getLogger(__name__)


def format_duration(milliseconds: int) -> str:
    """Format a duration as ``45s``, ``3m 5s`` or ``1h 2m``."""
    seconds = max(0, int(milliseconds // 1000))
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        minutes, remaining = divmod(seconds, 60)
        return f"{minutes}m {remaining}s" if remaining else f"{minutes}m"
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return f"{hours}h {minutes}m" if minutes else f"{hours}h"


class ProgressTracker:
    """Tracks one review session at a time.

    Nothing here is persisted; an abandoned session simply loses its summary.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
        timer: Callable[[], float] = time.monotonic,
    ):
        self.clock = clock
        self.timer = timer
        self.card_timers: Dict[str, float] = {}
        self._reset()

    def _reset(self) -> None:
        self.state = SessionState.NOT_STARTED
        self.session_id: Optional[str] = None
        self.learning_path: Optional[str] = None
        self.total_cards = 0
        self.start_time: Optional[datetime] = None
        self.cards_reviewed = 0
        self.correct_count = 0
        self.incorrect_count = 0
        self.total_review_time = 0
        self.card_results: List[CardResult] = []
        self.card_timers.clear()

    def start_session(self, learning_path: str, total_cards: int) -> str:
        """Reset counters and start timing a new session. Returns its id."""
        if self.state == SessionState.IN_PROGRESS:
            logger.info("Discarding unfinished tracked session %s", self.session_id)
        self._reset()
        self.session_id = uuid.uuid4().hex
        self.learning_path = learning_path
        self.total_cards = total_cards
        self.start_time = self.clock()
        self.state = SessionState.IN_PROGRESS
        return self.session_id

    def start_card_timer(self, word_id: str) -> None:
        self.card_timers[word_id] = self.timer()

    def end_card_timer(self, word_id: str) -> int:
        """Elapsed milliseconds since ``start_card_timer``; 0 if never started."""
        started = self.card_timers.pop(word_id, None)
        if started is None:
            return 0
        return round((self.timer() - started) * 1000)

    def record_response(
        self,
        word_id: str,
        was_correct: bool,
        review_time_ms: int,
        meta: Optional[Dict[str, Any]] = None,
    ) -> CardResult:
        """Log an answer and update the running counts."""
        meta = dict(meta or {})
        result = CardResult(
            word_id=word_id,
            was_correct=was_correct,
            review_time_ms=review_time_ms,
            timestamp=self.clock().isoformat(),
            bucket_level=meta.get("bucket_level", 0),
            was_new_card=meta.get("is_new_card", False),
            meta=meta,
        )

        self.cards_reviewed += 1
        self.total_review_time += review_time_ms
        if was_correct:
            self.correct_count += 1
        else:
            self.incorrect_count += 1
        self.card_results.append(result)
        return result

    @property
    def success_rate(self) -> int:
        if self.cards_reviewed == 0:
            return 0
        return round(self.correct_count / self.cards_reviewed * 100)

    @property
    def average_time_per_card(self) -> int:
        if self.cards_reviewed == 0:
            return 0
        return round(self.total_review_time / self.cards_reviewed)

    def get_current_session_stats(self) -> Dict[str, Any]:
        """Live snapshot for progress display."""
        return {
            "session_id": self.session_id,
            "learning_path": self.learning_path,
            "state": self.state.value,
            "total_cards": self.total_cards,
            "cards_reviewed": self.cards_reviewed,
            "correct_count": self.correct_count,
            "incorrect_count": self.incorrect_count,
            "total_review_time": self.total_review_time,
            "average_time_per_card": self.average_time_per_card,
            "success_rate": self.success_rate,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "card_results": [asdict(result) for result in self.card_results],
        }

    def end_session(self, completed_normally: bool = True) -> SessionSummary:
        """Finalize the session and make the tracker reusable."""
        end_time = self.clock()
        duration_ms = 0
        if self.start_time is not None:
            duration_ms = max(0, round((end_time - self.start_time).total_seconds() * 1000))

        summary = SessionSummary(
            session_id=self.session_id,
            learning_path=self.learning_path,
            total_cards=self.total_cards,
            cards_reviewed=self.cards_reviewed,
            correct_count=self.correct_count,
            incorrect_count=self.incorrect_count,
            success_rate=self.success_rate,
            total_review_time=self.total_review_time,
            average_time_per_card=self.average_time_per_card,
            duration_ms=duration_ms,
            duration_formatted=format_duration(duration_ms),
            completed=completed_normally,
        )

        if self.start_time is not None:
            monitoring.session_duration.observe(duration_ms / 1000)
        logger.info(
            "Session %s ended: %d/%d correct (%d%%) in %s",
            summary.session_id,
            summary.correct_count,
            summary.cards_reviewed,
            summary.success_rate,
            summary.duration_formatted,
        )

        self._reset()
        return summary

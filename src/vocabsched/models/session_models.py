"""Models for review session data structures."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from vocabsched.models.models import Word
from vocabsched.models.progress import ProgressRecord


class SessionState(Enum):
    """Lifecycle of a review session."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"  # Queue emptied
    ABANDONED = "abandoned"  # Replaced or dropped before the queue emptied


@dataclass
class SessionStart:
    """Result of starting a session."""
    learning_path: str
    total_cards: int
    remaining_cards: int
    due_count: int = 0
    new_count: int = 0


@dataclass
class CardRef:
    """The card currently at the head of the session queue."""
    word_id: str
    learning_path: str
    bucket_level: int = 0
    is_new: bool = True
    word: Optional[Word] = None


@dataclass
class CardCompletion:
    """Result of answering a card."""
    success: bool
    is_session_complete: bool
    remaining_cards: int = 0
    record: Optional[ProgressRecord] = None


@dataclass
class AnswerLogEntry:
    """One answer recorded by the schedule manager."""
    word_id: str
    was_correct: bool
    review_time_ms: int
    bucket_level: int


@dataclass
class SessionStats:
    """Aggregate of the answers recorded for one learning path in a session."""
    cards_completed: int = 0
    correct_count: int = 0
    total_cards: int = 0
    success_rate: int = 0
    time_spent_ms: int = 0
    time_spent_formatted: str = "0s"
    is_completed: bool = False


@dataclass
class CardResult:
    """A response logged by the progress tracker."""
    word_id: str
    was_correct: bool
    review_time_ms: int
    timestamp: str
    bucket_level: int = 0
    was_new_card: bool = False
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SessionSummary:
    """Final summary produced when a tracked session ends."""
    session_id: Optional[str]
    learning_path: Optional[str]
    total_cards: int
    cards_reviewed: int
    correct_count: int
    incorrect_count: int
    success_rate: int
    total_review_time: int
    average_time_per_card: int
    duration_ms: int
    duration_formatted: str
    completed: bool

"""Spaced repetition policy: bucket promotion, demotion and rescheduling."""
import logging
import math
import random
from datetime import UTC, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from vocabsched.config import settings
from vocabsched.models.progress import ProgressRecord

logger = logging.getLogger(__name__)

DAY = timedelta(days=1)


class SpacedRepetitionPolicy:
    """Decides bucket levels and next review times for progress records.

    The policy is pure apart from the jitter drawn from ``rng``; pass a seeded
    ``random.Random`` to make rescheduling reproducible.
    """

    def __init__(
        self,
        bucket_intervals: Optional[List[int]] = None,
        min_successes_for_promotion: Optional[int] = None,
        randomization_factor: Optional[float] = None,
        demotion_on_failure: Optional[bool] = None,
        overdue_threshold_days: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        config = settings.scheduling
        self.bucket_intervals = list(bucket_intervals or config.bucket_intervals)
        self.max_bucket = len(self.bucket_intervals) - 1
        self.min_successes_for_promotion = (
            min_successes_for_promotion
            if min_successes_for_promotion is not None
            else config.min_successes_for_promotion
        )
        self.randomization_factor = (
            randomization_factor if randomization_factor is not None else config.randomization_factor
        )
        self.demotion_on_failure = (
            demotion_on_failure if demotion_on_failure is not None else config.demotion_on_failure
        )
        self.overdue_threshold = timedelta(
            days=overdue_threshold_days
            if overdue_threshold_days is not None
            else config.overdue_threshold_days
        )
        self.rng = rng or random.Random()

    def record_success(
        self, record: ProgressRecord, review_time_ms: int = 0, now: Optional[datetime] = None
    ) -> ProgressRecord:
        """Apply a correct answer to the record."""
        now = now or datetime.now(UTC)
        record.success_count += 1
        record.consecutive_successes += 1
        record.total_review_time += max(0, int(review_time_ms))
        record.last_reviewed = now

        if (
            record.consecutive_successes >= self.min_successes_for_promotion
            and record.bucket_level < self.max_bucket
        ):
            record.bucket_level += 1
            logger.debug("Promoted %s to bucket %d", record.word_id, record.bucket_level)

        record.next_review = self.next_review_date(record.bucket_level, now)
        record.updated_at = now
        return record

    def record_failure(
        self, record: ProgressRecord, review_time_ms: int = 0, now: Optional[datetime] = None
    ) -> ProgressRecord:
        """Apply an incorrect answer to the record."""
        now = now or datetime.now(UTC)
        record.failure_count += 1
        record.consecutive_successes = 0
        record.total_review_time += max(0, int(review_time_ms))
        record.last_reviewed = now

        if self.demotion_on_failure and record.bucket_level > 0:
            record.bucket_level = max(0, record.bucket_level - 1)
            logger.debug("Demoted %s to bucket %d", record.word_id, record.bucket_level)

        record.next_review = self.next_review_date(record.bucket_level, now)
        record.updated_at = now
        return record

    def update_progress(
        self,
        record: ProgressRecord,
        was_correct: bool,
        review_time_ms: int = 0,
        now: Optional[datetime] = None,
    ) -> ProgressRecord:
        """Apply an answer of either outcome."""
        if was_correct:
            return self.record_success(record, review_time_ms, now)
        return self.record_failure(record, review_time_ms, now)

    def interval_days(self, bucket_level: int) -> int:
        if 0 <= bucket_level <= self.max_bucket:
            return self.bucket_intervals[bucket_level]
        return self.bucket_intervals[0]

    def random_offset_days(self, interval_days: float) -> float:
        """Uniform jitter in [-factor * interval, +factor * interval] days."""
        max_offset = interval_days * self.randomization_factor
        return self.rng.uniform(-max_offset, max_offset)

    def next_review_date(self, bucket_level: int, now: Optional[datetime] = None) -> datetime:
        """Base interval for the bucket plus jitter, measured from ``now``."""
        now = now or datetime.now(UTC)
        interval = self.interval_days(bucket_level)
        # Not clamped to ``now``: a large randomization factor can place a
        # bucket 0 review before the answer time.
        return now + timedelta(days=interval + self.random_offset_days(interval))

    def is_due(self, record: ProgressRecord, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(UTC)
        return record.next_review <= now

    def is_overdue(self, record: ProgressRecord, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(UTC)
        return now - record.next_review > self.overdue_threshold

    def days_until_review(self, record: ProgressRecord, now: Optional[datetime] = None) -> int:
        """Whole days until the review, rounded up; negative when overdue."""
        now = now or datetime.now(UTC)
        return math.ceil((record.next_review - now) / DAY)

    def priority_score(self, record: ProgressRecord, now: Optional[datetime] = None) -> int:
        """Urgency used to order due cards. Higher is more urgent."""
        now = now or datetime.now(UTC)
        score = 0

        days_overdue = -self.days_until_review(record, now)
        score += 10 * max(0, days_overdue)

        if self.is_due(record, now):
            score += 5

        # Lower buckets are less well known
        score += self.max_bucket - min(record.bucket_level, self.max_bucket)

        # Recently failed
        if record.consecutive_successes == 0 and record.failure_count > 0:
            score += 3

        return score

    def due_records(
        self, records: Iterable[ProgressRecord], now: Optional[datetime] = None
    ) -> List[ProgressRecord]:
        """Due and overdue records, most urgent first."""
        now = now or datetime.now(UTC)
        due = [record for record in records if self.is_due(record, now)]
        return sorted(due, key=lambda record: self.priority_score(record, now), reverse=True)

    def overdue_records(
        self, records: Iterable[ProgressRecord], now: Optional[datetime] = None
    ) -> List[ProgressRecord]:
        """Overdue records, most days overdue first."""
        now = now or datetime.now(UTC)
        overdue = [record for record in records if self.is_overdue(record, now)]
        return sorted(overdue, key=lambda record: self.days_until_review(record, now))

    def statistics(
        self, records: Iterable[ProgressRecord], now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Summary of a learning path's progress records."""
        now = now or datetime.now(UTC)
        stats: Dict[str, Any] = {
            "total_cards": 0,
            "bucket_distribution": [0] * len(self.bucket_intervals),
            "average_success_rate": 0,
            "total_reviews": 0,
            "due_today": 0,
            "overdue": 0,
            "mastered": 0,
            "learning": 0,
            "new": 0,
        }

        total_success_rate = 0
        cards_with_reviews = 0
        for record in records:
            stats["total_cards"] += 1
            if 0 <= record.bucket_level <= self.max_bucket:
                stats["bucket_distribution"][record.bucket_level] += 1

            if record.total_reviews > 0:
                total_success_rate += record.success_rate
                cards_with_reviews += 1
            stats["total_reviews"] += record.total_reviews

            if self.is_due(record, now):
                stats["due_today"] += 1
            if self.is_overdue(record, now):
                stats["overdue"] += 1

            if record.bucket_level == self.max_bucket:
                stats["mastered"] += 1
            elif record.total_reviews > 0:
                stats["learning"] += 1
            else:
                stats["new"] += 1

        if cards_with_reviews:
            stats["average_success_rate"] = round(total_success_rate / cards_with_reviews)
        return stats

    @staticmethod
    def estimate_study_time(card_count: int, seconds_per_card: int = 15) -> Dict[str, Any]:
        """Rough time needed to get through ``card_count`` cards."""
        total_seconds = card_count * seconds_per_card
        if total_seconds < 60:
            formatted = f"{total_seconds} seconds"
        elif total_seconds < 3600:
            minutes = round(total_seconds / 60)
            formatted = f"{minutes} minute{'s' if minutes != 1 else ''}"
        else:
            hours = total_seconds // 3600
            minutes = round((total_seconds % 3600) / 60)
            formatted = f"{hours}h {minutes}m"
        return {
            "total_seconds": total_seconds,
            "minutes": round(total_seconds / 60),
            "formatted_time": formatted,
        }

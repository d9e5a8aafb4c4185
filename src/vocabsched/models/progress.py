"""Progress record entity and its versioned interchange schema."""
import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

from vocabsched.config import settings
from vocabsched.errors import ValidationError
from vocabsched.models.base import as_utc

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2
LEARNING_PATH_PATTERN = re.compile(r"^[a-z]{2}-[a-z]{2}$")
LEARNING_STAGES = ["New", "Learning", "Familiar", "Known", "Mastered"]

_COUNTER_FIELDS = (
    "successCount",
    "failureCount",
    "consecutiveSuccesses",
    "totalReviewTime",
)


def is_valid_learning_path(learning_path: Optional[str]) -> bool:
    """Check a learning path has the ``xx-xx`` form."""
    return bool(learning_path) and LEARNING_PATH_PATTERN.match(learning_path) is not None


def split_learning_path(learning_path: str) -> tuple[str, str]:
    """Split ``"en-hu"`` into ``("en", "hu")``."""
    if not is_valid_learning_path(learning_path):
        raise ValidationError(f"Valid learning path is required (format: xx-xx), got {learning_path!r}")
    source, target = learning_path.split("-")
    return source, target


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    try:
        return as_utc(datetime.fromisoformat(str(value)))
    except ValueError as e:
        raise ValidationError(f"Invalid timestamp {value!r}") from e


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _clamp_int(data: Dict[str, Any], key: str, low: int, high: Optional[int] = None) -> int:
    """Read an integer field, flooring/ceiling it into range instead of failing."""
    raw = data.get(key, 0)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning("Record %s: non-numeric %s=%r reset to %d", data.get("wordId"), key, raw, low)
        return low
    clamped = max(low, value)
    if high is not None:
        clamped = min(high, clamped)
    if clamped != value or clamped != raw:
        logger.warning("Record %s: %s=%r clamped to %d", data.get("wordId"), key, raw, clamped)
    return clamped


def migrate_record_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Bring a persisted record blob up to the current schema version.

    Unversioned blobs are version 1: the original prototype's shape, which may
    omit any field except the identifiers.
    """
    migrated = dict(data)
    version = migrated.get("schemaVersion", 1)
    if not isinstance(version, int) or version < 1:
        raise ValidationError(f"Unsupported schema version {version!r}")
    if version > SCHEMA_VERSION:
        raise ValidationError(
            f"Record schema version {version} is newer than supported version {SCHEMA_VERSION}"
        )

    if version == 1:
        now = datetime.now(UTC).isoformat()
        migrated.setdefault("bucketLevel", 0)
        migrated.setdefault("lastReviewed", None)
        migrated.setdefault("createdAt", now)
        migrated.setdefault("updatedAt", migrated["createdAt"])
        if not migrated.get("nextReview"):
            migrated["nextReview"] = migrated["createdAt"]
        for key in _COUNTER_FIELDS:
            migrated.setdefault(key, 0)
        migrated["schemaVersion"] = 2

    return migrated


@dataclass
class ProgressRecord:
    """Durable performance state of one word under one learning path."""
    word_id: str
    learning_path: str
    bucket_level: int = 0
    last_reviewed: Optional[datetime] = None
    next_review: datetime = field(default_factory=lambda: datetime.now(UTC))
    success_count: int = 0
    failure_count: int = 0
    consecutive_successes: int = 0
    total_review_time: int = 0  # in milliseconds
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def new(cls, word_id: str, learning_path: str, now: Optional[datetime] = None) -> "ProgressRecord":
        """Create a never-reviewed record, due immediately."""
        now = now or datetime.now(UTC)
        return cls(
            word_id=word_id,
            learning_path=learning_path,
            next_review=now,
            created_at=now,
            updated_at=now,
        )

    @property
    def total_reviews(self) -> int:
        return self.success_count + self.failure_count

    @property
    def success_rate(self) -> int:
        """Success rate in whole percent, 0 before the first review."""
        if self.total_reviews == 0:
            return 0
        return round(self.success_count / self.total_reviews * 100)

    @property
    def average_review_time(self) -> int:
        """Average review time in whole seconds."""
        if self.total_reviews == 0:
            return 0
        return round(self.total_review_time / self.total_reviews / 1000)

    @property
    def learning_stage(self) -> str:
        if 0 <= self.bucket_level < len(LEARNING_STAGES):
            return LEARNING_STAGES[self.bucket_level]
        return "Unknown"

    def reset(self, now: Optional[datetime] = None) -> None:
        """Forget all progress. Only used by explicit external resets."""
        now = now or datetime.now(UTC)
        self.bucket_level = 0
        self.last_reviewed = None
        self.next_review = now
        self.success_count = 0
        self.failure_count = 0
        self.consecutive_successes = 0
        self.total_review_time = 0
        self.updated_at = now

    def validate(self, max_bucket: Optional[int] = None) -> List[str]:
        """Return a list of validation errors; empty when the record is valid."""
        if max_bucket is None:
            max_bucket = settings.scheduling.max_bucket
        errors = []

        if not self.word_id or not str(self.word_id).strip():
            errors.append("Word ID is required")

        if not is_valid_learning_path(self.learning_path):
            errors.append("Valid learning path is required (format: xx-xx)")

        if not isinstance(self.bucket_level, int) or not 0 <= self.bucket_level <= max_bucket:
            errors.append(f"Bucket level must be between 0 and {max_bucket}")

        if self.success_count < 0 or self.failure_count < 0:
            errors.append("Success and failure counts must be non-negative")

        if self.consecutive_successes < 0:
            errors.append("Consecutive successes must be non-negative")

        if self.total_review_time < 0:
            errors.append("Total review time must be non-negative")

        if self.next_review is None:
            errors.append("Next review time is required")

        return errors

    def ensure_valid(self, max_bucket: Optional[int] = None) -> None:
        """Raise ValidationError if the record is malformed."""
        errors = self.validate(max_bucket)
        if errors:
            raise ValidationError(
                f"Invalid progress record {self.word_id!r}/{self.learning_path!r}: {'; '.join(errors)}",
                errors,
            )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the versioned interchange schema."""
        return {
            "schemaVersion": SCHEMA_VERSION,
            "wordId": self.word_id,
            "learningPath": self.learning_path,
            "bucketLevel": self.bucket_level,
            "lastReviewed": _format_timestamp(self.last_reviewed),
            "nextReview": _format_timestamp(self.next_review),
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "consecutiveSuccesses": self.consecutive_successes,
            "totalReviewTime": self.total_review_time,
            "createdAt": _format_timestamp(self.created_at),
            "updatedAt": _format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], max_bucket: Optional[int] = None) -> "ProgressRecord":
        """Load a record blob, migrating old versions and clamping drifted values."""
        if max_bucket is None:
            max_bucket = settings.scheduling.max_bucket
        data = migrate_record_data(data)

        word_id = data.get("wordId")
        learning_path = data.get("learningPath")
        if not word_id or not learning_path:
            raise ValidationError("Progress record is missing wordId or learningPath")

        created_at = _parse_timestamp(data.get("createdAt")) or datetime.now(UTC)
        return cls(
            word_id=str(word_id),
            learning_path=str(learning_path),
            bucket_level=_clamp_int(data, "bucketLevel", 0, max_bucket),
            last_reviewed=_parse_timestamp(data.get("lastReviewed")),
            next_review=_parse_timestamp(data.get("nextReview")) or created_at,
            success_count=_clamp_int(data, "successCount", 0),
            failure_count=_clamp_int(data, "failureCount", 0),
            consecutive_successes=_clamp_int(data, "consecutiveSuccesses", 0),
            total_review_time=_clamp_int(data, "totalReviewTime", 0),
            created_at=created_at,
            updated_at=_parse_timestamp(data.get("updatedAt")) or created_at,
        )

"""Durable storage for progress records."""
import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocabsched import monitoring
from vocabsched.errors import PersistenceError, ValidationError
from vocabsched.models.models import ProgressRow
from vocabsched.models.progress import SCHEMA_VERSION, ProgressRecord

logger = logging.getLogger(__name__)


class ProgressStore(Protocol):
    """Key-value store of progress records keyed by (word_id, learning_path)."""

    def get_all(self, learning_path: str) -> List[ProgressRecord]: ...

    def get(self, word_id: str, learning_path: str) -> Optional[ProgressRecord]: ...

    def put(self, record: ProgressRecord) -> None: ...


def row_to_record(row: ProgressRow) -> ProgressRecord:
    """Convert a database row through the versioned record schema."""
    return ProgressRecord.from_dict({
        "schemaVersion": row.schema_version,
        "wordId": row.word_id,
        "learningPath": row.learning_path,
        "bucketLevel": row.bucket_level,
        "lastReviewed": row.last_reviewed,
        "nextReview": row.next_review,
        "successCount": row.success_count,
        "failureCount": row.failure_count,
        "consecutiveSuccesses": row.consecutive_successes,
        "totalReviewTime": row.total_review_time,
        "createdAt": row.created_at,
        "updatedAt": row.updated_at,
    })


def _apply_record(row: ProgressRow, record: ProgressRecord) -> None:
    row.schema_version = SCHEMA_VERSION
    row.bucket_level = record.bucket_level
    row.last_reviewed = record.last_reviewed
    row.next_review = record.next_review
    row.success_count = record.success_count
    row.failure_count = record.failure_count
    row.consecutive_successes = record.consecutive_successes
    row.total_review_time = record.total_review_time
    row.created_at = record.created_at
    row.updated_at = record.updated_at


class SqlProgressStore:
    """Progress store backed by the ``progress_records`` table."""

    def __init__(self, db: Session):
        """Initialize the store with a database session."""
        self.db = db

    def get_all(self, learning_path: str) -> List[ProgressRecord]:
        """Get every record of a learning path."""
        monitoring.store_operations.labels(operation_type="get_all").inc()
        try:
            rows = (
                self.db.query(ProgressRow)
                .filter(ProgressRow.learning_path == learning_path)
                .all()
            )
        except SQLAlchemyError as e:
            self._fail("get_all", e)
        records = []
        for row in rows:
            try:
                records.append(row_to_record(row))
            except ValidationError as e:
                logger.error("Skipping unreadable record %s/%s: %s", row.word_id, row.learning_path, e)
        return records

    def get(self, word_id: str, learning_path: str) -> Optional[ProgressRecord]:
        """Get one record, or None if the word was never reviewed on this path."""
        monitoring.store_operations.labels(operation_type="get").inc()
        try:
            row = self.db.get(ProgressRow, (word_id, learning_path))
        except SQLAlchemyError as e:
            self._fail("get", e)
        return row_to_record(row) if row is not None else None

    def put(self, record: ProgressRecord) -> None:
        """Validate and upsert a record."""
        try:
            record.ensure_valid()
        except ValidationError:
            monitoring.validation_errors.inc()
            raise

        monitoring.store_operations.labels(operation_type="put").inc()
        try:
            row = self.db.get(ProgressRow, (record.word_id, record.learning_path))
            if row is None:
                row = ProgressRow(word_id=record.word_id, learning_path=record.learning_path)
                self.db.add(row)
            _apply_record(row, record)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail("put", e)

    def delete(self, word_id: str, learning_path: str) -> bool:
        """Delete a record. Returns False if there was nothing to delete."""
        monitoring.store_operations.labels(operation_type="delete").inc()
        try:
            row = self.db.get(ProgressRow, (word_id, learning_path))
            if row is None:
                return False
            self.db.delete(row)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail("delete", e)
        return True

    def export_records(self, learning_path: str) -> List[Dict[str, Any]]:
        """Dump a learning path's records in the interchange schema."""
        return [record.to_dict() for record in self.get_all(learning_path)]

    def import_records(self, blobs: Iterable[Dict[str, Any]]) -> int:
        """Load records in the interchange schema, replacing existing ones."""
        count = 0
        for blob in blobs:
            self.put(ProgressRecord.from_dict(blob))
            count += 1
        logger.info("Imported %d progress records", count)
        return count

    def _fail(self, operation: str, error: SQLAlchemyError) -> None:
        self.db.rollback()
        monitoring.persistence_errors.labels(operation_type=operation).inc()
        logger.error("Progress store %s failed: %s", operation, error)
        raise PersistenceError(f"Progress store {operation} failed: {error}") from error

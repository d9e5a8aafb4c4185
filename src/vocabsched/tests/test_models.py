"""Tests for the progress record entity and its schema."""
from datetime import timedelta

import pytest

from conftest import NOW, PATH
from vocabsched.errors import ValidationError
from vocabsched.models.progress import (
    SCHEMA_VERSION,
    ProgressRecord,
    is_valid_learning_path,
    migrate_record_data,
    split_learning_path,
)


def test_new_record_defaults() -> None:
    record = ProgressRecord.new("w001", PATH, NOW)

    assert record.bucket_level == 0
    assert record.last_reviewed is None
    assert record.next_review == NOW
    assert record.created_at == NOW
    assert record.total_reviews == 0
    assert record.success_rate == 0
    assert record.average_review_time == 0
    assert record.learning_stage == "New"
    assert record.validate() == []


def test_derived_helpers() -> None:
    record = ProgressRecord.new("w001", PATH, NOW)
    record.success_count = 2
    record.failure_count = 1
    record.total_review_time = 9000
    record.bucket_level = 4

    assert record.total_reviews == 3
    assert record.success_rate == 67
    assert record.average_review_time == 3
    assert record.learning_stage == "Mastered"


def test_reset_clears_progress() -> None:
    record = ProgressRecord.new("w001", PATH, NOW - timedelta(days=10))
    record.bucket_level = 3
    record.success_count = 5
    record.consecutive_successes = 2
    record.last_reviewed = NOW - timedelta(days=1)

    record.reset(NOW)

    assert record.bucket_level == 0
    assert record.success_count == 0
    assert record.consecutive_successes == 0
    assert record.last_reviewed is None
    assert record.next_review == NOW
    assert record.created_at == NOW - timedelta(days=10)


@pytest.mark.parametrize(
    "field, value, message",
    [
        ("word_id", "", "Word ID is required"),
        ("learning_path", "english-hungarian", "Valid learning path is required (format: xx-xx)"),
        ("bucket_level", 5, "Bucket level must be between 0 and 4"),
        ("bucket_level", -1, "Bucket level must be between 0 and 4"),
        ("failure_count", -2, "Success and failure counts must be non-negative"),
        ("consecutive_successes", -1, "Consecutive successes must be non-negative"),
        ("total_review_time", -10, "Total review time must be non-negative"),
    ],
)
def test_validate_rejects_malformed_records(field: str, value, message: str) -> None:
    record = ProgressRecord.new("w001", PATH, NOW)
    setattr(record, field, value)

    assert message in record.validate()
    with pytest.raises(ValidationError) as excinfo:
        record.ensure_valid()
    assert message in excinfo.value.errors


def test_to_dict_uses_interchange_keys() -> None:
    record = ProgressRecord.new("w001", PATH, NOW)

    data = record.to_dict()

    assert data == {
        "schemaVersion": SCHEMA_VERSION,
        "wordId": "w001",
        "learningPath": PATH,
        "bucketLevel": 0,
        "lastReviewed": None,
        "nextReview": NOW.isoformat(),
        "successCount": 0,
        "failureCount": 0,
        "consecutiveSuccesses": 0,
        "totalReviewTime": 0,
        "createdAt": NOW.isoformat(),
        "updatedAt": NOW.isoformat(),
    }
    assert ProgressRecord.from_dict(data) == record


def test_unversioned_blob_is_migrated() -> None:
    """Blobs written without a schema version get defaults for missing fields."""
    legacy = {
        "wordId": "w001",
        "learningPath": PATH,
        "bucketLevel": 2,
        "createdAt": "2024-01-01T00:00:00.000Z",
    }

    migrated = migrate_record_data(legacy)
    record = ProgressRecord.from_dict(legacy)

    assert migrated["schemaVersion"] == SCHEMA_VERSION
    assert migrated["nextReview"] == migrated["createdAt"]
    assert "schemaVersion" not in legacy
    assert record.bucket_level == 2
    assert record.success_count == 0
    assert record.next_review == record.created_at
    assert record.created_at.tzinfo is not None


def test_future_schema_version_is_rejected() -> None:
    with pytest.raises(ValidationError):
        ProgressRecord.from_dict({"schemaVersion": SCHEMA_VERSION + 1, "wordId": "w001", "learningPath": PATH})


def test_missing_identifiers_are_rejected() -> None:
    with pytest.raises(ValidationError):
        ProgressRecord.from_dict({"learningPath": PATH})


def test_drifted_values_are_clamped_on_load() -> None:
    data = ProgressRecord.new("w001", PATH, NOW).to_dict()
    data.update({
        "bucketLevel": 9,
        "successCount": -3,
        "failureCount": "oops",
        "consecutiveSuccesses": -1,
        "totalReviewTime": -500,
    })

    record = ProgressRecord.from_dict(data)

    assert record.bucket_level == 4
    assert record.success_count == 0
    assert record.failure_count == 0
    assert record.consecutive_successes == 0
    assert record.total_review_time == 0
    assert record.validate() == []


def test_invalid_timestamp_is_rejected() -> None:
    data = ProgressRecord.new("w001", PATH, NOW).to_dict()
    data["nextReview"] = "tomorrow"

    with pytest.raises(ValidationError):
        ProgressRecord.from_dict(data)


def test_learning_path_helpers() -> None:
    assert is_valid_learning_path("en-hu")
    assert not is_valid_learning_path("EN-HU")
    assert not is_valid_learning_path(None)
    assert split_learning_path("bg-en") == ("bg", "en")
    with pytest.raises(ValidationError):
        split_learning_path("en_hu")

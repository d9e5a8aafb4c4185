"""Tests for configuration settings."""
import pytest

from vocabsched.config import Settings, SchedulingSettings, settings


def test_settings_defaults():
    """Test default scheduling values."""
    assert settings.scheduling.bucket_intervals == [1, 3, 7, 14, 30]
    assert settings.scheduling.max_bucket == 4
    assert settings.scheduling.min_successes_for_promotion == 2
    assert settings.scheduling.randomization_factor == 0.2
    assert settings.scheduling.daily_target == 50
    assert settings.database.url == "sqlite://"


def test_bucket_intervals_from_env(monkeypatch):
    """Test that intervals can be overridden by environment variables."""
    monkeypatch.setenv("BUCKET_INTERVALS", "1, 2, 4")

    scheduling = SchedulingSettings()

    assert scheduling.bucket_intervals == [1, 2, 4]
    assert scheduling.max_bucket == 2


@pytest.mark.parametrize(
    "overrides",
    [
        {"bucket_intervals": []},
        {"bucket_intervals": [1, 3, 3]},
        {"bucket_intervals": [0, 3]},
        {"randomization_factor": 1.0},
        {"randomization_factor": -0.1},
        {"min_successes_for_promotion": 0},
        {"daily_target": 0},
    ],
)
def test_validate_rejects_bad_scheduling(overrides):
    test_settings = Settings(scheduling=SchedulingSettings(**overrides))

    with pytest.raises(ValueError):
        test_settings.validate()


def test_validate_accepts_defaults():
    Settings().validate()

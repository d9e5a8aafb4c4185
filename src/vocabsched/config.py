"""Configuration settings for the review scheduler."""
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)

# Scheduling defaults
BUCKET_INTERVALS = [1, 3, 7, 14, 30]  # days between reviews, one per bucket level
MIN_SUCCESSES_FOR_PROMOTION = 2
RANDOMIZATION_FACTOR = 0.2  # +/-20% jitter on every interval
DEFAULT_DAILY_TARGET = 50


def get_bucket_intervals() -> list[int]:
    """Get bucket intervals from environment variable."""
    raw = os.getenv("BUCKET_INTERVALS", "")
    if not raw:
        return list(BUCKET_INTERVALS)
    return [int(days) for days in raw.split(",") if days.strip()]


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///vocabsched.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class SchedulingSettings:
    """Spaced repetition and daily queue settings."""
    bucket_intervals: list[int] = field(default_factory=get_bucket_intervals)
    min_successes_for_promotion: int = int(
        os.getenv("MIN_SUCCESSES_FOR_PROMOTION", str(MIN_SUCCESSES_FOR_PROMOTION))
    )
    randomization_factor: float = float(
        os.getenv("RANDOMIZATION_FACTOR", str(RANDOMIZATION_FACTOR))
    )
    demotion_on_failure: bool = os.getenv("DEMOTION_ON_FAILURE", "true").lower() == "true"
    daily_target: int = int(os.getenv("DAILY_TARGET", str(DEFAULT_DAILY_TARGET)))
    overdue_threshold_days: float = float(os.getenv("OVERDUE_THRESHOLD_DAYS", "1"))

    @property
    def max_bucket(self) -> int:
        return len(self.bucket_intervals) - 1


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_scheduling_settings() -> SchedulingSettings:
    """Get scheduling settings."""
    return SchedulingSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    scheduling: SchedulingSettings = field(default_factory=get_scheduling_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        intervals = self.scheduling.bucket_intervals
        if not intervals:
            raise ValueError("BUCKET_INTERVALS must not be empty")

        if any(days <= 0 for days in intervals):
            raise ValueError("BUCKET_INTERVALS must be positive")

        if any(later <= earlier for earlier, later in zip(intervals, intervals[1:])):
            raise ValueError("BUCKET_INTERVALS must be strictly increasing")

        if self.scheduling.randomization_factor < 0 or self.scheduling.randomization_factor >= 1:
            raise ValueError("RANDOMIZATION_FACTOR must be in [0, 1)")

        if self.scheduling.min_successes_for_promotion < 1:
            raise ValueError("MIN_SUCCESSES_FOR_PROMOTION must be positive")

        if self.scheduling.daily_target < 1:
            raise ValueError("DAILY_TARGET must be positive")


# Create global settings instance
settings = Settings()
settings.validate()

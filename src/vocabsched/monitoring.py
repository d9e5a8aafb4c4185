"""Prometheus metrics for the review scheduler."""
from prometheus_client import Counter, Histogram, start_http_server

# Session metrics
sessions_started = Counter(
    "vocabsched_sessions_started_total",
    "Total number of review sessions started",
    ["learning_path"],
)

sessions_completed = Counter(
    "vocabsched_sessions_completed_total",
    "Total number of review sessions that emptied their queue",
    ["learning_path"],
)

session_duration = Histogram(
    "vocabsched_session_duration_seconds",
    "Duration of review sessions in seconds",
    buckets=[60, 300, 600, 1800, 3600],  # 1min, 5min, 10min, 30min, 1hour
)

# Review metrics
cards_answered = Counter(
    "vocabsched_cards_answered_total",
    "Total number of answered cards",
    ["learning_path", "result"],
)

records_created = Counter(
    "vocabsched_progress_records_created_total",
    "Total number of progress records created on first review",
    ["learning_path"],
)

unknown_cards = Counter(
    "vocabsched_unknown_cards_total",
    "Answers referencing words that are not part of any candidate pool",
)

# Store metrics
store_operations = Counter(
    "vocabsched_store_operations_total",
    "Total number of progress store operations",
    ["operation_type"],
)

persistence_errors = Counter(
    "vocabsched_persistence_errors_total",
    "Total number of failed progress store operations",
    ["operation_type"],
)

validation_errors = Counter(
    "vocabsched_validation_errors_total",
    "Total number of progress records rejected before persistence",
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)

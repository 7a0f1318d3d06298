"""Monitoring configuration for the trainer."""
from prometheus_client import Counter, Gauge, Histogram, start_http_server

# Answer metrics
answers_total = Counter(
    "lingodeck_answers_total",
    "Total number of answers submitted",
    ["tier", "outcome"],
)

promotions_total = Counter(
    "lingodeck_promotions_total",
    "Total number of tier promotions recommended",
    ["to_tier"],
)

# Session metrics
sessions_started = Counter(
    "lingodeck_sessions_started_total",
    "Total number of study sessions started",
    ["language_pair"],
)

sessions_completed = Counter(
    "lingodeck_sessions_completed_total",
    "Total number of study sessions completed",
    ["language_pair"],
)

sessions_paused = Counter(
    "lingodeck_sessions_paused_total",
    "Total number of study sessions paused",
)

session_accuracy = Histogram(
    "lingodeck_session_accuracy_percent",
    "Accuracy of completed sessions in percent",
    buckets=[20, 40, 60, 80, 85, 90, 100],
)

due_cards = Gauge(
    "lingodeck_due_cards",
    "Number of due review cards found by the last scheduling run",
    ["language_pair"],
)

goal_adjustments = Counter(
    "lingodeck_goal_adjustments_total",
    "Total number of adaptive daily goal adjustments",
    ["direction"],
)

# Catalog metrics
catalog_loads = Counter(
    "lingodeck_catalog_loads_total",
    "Total number of catalog loads by source",
    ["source"],
)

words_imported = Counter(
    "lingodeck_words_imported_total",
    "Total number of vocabulary words imported",
    ["language_pair"],
)

# Error metrics
storage_errors = Counter(
    "lingodeck_storage_errors_total",
    "Total number of failed store writes",
    ["key"],
)

validation_errors = Counter(
    "lingodeck_validation_errors_total",
    "Total number of rejected import documents",
    ["kind"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)

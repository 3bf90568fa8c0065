"""Prometheus metrics for sync throughput, classification outcomes, and reasoning latency"""

from prometheus_client import Counter, Histogram

# Sync metrics
synced_movements_counter = Counter(
    "budget_synced_movements_total",
    "Normalized movements written to the store",
)

account_fetch_failures_counter = Counter(
    "budget_account_fetch_failures_total",
    "Per-account movement fetches that failed during sync",
)

# Classification metrics
classification_counter = Counter(
    "budget_classification_total",
    "Classification outcomes",
    ["outcome"],  # confirmed | pending | failed | manual
)

# Reasoning service metrics
reasoning_latency_histogram = Histogram(
    "reasoning_latency_seconds",
    "Reasoning service response time",
    buckets=[0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

reasoning_failure_counter = Counter(
    "reasoning_failures_total",
    "Failed reasoning service calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_classification(review_state: str) -> None:
    """Count an automated classification by its resulting review state"""
    classification_counter.labels(outcome=review_state).inc()


def record_classification_failure() -> None:
    classification_counter.labels(outcome="failed").inc()


def record_manual_classification() -> None:
    classification_counter.labels(outcome="manual").inc()

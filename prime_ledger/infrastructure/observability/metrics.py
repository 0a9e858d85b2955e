"""Prometheus metrics for ledger commands, store health and HTTP latency"""

from decimal import Decimal
from prometheus_client import Counter, Histogram

# Ledger metrics
ledger_operation_counter = Counter(
    "ledger_operations_total",
    "Ledger commands executed",
    ["operation", "outcome"],  # success | rejected | persistence_error
)

ledger_amount_histogram = Histogram(
    "ledger_operation_amount",
    "Amounts moved by successful ledger commands",
    ["operation"],
    buckets=[10, 100, 500, 1_000, 5_000, 10_000, 50_000],
)

# Store metrics
store_failure_counter = Counter(
    "store_failures_total",
    "Failed calls to the persistence store",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_operation(operation: str, outcome: str, amount: Decimal | None = None) -> None:
    """Record command outcome, and the amount moved when it succeeded"""
    ledger_operation_counter.labels(operation=operation, outcome=outcome).inc()

    if outcome == "success" and amount is not None:
        ledger_amount_histogram.labels(operation=operation).observe(float(abs(amount)))

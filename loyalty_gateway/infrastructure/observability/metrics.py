"""Prometheus metrics for accrual reconciliation, the withdrawal ledger and HTTP traffic"""

from prometheus_client import Counter, Histogram, Gauge

# Accrual service metrics
accrual_request_counter = Counter(
    "accrual_requests_total",
    "Accrual service lookups by outcome",
    ["outcome"],  # registered | processing | invalid | processed | unknown | rate_limited | error
)

accrual_latency_histogram = Histogram(
    "accrual_latency_seconds",
    "Accrual service response time",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

accrual_cooldown_counter = Counter(
    "accrual_cooldowns_total",
    "Rate-limit cooldowns started",
)

# Pipeline metrics
order_update_counter = Counter(
    "order_updates_total",
    "Order status writes by resulting status",
    ["status"],
)

pipeline_error_counter = Counter(
    "pipeline_errors_total",
    "Operational errors reported by the accrual pipeline",
    ["source"],  # producer | consumer
)

pipeline_error_dropped_counter = Counter(
    "pipeline_errors_dropped_total",
    "Errors dropped because the error sink was full",
)

order_queue_gauge = Gauge(
    "order_queue_depth",
    "Orders waiting in the accrual work queue",
)

# Ledger metrics
withdrawal_counter = Counter(
    "withdrawals_total",
    "Withdrawal requests by outcome",
    ["outcome"],  # accepted | insufficient_funds
)

withdrawn_cents_counter = Counter(
    "withdrawn_cents_total",
    "Points withdrawn, in cents",
)

# Authentication metrics
auth_counter = Counter(
    "auth_attempts_total",
    "Registration and login attempts by outcome",
    ["action", "outcome"],  # register | login; success | conflict | rejected
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_withdrawal(accepted: bool, amount_cents: int) -> None:
    """Record withdrawal outcome and volume"""
    outcome = "accepted" if accepted else "insufficient_funds"
    withdrawal_counter.labels(outcome=outcome).inc()
    if accepted:
        withdrawn_cents_counter.inc(amount_cents)

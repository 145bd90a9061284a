"""Prometheus metrics for monitoring refund decisions, settlements, and gateway performance"""

from prometheus_client import Counter, Histogram

# Decision metrics
decision_counter = Counter(
    "delivery_shield_refund_decision_total",
    "Total refund decisions made",
    ["outcome"],  # approved | rejected
)

refund_percentage_bucket_counter = Counter(
    "delivery_shield_refund_percentage_bucket",
    "Approved refund percentages by bucket",
    ["bucket"],  # 0%, 1-30%, 31-50%, 51-99%, 100%
)

retrieval_fallback_counter = Counter(
    "delivery_shield_retrieval_fallback_total",
    "Policy searches that fell back to the full corpus",
)

reasoning_fallback_counter = Counter(
    "delivery_shield_reasoning_fallback_total",
    "Explanations replaced by the templated fallback",
)

# Settlement metrics
settlement_counter = Counter(
    "delivery_shield_settlement_total",
    "Refund settlements completed",
    ["method"],  # credit | cash | hybrid
)

settlement_failure_counter = Counter(
    "delivery_shield_settlement_failures_total",
    "Refund settlements aborted by a failed transfer",
    ["method"],
)

# Transfer gateway metrics
transfer_latency_histogram = Histogram(
    "transfer_latency_seconds",
    "Transfer gateway response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

transfer_failure_counter = Counter(
    "transfer_failures_total",
    "Failed stablecoin transfers",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_decision(should_refund: bool, refund_percentage: float) -> None:
    """Record decision metrics for monitoring approval rates and refund distribution"""
    outcome = "approved" if should_refund else "rejected"
    decision_counter.labels(outcome=outcome).inc()

    if refund_percentage <= 0:
        bucket = "0%"
    elif refund_percentage <= 30:
        bucket = "1-30%"
    elif refund_percentage <= 50:
        bucket = "31-50%"
    elif refund_percentage < 100:
        bucket = "51-99%"
    else:
        bucket = "100%"

    refund_percentage_bucket_counter.labels(bucket=bucket).inc()

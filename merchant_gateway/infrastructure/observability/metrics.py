"""Prometheus metrics for onboarding outcomes, policy rejections and ledger commit performance"""

from prometheus_client import Counter, Histogram

# Onboarding metrics
onboarding_counter = Counter(
    "merchant_onboarding_total",
    "Total merchant onboarding submissions by terminal outcome",
    ["outcome"],  # committed | policy_rejected | commit_failed | already_committed | cancelled
)

policy_rejection_counter = Counter(
    "merchant_policy_rejections_total",
    "Attestations rejected by the compliance gate",
    ["reason"],
)

credit_score_bucket_counter = Counter(
    "merchant_credit_score_bucket_total",
    "Credit scores issued by bucket",
    ["bucket"],  # 0-24, 25-49, 50-74, 75-100
)

# Ledger metrics
ledger_commit_latency_histogram = Histogram(
    "ledger_commit_latency_seconds",
    "Ledger commit attempt response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ledger_commit_failure_counter = Counter(
    "ledger_commit_failures_total",
    "Failed ledger commit attempts",
)

ledger_commit_retry_counter = Counter(
    "ledger_commit_retries_total",
    "Ledger commit attempts retried after a transient failure",
)

# Identity verifier metrics
verifier_failure_counter = Counter(
    "verifier_failures_total",
    "Failed identity verifier calls",
    ["kind"],  # unavailable | proof_invalid
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_onboarding(outcome: str, credit_score: int | None = None) -> None:
    """Record onboarding outcome and, when scored, the credit score distribution"""
    onboarding_counter.labels(outcome=outcome).inc()

    if credit_score is None:
        return

    if credit_score < 25:
        bucket = "0-24"
    elif credit_score < 50:
        bucket = "25-49"
    elif credit_score < 75:
        bucket = "50-74"
    else:
        bucket = "75-100"

    credit_score_bucket_counter.labels(bucket=bucket).inc()

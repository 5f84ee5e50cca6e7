"""Prometheus metrics for enrollment progress, wallet debits and collaborator health"""

from prometheus_client import Counter, Histogram

# Enrollment metrics
subscriptions_created_counter = Counter(
    "benefits_subscriptions_created_total",
    "Healthcare subscriptions created",
    ["type"],  # individual | family
)

step_outcome_counter = Counter(
    "benefits_step_outcomes_total",
    "Onboarding step events by outcome",
    ["step", "outcome"],  # outcome: completed | already_completed | invalid_transition
)

terminations_counter = Counter(
    "benefits_subscriptions_terminated_total",
    "Subscriptions terminated",
)

# Wallet metrics
wallet_debit_counter = Counter(
    "benefits_wallet_debits_total",
    "Subscription debits applied to wallets",
    ["sufficiency"],  # sufficient | overdue
)

wallet_debited_cents_counter = Counter(
    "benefits_wallet_debited_cents_total",
    "Cents debited from wallets for subscriptions",
)

wallet_cas_conflicts_counter = Counter(
    "benefits_wallet_cas_conflicts_total",
    "Wallet balance updates retried after a concurrent write",
)

billing_cycle_histogram = Histogram(
    "benefits_billing_cycle_seconds",
    "Billing cycle run duration",
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0],
)

# Collaborator metrics
collaborator_latency_histogram = Histogram(
    "benefits_collaborator_latency_seconds",
    "Document intake and identity verification response time",
    ["collaborator"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

collaborator_failures_counter = Counter(
    "benefits_collaborator_failures_total",
    "Failed calls to external collaborators",
    ["collaborator"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_debit(amount_cents: int, sufficient: bool) -> None:
    """Record a subscription debit and whether the wallet covered it"""
    wallet_debit_counter.labels(sufficiency="sufficient" if sufficient else "overdue").inc()
    if amount_cents > 0:
        wallet_debited_cents_counter.inc(amount_cents)


def record_step_outcome(step: str, outcome: str) -> None:
    step_outcome_counter.labels(step=step, outcome=outcome).inc()

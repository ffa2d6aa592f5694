"""
Prometheus-based metrics for production monitoring.
Exposed by the /metrics route (app.api.routes.metrics).
"""
from prometheus_client import Counter, Gauge


# Counters
access_decisions_total = Counter(
    "access_decisions_total",
    "Access gate decisions",
    ["reason"],
)

unlock_grants_total = Counter(
    "unlock_grants_total",
    "Unlock grants written to the ledger",
)

tier_changes_total = Counter(
    "tier_changes_total",
    "Tier change requests by outcome",
    ["outcome"],  # applied, noop, rejected
)

magic_links_issued_total = Counter(
    "magic_links_issued_total",
    "Magic-link tokens issued",
)

magic_link_verifications_total = Counter(
    "magic_link_verifications_total",
    "Magic-link verification attempts",
    ["status"],  # ok, invalid_or_expired
)

event_dispatch_failures_total = Counter(
    "event_dispatch_failures_total",
    "Domain events the dispatcher failed to accept",
    ["event_type"],
)

crm_requests_total = Counter(
    "crm_requests_total",
    "Total HubSpot API requests",
    ["operation", "status"],
)

circuit_breaker_state = Gauge(
    "circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open)",
    ["name"],
)

mail_requests_total = Counter(
    "mail_requests_total",
    "Total transactional mail API requests",
    ["status"],
)

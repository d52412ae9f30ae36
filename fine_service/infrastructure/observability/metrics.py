"""Prometheus metrics for monitoring fine operations and rule application"""

from prometheus_client import Counter, Histogram

from fine_service.domain.flags import FLAG_NAMES
from fine_service.domain.models import BusinessFlags

# Business rule metrics
rules_applied_counter = Counter(
    "fine_rules_applied_total",
    "Business rules newly applied to fines",
    ["rule"],  # overdue_penalty | frequent_offender_surcharge | early_payment_discount
)

fine_operations_counter = Counter(
    "fine_operations_total",
    "Fine API operations",
    ["operation", "outcome"],  # outcome: success | invalid | not_found | error
)

# Offender lookup metrics
lookup_failures_counter = Counter(
    "lookup_failures_total",
    "Failed unpaid-fine count lookups",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def newly_applied_rules(before: BusinessFlags, after: BusinessFlags) -> list[str]:
    """Rule names whose flag went from False to True"""
    return [
        name.removesuffix("_applied")
        for name in FLAG_NAMES
        if getattr(after, name) and not getattr(before, name)
    ]


def record_rules_applied(rules: list[str]) -> None:
    """Count each rule that fired during an evaluation"""
    for rule in rules:
        rules_applied_counter.labels(rule=rule).inc()


def record_operation(operation: str, outcome: str) -> None:
    fine_operations_counter.labels(operation=operation, outcome=outcome).inc()

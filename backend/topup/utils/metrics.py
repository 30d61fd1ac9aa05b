"""
Prometheus metrics for observability
"""

import re
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client.core import CollectorRegistry

# Create a custom registry to avoid conflicts
metrics_registry = CollectorRegistry()

# HTTP request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["path", "method", "status"],
    registry=metrics_registry,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["path", "method"],
    registry=metrics_registry,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Webhook metrics
webhook_received_total = Counter(
    "webhook_received_total",
    "Total payment gateway webhook requests received",
    ["source"],
    registry=metrics_registry,
)

webhook_rejected_total = Counter(
    "webhook_rejected_total",
    "Total payment gateway webhook requests rejected",
    ["source", "reason"],  # missing_token, unknown_transaction, signature_invalid, ...
    registry=metrics_registry,
)

webhook_replayed_total = Counter(
    "webhook_replayed_total",
    "Webhook deliveries for transactions already in a terminal state",
    ["source"],
    registry=metrics_registry,
)

# Rate limiting metrics
rate_limited_total = Counter(
    "rate_limited_total",
    "Total requests rate limited",
    ["group"],  # webhook, admin, api
    registry=metrics_registry,
)

# Transaction state machine metrics
transaction_transitions_total = Counter(
    "transaction_transitions_total",
    "Transaction state transitions",
    ["from_status", "to_status"],
    registry=metrics_registry,
)

topup_transfers_total = Counter(
    "topup_transfers_total",
    "Topup provider transfer calls by outcome",
    ["provider", "outcome"],  # completed, failed, pending, error
    registry=metrics_registry,
)

provider_balance_shortfall_total = Counter(
    "provider_balance_shortfall_total",
    "Purchases rejected because the topup provider account balance was too low",
    ["provider"],
    registry=metrics_registry,
)

# Wallet metrics
wallet_operations_total = Counter(
    "wallet_operations_total",
    "Wallet ledger operations",
    ["operation", "result"],  # reserve/release/deduct/deposit, ok/insufficient
    registry=metrics_registry,
)


def record_http_request(
    path: str,
    method: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """
    Record HTTP request metrics.

    Args:
        path: Request path (normalized)
        method: HTTP method
        status_code: Response status code
        duration_seconds: Request duration in seconds
    """
    normalized_path = _normalize_path(path)

    http_requests_total.labels(
        path=normalized_path,
        method=method.upper(),
        status=str(status_code),
    ).inc()

    http_request_duration_seconds.labels(
        path=normalized_path,
        method=method.upper(),
    ).observe(duration_seconds)


def record_webhook_received(source: str) -> None:
    webhook_received_total.labels(source=source).inc()


def record_webhook_rejected(source: str, reason: str) -> None:
    """
    Record webhook rejection.

    Args:
        source: Gateway name (pgpay)
        reason: Rejection reason (missing_token, unknown_transaction, signature_invalid, ...)
    """
    webhook_rejected_total.labels(source=source, reason=reason).inc()


def record_webhook_replayed(source: str) -> None:
    webhook_replayed_total.labels(source=source).inc()


def record_rate_limit_exceeded(group: str) -> None:
    rate_limited_total.labels(group=group).inc()


def record_transaction_transition(from_status: str, to_status: str) -> None:
    transaction_transitions_total.labels(from_status=from_status, to_status=to_status).inc()


def record_topup_transfer(provider: str, outcome: str) -> None:
    topup_transfers_total.labels(provider=provider, outcome=outcome).inc()


def record_provider_balance_shortfall(provider: str) -> None:
    provider_balance_shortfall_total.labels(provider=provider).inc()


def record_wallet_operation(operation: str, result: str) -> None:
    wallet_operations_total.labels(operation=operation, result=result).inc()


def _normalize_path(path: str) -> str:
    """
    Normalize path for metrics (replace UUIDs, order ids and numeric ids with placeholders).

    Examples:
        /api/v1/transactions/ORD-1700000000000-ABCDEFGHI -> /api/v1/transactions/{id}
        /admin/v1/members/123e4567-... /balance -> /admin/v1/members/{id}/balance
    """
    path = re.sub(
        r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}',
        '{id}',
        path,
        flags=re.IGNORECASE,
    )
    path = re.sub(r'(ORD|TEST)-[0-9A-Z-]+', '{id}', path)
    path = re.sub(r'/\d+', '/{id}', path)
    return path


def get_metrics_output() -> bytes:
    """Get Prometheus metrics output"""
    return generate_latest(metrics_registry)

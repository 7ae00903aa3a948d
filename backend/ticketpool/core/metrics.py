"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.

Availability is not exported as an in-process gauge; the pool size lives
in the database and is read with a live count.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Purchase metrics
purchase_attempts = Counter(
    "purchase_attempts_total",
    "Total purchase attempts against the ticket pool",
    ["outcome"],  # allocated, sold_out, failed
)

purchase_latency = Histogram(
    "purchase_latency_seconds",
    "Latency of a single allocation transaction",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0],
)

purchase_retries = Counter(
    "purchase_retry_attempts_total",
    "Purchase retries after a transient allocation failure",
)

# Ingestion metrics
ingestion_batches = Counter(
    "ingestion_batches_total",
    "Ticket batches submitted for ingestion",
    ["result"],  # committed, rejected, failed
)

ingested_tickets = Counter(
    "ingested_tickets_total",
    "Tickets committed to the pool",
)

# System log sink
system_log_failures = Counter(
    "system_log_failures_total",
    "System log records that could not be persisted",
)

# Cache metrics
cache_operations = Counter(
    "cache_operations_total",
    "Cache operations",
    ["operation", "result"],  # get/set/invalidate, hit/miss/error
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


def record_purchase(outcome: str):
    """Record purchase outcome. Outcome: allocated, sold_out, failed"""
    purchase_attempts.labels(outcome=outcome).inc()


def record_ingestion(result: str, count: int = 0):
    """Record an ingestion batch. Result: committed, rejected, failed"""
    ingestion_batches.labels(result=result).inc()
    if result == "committed" and count:
        ingested_tickets.inc(count)


def record_cache_operation(operation: str, result: str):
    """Record cache operation."""
    cache_operations.labels(operation=operation, result=result).inc()

"""
Prometheus metrics for the form collector.

This module provides:
- HTTP request counter (method, path, status)
- Request latency histogram (method, path)
- Form submission outcome counter (result)
- Notification outcome counter (kind, result)

Metrics are stored in-memory using prometheus-client.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


# =============================================================================
# Metric Definitions
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

# result: created, validation_error, error
form_submissions_total = Counter(
    "form_submissions_total",
    "Total form submission outcomes",
    labelnames=["result"]
)

# kind: submission, acknowledgement; result: delivered, failed
notifications_total = Counter(
    "notifications_total",
    "Total notification delivery outcomes",
    labelnames=["kind", "result"]
)

request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Request path
        status: HTTP status code
        latency_seconds: Request processing time in seconds
    """
    # Normalize path to avoid high-cardinality labels
    normalized_path = path.split("?")[0]

    http_requests_total.labels(
        method=method,
        path=normalized_path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=normalized_path
    ).observe(latency_seconds)


def record_submission_outcome(result: str) -> None:
    """Record a form submission outcome (created, validation_error, error)."""
    form_submissions_total.labels(result=result).inc()


def record_notification_outcome(kind: str, delivered: bool) -> None:
    """Record whether a submission/acknowledgement notification was delivered."""
    notifications_total.labels(
        kind=kind,
        result="delivered" if delivered else "failed"
    ).inc()


def get_metrics() -> bytes:
    """Generate Prometheus exposition format metrics."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST

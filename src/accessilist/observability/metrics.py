"""Prometheus metrics for the AccessiList API.

Each application instance owns a ``MetricsExporter`` with its own
``CollectorRegistry``; the ``/health/metrics`` endpoint exports it.
"""

from threading import Lock

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class MetricsExporter:
    """Prometheus-compatible metrics exporter.

    Provides:
    - Counters: http requests, session operations, rate limit and CSRF rejections
    - Gauges: requests in flight
    - Histograms: request latency
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()
        self._lock = Lock()

        self.http_requests_total = Counter(
            "accessilist_http_requests_total",
            "Total HTTP requests by method, endpoint and status",
            ["method", "endpoint", "status"],
            registry=self.registry,
        )

        self.http_request_latency_seconds = Histogram(
            "accessilist_http_request_latency_seconds",
            "HTTP request latency in seconds",
            ["endpoint"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
            registry=self.registry,
        )

        self.http_requests_in_flight = Gauge(
            "accessilist_http_requests_in_flight",
            "HTTP requests currently being handled",
            registry=self.registry,
        )

        self.session_operations_total = Counter(
            "accessilist_session_operations_total",
            "Session store operations by operation and outcome",
            ["operation", "outcome"],
            registry=self.registry,
        )

        self.rate_limited_total = Counter(
            "accessilist_rate_limited_total",
            "Requests rejected by the rate limiter",
            ["endpoint"],
            registry=self.registry,
        )

        self.csrf_rejections_total = Counter(
            "accessilist_csrf_rejections_total",
            "Requests rejected by CSRF validation",
            ["reason"],
            registry=self.registry,
        )

    def increment_http_requests(
        self, method: str, endpoint: str, status: str, count: int = 1
    ) -> None:
        with self._lock:
            self.http_requests_total.labels(
                method=method, endpoint=endpoint, status=status
            ).inc(count)

    def observe_http_request_latency(self, latency_seconds: float, endpoint: str) -> None:
        with self._lock:
            self.http_request_latency_seconds.labels(endpoint=endpoint).observe(
                latency_seconds
            )

    def increment_http_requests_in_flight(self) -> None:
        with self._lock:
            self.http_requests_in_flight.inc()

    def decrement_http_requests_in_flight(self) -> None:
        with self._lock:
            self.http_requests_in_flight.dec()

    def increment_session_operation(self, operation: str, outcome: str) -> None:
        """Count a store operation.

        Args:
            operation: create, save, restore, delete, list, generate-key
            outcome: ok, exists, not_found, error
        """
        with self._lock:
            self.session_operations_total.labels(operation=operation, outcome=outcome).inc()

    def increment_rate_limited(self, endpoint: str) -> None:
        with self._lock:
            self.rate_limited_total.labels(endpoint=endpoint).inc()

    def increment_csrf_rejection(self, reason: str) -> None:
        with self._lock:
            self.csrf_rejections_total.labels(reason=reason).inc()

    def export_metrics(self) -> bytes:
        """Export metrics in Prometheus text format."""
        return generate_latest(self.registry)

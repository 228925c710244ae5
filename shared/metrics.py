"""
Shared metrics configuration for the RBAC Access Layer.
"""

from typing import Dict, Any, Optional

from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry


class MetricsCollector:
    """Centralized metrics collector for services."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        # Each collector owns its registry
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        # Health check metrics
        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        if self.service_name == "authorization":
            self._setup_authorization_metrics()

    def _setup_authorization_metrics(self):
        """Set up authorization-specific metrics."""
        self._metrics["authorization_decisions_total"] = Counter(
            "authorization_decisions_total",
            "Total authorization decisions",
            ["decision", "reason"],
            registry=self.registry
        )

        self._metrics["authorization_decision_duration_seconds"] = Histogram(
            "authorization_decision_duration_seconds",
            "Authorization decision duration in seconds",
            registry=self.registry
        )

        self._metrics["cache_hits_total"] = Counter(
            "decision_cache_hits_total",
            "Total decision cache hits",
            ["cache_type"],
            registry=self.registry
        )

        self._metrics["cache_misses_total"] = Counter(
            "decision_cache_misses_total",
            "Total decision cache misses",
            ["cache_type"],
            registry=self.registry
        )

        self._metrics["cache_evictions_total"] = Counter(
            "decision_cache_evictions_total",
            "Total entries evicted for capacity",
            ["cache_type"],
            registry=self.registry
        )

        self._metrics["cache_expirations_total"] = Counter(
            "decision_cache_expirations_total",
            "Total entries removed because their TTL elapsed",
            ["cache_type"],
            registry=self.registry
        )

        self._metrics["cache_size"] = Gauge(
            "decision_cache_size",
            "Number of entries currently held",
            ["cache_type"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def record_decision(self, allowed: bool, reason: str, duration: float):
        """Record an authorization decision."""
        if "authorization_decisions_total" not in self._metrics:
            return
        decision = "allow" if allowed else "deny"
        self._metrics["authorization_decisions_total"].labels(decision=decision, reason=reason).inc()
        self._metrics["authorization_decision_duration_seconds"].observe(duration)

    def increment_counter(self, metric_name: str, amount: float = 1, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).inc(amount)

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric value."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).set(value)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)

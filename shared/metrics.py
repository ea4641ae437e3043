"""
Shared metrics configuration for the OTA Access Layer.
"""

from typing import Dict, Any, Optional
import time

from prometheus_client import Counter, Histogram, Info, CollectorRegistry


class MetricsCollector:
    """Centralized metrics collector for services."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

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

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        # Service-specific metrics
        if self.service_name == "gateway":
            self._setup_gateway_metrics()
        elif self.service_name == "entitlements":
            self._setup_entitlements_metrics()
        elif self.service_name == "metrics":
            self._setup_metrics_service_metrics()

    def _setup_gateway_metrics(self):
        """Set up gateway-specific metrics."""
        self._metrics["download_decisions_total"] = Counter(
            "download_decisions_total",
            "Download link decisions by last stage reached",
            ["stage", "reason"],
            registry=self.registry
        )

        self._metrics["download_decision_duration_seconds"] = Histogram(
            "download_decision_duration_seconds",
            "Download link decision duration in seconds",
            registry=self.registry
        )

    def _setup_entitlements_metrics(self):
        """Set up entitlements-specific metrics."""
        self._metrics["rights_checks_total"] = Counter(
            "rights_checks_total",
            "Total right checks",
            ["scope", "decision"],
            registry=self.registry
        )

        self._metrics["segment_computations_total"] = Counter(
            "segment_computations_total",
            "Segment computations by lifecycle state",
            ["state"],
            registry=self.registry
        )

        self._metrics["segment_syncs_total"] = Counter(
            "segment_syncs_total",
            "Segment reconciliations by outcome",
            ["outcome"],
            registry=self.registry
        )

    def _setup_metrics_service_metrics(self):
        """Set up metrics service-specific metrics."""
        self._metrics["usage_writes_total"] = Counter(
            "usage_writes_total",
            "Usage event writes by kind and outcome",
            ["kind", "outcome"],
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

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).inc()

def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)

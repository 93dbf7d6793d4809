"""Prometheus metrics collection for the aggregation services."""

import logging
from typing import Optional

from prometheus_client import (
    Counter, Histogram, Gauge, Info,
    CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
)

logger = logging.getLogger(__name__)


CYCLE_BUCKETS = [0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]


class MetricsCollector:
    """Centralized metrics collection for an aggregation service.

    Each collector owns its registry so that several instances (tests,
    embedded aggregators) never collide on metric names.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name.replace("-", "_")
        self.registry = registry or CollectorRegistry()
        self._init_metrics()

    def _init_metrics(self):
        prefix = self.service_name

        self.info = Info(
            f"{prefix}_info",
            f"Information about {prefix}",
            registry=self.registry
        )

        # Cycle metrics
        self.cycles_total = Counter(
            f"{prefix}_cycles_total",
            "Aggregation cycles run, by outcome",
            ["status"],
            registry=self.registry
        )

        self.cycle_duration = Histogram(
            f"{prefix}_cycle_duration_seconds",
            "Duration of one load/normalize/adjust/persist cycle",
            buckets=CYCLE_BUCKETS,
            registry=self.registry
        )

        self.events_processed = Counter(
            f"{prefix}_events_processed_total",
            "Payment events drained into a cycle, by outcome",
            ["status"],
            registry=self.registry
        )

        self.rate_status_total = Counter(
            f"{prefix}_rate_status_total",
            "Normalized payments by rate status",
            ["rate_status"],
            registry=self.registry
        )

        # Error metrics
        self.errors_total = Counter(
            f"{prefix}_errors_total",
            "Errors by type and pipeline stage",
            ["error_type", "component"],
            registry=self.registry
        )

        # Cache and queue metrics
        self.cached_buckets = Gauge(
            f"{prefix}_cached_buckets",
            "Aggregate buckets currently held in memory",
            registry=self.registry
        )

        self.pending_events = Gauge(
            f"{prefix}_pending_events",
            "Payment events waiting for the next cycle",
            registry=self.registry
        )

        self.evicted_buckets = Counter(
            f"{prefix}_evicted_buckets_total",
            "Aggregate buckets evicted from memory by the reaper",
            registry=self.registry
        )

        # Health metrics
        self.health_status = Gauge(
            f"{prefix}_health_status",
            f"Health status of {prefix} (1=healthy, 0=unhealthy)",
            registry=self.registry
        )

    def record_cycle(self, status: str, duration: float, event_count: int):
        """Record the outcome of one aggregation cycle."""
        self.cycles_total.labels(status=status).inc()
        self.cycle_duration.observe(duration)
        self.events_processed.labels(status=status).inc(event_count)

    def record_rate_status(self, rate_status: str):
        self.rate_status_total.labels(rate_status=rate_status).inc()

    def record_error(self, error_type: str, component: str):
        """Record an error metric."""
        self.errors_total.labels(error_type=error_type, component=component).inc()

    def set_cache_size(self, size: int):
        self.cached_buckets.set(size)

    def set_pending_events(self, count: int):
        self.pending_events.set(count)

    def record_evictions(self, count: int):
        if count:
            self.evicted_buckets.inc(count)

    def set_health_status(self, healthy: bool):
        """Set the health status metric."""
        self.health_status.set(1 if healthy else 0)

    def update_service_info(self, version: str, environment: str, **kwargs):
        """Update service information."""
        self.info.info({"version": version, "environment": environment, **kwargs})

    def get_sample(self, name: str, labels: Optional[dict] = None) -> Optional[float]:
        """Read a single sample value from this collector's registry."""
        return self.registry.get_sample_value(name, labels or {})

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self.registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics."""
        return CONTENT_TYPE_LATEST

"""Prometheus metrics for the mock SQL engine."""

from __future__ import annotations

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    Info,
)


class MetricsRegistry:
    """Registry of all mock SQL engine metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Statement metrics
        self.statements_total = Counter(
            "mock_sql_statements_total",
            "Total number of statements executed",
            ["statement_type", "status"],  # status: success, error
            registry=self._registry,
        )

        self.batch_latency_seconds = Histogram(
            "mock_sql_batch_latency_seconds",
            "Latency of execute() calls in seconds",
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
            registry=self._registry,
        )

        self.errors_total = Counter(
            "mock_sql_errors_total",
            "Total number of failed batches",
            ["error_type"],
            registry=self._registry,
        )

        self.rows_returned_total = Counter(
            "mock_sql_rows_returned_total",
            "Total rows returned by SELECT statements",
            registry=self._registry,
        )

        # Catalog metrics
        self.resets_total = Counter(
            "mock_sql_resets_total",
            "Total number of catalog resets",
            registry=self._registry,
        )

        # Server info
        self.info = Info(
            "mock_sql",
            "Mock SQL engine information",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up the global metrics registry.

    Without a custom registry, repeated calls return the existing metrics
    (prometheus_client refuses to register a metric name twice).

    The REST adapter exposes the registry at ``GET /metrics``; no separate
    HTTP server is started.

    Args:
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    if _metrics is None or registry is not None:
        _metrics = MetricsRegistry(registry)

    from mock_sql import __version__

    _metrics.info.info({"version": __version__})
    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics

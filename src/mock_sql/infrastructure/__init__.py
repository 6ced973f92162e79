"""Infrastructure layer - cross-cutting concerns."""

from mock_sql.infrastructure.config import Config, get_config
from mock_sql.infrastructure.logging import get_logger, setup_logging
from mock_sql.infrastructure.metrics import MetricsRegistry, get_metrics, setup_metrics
from mock_sql.infrastructure.tracing import get_tracer, mark_failed, setup_tracing, trace_span

__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "get_logger",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
    "mark_failed",
]

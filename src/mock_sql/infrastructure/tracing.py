"""OpenTelemetry tracing for batches and statements.

Spans are always opened through :func:`trace_span`. Until
:func:`setup_tracing` installs an SDK provider they go to OpenTelemetry's
no-op tracer, so the engine pays almost nothing when tracing is off.

Span layout per ``execute`` call::

    mock_sql.execute            db.name, mock_sql.statements
      mock_sql.statement        mock_sql.statement_type, mock_sql.statement_index
      mock_sql.statement        ...
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Status, StatusCode

TRACER_NAME = "mock_sql"

_tracer: trace.Tracer | None = None


def setup_tracing(
    service_name: str = "mock_sql",
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Install a tracer provider for the engine.

    Args:
        service_name: ``service.name`` resource attribute
        otlp_endpoint: OTLP gRPC collector, e.g. "http://localhost:4317";
            spans are only exported when this or ``console_export`` is set
        console_export: Also print finished spans to stdout

    Returns:
        The engine's tracer
    """
    global _tracer

    from mock_sql import __version__

    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": service_name,
                "service.version": __version__,
                "db.system": "mock_sql",
            }
        )
    )
    if otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer = provider.get_tracer(TRACER_NAME, __version__)
    return _tracer


def get_tracer() -> trace.Tracer:
    """Get the engine's tracer; the global provider's tracer before setup."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(TRACER_NAME)
    return _tracer


@contextmanager
def trace_span(
    name: str,
    attributes: dict[str, Any] | None = None,
    tracer: trace.Tracer | None = None,
) -> Generator[trace.Span, None, None]:
    """
    Open a span as the current span.

    Attributes whose value is None are left off the span.

    Args:
        name: Span name
        attributes: Initial span attributes
        tracer: Tracer to use instead of the engine's

    Yields:
        The open span
    """
    tracer = tracer or get_tracer()
    with tracer.start_as_current_span(name) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        yield span


def mark_failed(span: trace.Span, error_type: str, message: str) -> None:
    """Record a SQL error on a span.

    SQL errors are results rather than exceptions, so the span would
    otherwise end with an unset status.
    """
    span.set_attribute("mock_sql.error_type", error_type)
    span.set_status(Status(StatusCode.ERROR, message))

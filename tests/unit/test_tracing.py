"""Unit tests for tracing helpers."""

from __future__ import annotations

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from mock_sql.infrastructure.tracing import mark_failed, trace_span


@pytest.mark.unit
class TestTraceSpan:
    """Tests for trace_span and mark_failed."""

    @pytest.fixture
    def exporter(self) -> InMemorySpanExporter:
        return InMemorySpanExporter()

    @pytest.fixture
    def provider(self, exporter: InMemorySpanExporter) -> TracerProvider:
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        return provider

    def test_attributes_skip_none(self, provider: TracerProvider, exporter: InMemorySpanExporter) -> None:
        """Test that None-valued attributes are not recorded."""
        tracer = provider.get_tracer("tests")

        with trace_span("mock_sql.statement", {"mock_sql.statement_index": 0, "db.name": None}, tracer=tracer):
            pass

        (span,) = exporter.get_finished_spans()
        assert span.name == "mock_sql.statement"
        assert dict(span.attributes) == {"mock_sql.statement_index": 0}

    def test_mark_failed(self, provider: TracerProvider, exporter: InMemorySpanExporter) -> None:
        """Test that a SQL error sets the error status and type."""
        tracer = provider.get_tracer("tests")

        with trace_span("mock_sql.execute", tracer=tracer) as span:
            mark_failed(span, "UnknownTable", "Invalid object name 'NOPE'.")

        (finished,) = exporter.get_finished_spans()
        assert finished.status.status_code is StatusCode.ERROR
        assert finished.status.description == "Invalid object name 'NOPE'."
        assert finished.attributes["mock_sql.error_type"] == "UnknownTable"

    def test_without_setup_is_noop(self) -> None:
        """Test that spans can be opened before tracing is configured."""
        with trace_span("mock_sql.reset", {"db.name": "UniversityDB"}) as span:
            mark_failed(span, "SemanticError", "ignored")

"""Mock SQL Engine - the session façade the learning UI calls.

This module provides :class:`MockSqlEngine`, which owns the catalog store
and the single session (current database pointer), and the module-level
functions ``execute_mock_sql``, ``get_db_schema`` and ``reset_db`` that
operate on a lazily created process-wide engine.

Usage:
    from mock_sql.application import MockSqlEngine

    engine = MockSqlEngine()
    result = engine.execute("SELECT NAME, GPA FROM STUDENTS WHERE GPA > 3.5")
    result = engine.execute("USE ShopDB; SELECT * FROM PRODUCTS")
    snapshot = engine.schema()
    engine.reset()

A batch is parsed completely before anything runs, so a syntax error
anywhere leaves the catalog untouched. Statements then run in order and
execution stops at the first failure; earlier statements keep their
effects. Every :class:`MockSqlError` is converted into result data here and
nowhere else.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog
from opentelemetry import trace

from mock_sql.adapters.inbound.sql_parser import SQLParser
from mock_sql.adapters.outbound import BuiltinSeedProvider
from mock_sql.application.executor import ExecutionResult, QueryExecutor, Session
from mock_sql.application.schema_introspector import SchemaIntrospector, SchemaSnapshot
from mock_sql.domain.errors import MockSqlError
from mock_sql.domain.services import CatalogStore
from mock_sql.infrastructure.logging import get_logger
from mock_sql.infrastructure.metrics import MetricsRegistry
from mock_sql.infrastructure.tracing import mark_failed, trace_span
from mock_sql.ports.outbound import SeedProvider

logger = get_logger(__name__)

EMPTY_BATCH_MESSAGE = "Commands completed successfully."


class MockSqlEngine:
    """Single-session mock SQL engine.

    Thread Safety:
        ``execute``, ``reset`` and ``schema`` are serialized by one lock,
        so the engine can be shared by the REST adapter's worker threads.
        No call ever observes a partially applied statement.

    Args:
        seed_provider: Source of the seeded databases.
        metrics: Metrics to record into; None disables metrics.
        clock: Supplies ``GETDATE()`` and timestamp defaults.
    """

    def __init__(
        self,
        seed_provider: SeedProvider | None = None,
        metrics: MetricsRegistry | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._catalog = CatalogStore(seed_provider or BuiltinSeedProvider(), clock=clock)
        self._parser = SQLParser()
        self._executor = QueryExecutor(self._catalog, clock=clock)
        self._introspector = SchemaIntrospector(self._catalog)
        self._session = Session(database=self._catalog.default_database)
        self._metrics = metrics
        self._lock = threading.Lock()

    @property
    def current_database(self) -> str:
        return self._session.database

    @property
    def catalog(self) -> CatalogStore:
        return self._catalog

    def execute(self, sql: str) -> ExecutionResult:
        """Parse and run a batch of statements.

        Args:
            sql: One or more statements separated by ``;``.

        Returns:
            The last statement's result; the error of the first failing
            statement; or a success status for an empty batch.
        """
        with self._lock:
            started = time.perf_counter()
            with structlog.contextvars.bound_contextvars(database=self._session.database):
                with trace_span("mock_sql.execute", {"db.name": self._session.database}) as span:
                    result = self._execute_batch(sql, span)
                    if result.error is not None:
                        mark_failed(span, result.error_type or "", result.error)
            if self._metrics is not None:
                self._metrics.batch_latency_seconds.observe(time.perf_counter() - started)
            return result

    def _execute_batch(self, sql: str, span: trace.Span) -> ExecutionResult:
        try:
            plans = self._parser.parse(sql)
        except MockSqlError as e:
            return self._failure(e, sql)

        span.set_attribute("mock_sql.statements", len(plans))
        with structlog.contextvars.bound_contextvars(statements=len(plans)):
            logger.debug("batch parsed", sql=sql)
            result = ExecutionResult.status(EMPTY_BATCH_MESSAGE)
            for index, plan in enumerate(plans):
                statement_type = plan.statement_type.value
                with trace_span(
                    "mock_sql.statement",
                    {"mock_sql.statement_type": statement_type, "mock_sql.statement_index": index},
                ) as statement_span:
                    try:
                        result = self._executor.execute(plan, self._session)
                    except MockSqlError as e:
                        mark_failed(statement_span, e.error_type, e.message)
                        self._count_statement(statement_type, "error")
                        return self._failure(e, sql, statement=index)
                self._count_statement(statement_type, "success")
                if result.rows is not None and self._metrics is not None:
                    self._metrics.rows_returned_total.inc(len(result.rows))
            return result

    def _count_statement(self, statement_type: str, status: str) -> None:
        if self._metrics is not None:
            self._metrics.statements_total.labels(statement_type=statement_type, status=status).inc()

    def _failure(self, error: MockSqlError, sql: str, statement: int | None = None) -> ExecutionResult:
        logger.info(
            "batch failed",
            sql=sql,
            statement=statement,
            error_type=error.error_type,
            error=error.message,
        )
        if self._metrics is not None:
            self._metrics.errors_total.labels(error_type=error.error_type).inc()
        return ExecutionResult.failure(error.message, error.error_type)

    def reset(self) -> ExecutionResult:
        """Restore every database to its seed data and select the default database."""
        with self._lock:
            with trace_span("mock_sql.reset"):
                self._catalog.reset_to_seed()
                self._session.database = self._catalog.default_database
            if self._metrics is not None:
                self._metrics.resets_total.inc()
            logger.info("catalog reset", database=self._session.database)
            return ExecutionResult.status(
                f"All databases restored to their initial data. "
                f"Changed database context to '{self._session.database}'."
            )

    def schema(self) -> SchemaSnapshot:
        """Describe the current database as it is right now."""
        with self._lock:
            return self._introspector.snapshot(self._session.database)


def get_engine() -> MockSqlEngine:
    """Get the process-wide engine, building it on first use."""
    from mock_sql.infrastructure.container import get_container

    return get_container().resolve(MockSqlEngine)


def execute_mock_sql(sql: str) -> dict[str, Any]:
    """Run a batch on the process-wide engine and return the JSON-ready result."""
    return get_engine().execute(sql).to_dict()


def get_db_schema() -> dict[str, Any]:
    """Describe the process-wide engine's current database."""
    return get_engine().schema().to_dict()


def reset_db() -> dict[str, Any]:
    """Reset the process-wide engine to its seed data."""
    return get_engine().reset().to_dict()

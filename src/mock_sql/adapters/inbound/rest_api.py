"""REST API adapter for the mock SQL engine.

This module provides a FastAPI-based REST API through which the learning
UI executes SQL, browses the schema and resets the sandbox.

Endpoints:
    POST /execute - Execute a batch of SQL statements
    GET /schema - Describe the current database
    POST /reset - Restore the seed data
    GET /health - Health check
    GET /metrics - Prometheus metrics

Usage:
    from mock_sql.adapters.inbound.rest_api import create_app
    from mock_sql.application import MockSqlEngine

    app = create_app(MockSqlEngine())
    # Run with uvicorn: uvicorn app:app --host 0.0.0.0 --port 8000

SQL errors are not HTTP errors: ``/execute`` answers 200 with ``error`` and
``errorType`` set, exactly like the in-process call.

References:
    - FastAPI documentation: https://fastapi.tiangolo.com/
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest
from pydantic import BaseModel, ConfigDict, Field

from mock_sql import __version__
from mock_sql.application import ExecutionResult, MockSqlEngine, SchemaSnapshot
from mock_sql.infrastructure.metrics import MetricsRegistry
from mock_sql.ports.inbound import SqlEngine


class SQLRequest(BaseModel):
    """Request model for SQL execution."""

    sql: str = Field(..., description="One or more ';'-separated SQL statements")


class SQLResponse(BaseModel):
    """Response model for execute and reset.

    Exactly one of the tabular, status or error field groups is present.
    """

    model_config = ConfigDict(populate_by_name=True)

    columns: list[str] | None = Field(None, description="Column names")
    rows: list[list[Any]] | None = Field(None, description="Result rows")
    message: str | None = Field(None, description="Status message")
    rows_affected: int | None = Field(None, alias="rowsAffected", description="Rows changed")
    error: str | None = Field(None, description="Error message")
    error_type: str | None = Field(None, alias="errorType", description="Error class name")


class ColumnModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: str
    key_role: str | None = Field(None, alias="keyRole")


class TableModel(BaseModel):
    name: str
    columns: list[ColumnModel]


class SchemaResponse(BaseModel):
    """Response model for the schema snapshot."""

    model_config = ConfigDict(populate_by_name=True)

    current_database: str = Field(..., alias="currentDatabase", description="Session database")
    available_databases: list[str] = Field(
        ..., alias="availableDatabases", description="All database names"
    )
    tables: list[TableModel] = Field(default_factory=list, description="Tables of the session database")


class HealthResponse(BaseModel):
    """Response model for health check."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    current_database: str = Field(..., alias="currentDatabase", description="Session database")


def _result_to_response(result: ExecutionResult) -> SQLResponse:
    """Convert ExecutionResult to SQLResponse."""
    return SQLResponse.model_validate(result.to_dict())


def _snapshot_to_response(snapshot: SchemaSnapshot) -> SchemaResponse:
    return SchemaResponse.model_validate(snapshot.to_dict())


def create_app(
    engine: SqlEngine,
    metrics: MetricsRegistry | None = None,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create a FastAPI application for the mock SQL engine.

    Args:
        engine: The engine to serve.
        metrics: Metrics whose registry ``/metrics`` exposes; the default
            Prometheus registry when omitted.
        cors_origins: Origins allowed by CORS; all when omitted.

    Returns:
        A configured FastAPI application.
    """
    app = FastAPI(
        title="Mock SQL API",
        description="REST API for the T-SQL learning sandbox",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    registry = metrics.registry if metrics is not None else REGISTRY

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            version=__version__,
            current_database=engine.current_database,
        )

    @app.post(
        "/execute",
        response_model=SQLResponse,
        response_model_exclude_none=True,
        tags=["SQL"],
    )
    def execute_sql(request: SQLRequest) -> SQLResponse:
        """Execute a batch of SQL statements.

        Args:
            request: The SQL request containing the batch.

        Returns:
            The last statement's result or the first error.
        """
        return _result_to_response(engine.execute(request.sql))

    @app.get(
        "/schema",
        response_model=SchemaResponse,
        response_model_exclude_none=True,
        tags=["SQL"],
    )
    def get_schema() -> SchemaResponse:
        """Describe the session's current database."""
        return _snapshot_to_response(engine.schema())

    @app.post(
        "/reset",
        response_model=SQLResponse,
        response_model_exclude_none=True,
        tags=["SQL"],
    )
    def reset() -> SQLResponse:
        """Restore all databases to their seed data."""
        return _result_to_response(engine.reset())

    @app.get("/metrics", tags=["Health"])
    def prometheus_metrics() -> Response:
        """Prometheus metrics in text exposition format."""
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    return app


def run_server(
    engine: MockSqlEngine | None = None,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """Run the REST API server.

    Args:
        engine: The engine to serve; the process-wide engine by default.
        host: Host to bind to; the configured host by default.
        port: Port to bind to; the configured port by default.
    """
    import uvicorn

    from mock_sql.infrastructure.config import Config
    from mock_sql.infrastructure.container import get_container

    container = get_container()
    config = container.resolve(Config)
    engine = engine or container.resolve(MockSqlEngine)
    metrics = container.resolve(MetricsRegistry) if config.observability.metrics_enabled else None

    app = create_app(engine, metrics=metrics, cors_origins=config.server.cors_origins)
    uvicorn.run(app, host=host or config.server.host, port=port or config.server.port)

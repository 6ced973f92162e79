"""Application layer for the mock SQL engine.

The application layer orchestrates the parser, the catalog store and the
executor to serve the engine's three use cases: execute, reset, schema.

Exports:
    Engine:
        - MockSqlEngine: Single-session façade over the catalog
        - execute_mock_sql, get_db_schema, reset_db: Process-wide engine calls
    Executor:
        - QueryExecutor: Executes statement plans using the Volcano iterator model
        - ExecutionResult: Result of a statement or batch
        - Row: A row of data
        - Session: The current-database pointer
    Schema:
        - SchemaIntrospector, SchemaSnapshot, TableSchema, ColumnSchema
"""

from mock_sql.application.executor import (
    ExecutionResult,
    Operator,
    QueryExecutor,
    Row,
    Session,
)
from mock_sql.application.schema_introspector import (
    ColumnSchema,
    SchemaIntrospector,
    SchemaSnapshot,
    TableSchema,
)
from mock_sql.application.sql_engine import (
    MockSqlEngine,
    execute_mock_sql,
    get_db_schema,
    get_engine,
    reset_db,
)

__all__ = [
    # Engine
    "MockSqlEngine",
    "get_engine",
    "execute_mock_sql",
    "get_db_schema",
    "reset_db",
    # Executor
    "QueryExecutor",
    "ExecutionResult",
    "Row",
    "Session",
    "Operator",
    # Schema
    "SchemaIntrospector",
    "SchemaSnapshot",
    "TableSchema",
    "ColumnSchema",
]

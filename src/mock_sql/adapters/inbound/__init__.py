"""Inbound adapters for the mock SQL engine.

Inbound adapters handle incoming requests and convert them to
internal operations.

Exports:
    SQL Lexer:
        - tokenize: Split SQL text into tokens (built on sqlparse)
        - Token, TokenKind: Token model
    SQL Parser:
        - SQLParser: Parser that converts SQL batches to statement plans
        - LogicalPlan: Base class for all statement plans
    REST API (import from mock_sql.adapters.inbound.rest_api):
        - create_app: Create a FastAPI application
        - run_server: Run the REST API server
"""

from mock_sql.adapters.inbound.sql_ast import (
    AlterTablePlan,
    CreateTablePlan,
    DatabaseDDLPlan,
    DeletePlan,
    DropTablePlan,
    InsertPlan,
    LogicalPlan,
    SelectPlan,
    StatementType,
    UpdatePlan,
    UsePlan,
)
from mock_sql.adapters.inbound.sql_lexer import Token, TokenKind, tokenize
from mock_sql.adapters.inbound.sql_parser import SQLParser

__all__ = [
    # Lexer
    "tokenize",
    "Token",
    "TokenKind",
    # Parser
    "SQLParser",
    "StatementType",
    "LogicalPlan",
    "SelectPlan",
    "InsertPlan",
    "UpdatePlan",
    "DeletePlan",
    "CreateTablePlan",
    "DropTablePlan",
    "AlterTablePlan",
    "UsePlan",
    "DatabaseDDLPlan",
]

"""Inbound ports - API contracts offered by the mock SQL engine."""

from mock_sql.ports.inbound.sql_engine import SqlEngine

__all__ = ["SqlEngine"]

"""SQL engine port: the contract the UI and the REST adapter call.

The engine owns a single session (the current database pointer). All
three operations are serialized; none raises for SQL problems, which are
reported inside the returned result instead.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from mock_sql.application.executor import ExecutionResult
    from mock_sql.application.schema_introspector import SchemaSnapshot


class SqlEngine(Protocol):
    """Protocol for the mock SQL session façade.

    Example:
        result = engine.execute("USE ShopDB; SELECT * FROM PRODUCTS")
        if result.success:
            render(result.columns, result.rows)
        snapshot = engine.schema()
    """

    @property
    @abstractmethod
    def current_database(self) -> str:
        """Name of the database unqualified table names resolve in."""
        ...

    @abstractmethod
    def execute(self, sql: str) -> ExecutionResult:
        """Parse and run a batch of statements.

        Args:
            sql: One or more ``;``-separated statements.

        Returns:
            The last statement's result, or the first error.
        """
        ...

    @abstractmethod
    def reset(self) -> ExecutionResult:
        """Restore the seed data and select the default database.

        Returns:
            A confirmation status result.
        """
        ...

    @abstractmethod
    def schema(self) -> SchemaSnapshot:
        """Describe the current database's tables."""
        ...

"""Read-only snapshots of the catalog for the UI's schema browser."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from mock_sql.domain.entities import Column, Table
from mock_sql.domain.services import CatalogStore


@dataclass(frozen=True)
class ColumnSchema:
    name: str
    type: str
    key_role: str | None = None

    @classmethod
    def from_column(cls, column: Column) -> ColumnSchema:
        role = column.key_role
        return cls(name=column.name, type=column.sql_type.value, key_role=role.value if role else None)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "type": self.type}
        if self.key_role is not None:
            data["keyRole"] = self.key_role
        return data


@dataclass(frozen=True)
class TableSchema:
    name: str
    columns: list[ColumnSchema] = field(default_factory=list)

    @classmethod
    def from_table(cls, table: Table) -> TableSchema:
        return cls(name=table.name, columns=[ColumnSchema.from_column(c) for c in table.columns])

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "columns": [c.to_dict() for c in self.columns]}


@dataclass(frozen=True)
class SchemaSnapshot:
    """The current database, every database name, and the current database's tables."""

    current_database: str
    available_databases: list[str]
    tables: list[TableSchema]

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentDatabase": self.current_database,
            "availableDatabases": list(self.available_databases),
            "tables": [t.to_dict() for t in self.tables],
        }


class SchemaIntrospector:
    """Builds :class:`SchemaSnapshot` objects from the live catalog.

    Nothing is cached: every call reflects the catalog as it is now.
    """

    def __init__(self, catalog: CatalogStore) -> None:
        self._catalog = catalog

    def snapshot(self, current_database: str) -> SchemaSnapshot:
        """Describe ``current_database``.

        Raises:
            UnknownDatabase: If the database does not exist.
        """
        database = self._catalog.get_database(current_database)
        return SchemaSnapshot(
            current_database=database.name,
            available_databases=self._catalog.database_names(),
            tables=[TableSchema.from_table(database.get_table(name)) for name in database.table_names],
        )

"""Database entity: a named, ordered collection of tables."""

from __future__ import annotations

from dataclasses import dataclass, field

from mock_sql.domain.entities.table import Table
from mock_sql.domain.errors import AlreadyExists, UnknownTable


@dataclass
class Database:
    """A named database.

    Table names are unique within a database and compared case-sensitively.
    Iteration order is creation order.
    """

    name: str
    tables: dict[str, Table] = field(default_factory=dict)

    @property
    def table_names(self) -> list[str]:
        return list(self.tables)

    def has_table(self, name: str) -> bool:
        return name in self.tables

    def get_table(self, name: str) -> Table:
        """Look up a table by name.

        Raises:
            UnknownTable: If no table has that name.
        """
        table = self.tables.get(name)
        if table is None:
            raise UnknownTable(name)
        return table

    def add_table(self, table: Table) -> None:
        if table.name in self.tables:
            raise AlreadyExists(table.name)
        self.tables[table.name] = table

    def remove_table(self, name: str) -> Table:
        if name not in self.tables:
            raise UnknownTable(name)
        return self.tables.pop(name)

"""Domain entities for the mock SQL engine.

Entities are objects with identity that have a lifecycle. A table keeps
its identity while its rows and even its columns change.

Exports:
    Table:
        - Column: Column definition (type, nullability, key, identity, default)
        - IdentitySpec: IDENTITY(seed, increment) auto-numbering
        - ColumnDefault: Constant or current-timestamp default
        - Table: Columns, rows and the identity counter
        - TableDefinition: Input to CREATE TABLE
        - AddColumn, DropColumn: ALTER TABLE changes

    Database:
        - Database: Named, ordered collection of tables
"""

from mock_sql.domain.entities.database import Database
from mock_sql.domain.entities.table import (
    AddColumn,
    Column,
    ColumnDefault,
    DropColumn,
    IdentitySpec,
    RowValues,
    Table,
    TableChange,
    TableDefinition,
)

__all__ = [
    # Table
    "Column",
    "ColumnDefault",
    "IdentitySpec",
    "RowValues",
    "Table",
    "TableDefinition",
    "TableChange",
    "AddColumn",
    "DropColumn",
    # Database
    "Database",
]

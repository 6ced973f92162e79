"""Table entity and its column definitions.

A table owns an ordered list of columns and an ordered list of rows. Rows
are tuples aligned to the column list; every row always has exactly one
value per column.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from mock_sql.domain.errors import UnknownColumn
from mock_sql.domain.value_objects import KeyRole, SqlType, SqlValue

RowValues = tuple[SqlValue, ...]
"""One stored row, aligned to the owning table's columns."""


@dataclass(frozen=True)
class IdentitySpec:
    """``IDENTITY(seed, increment)`` auto-numbering."""

    seed: int = 1
    increment: int = 1


@dataclass(frozen=True)
class ColumnDefault:
    """Default value of a column: a constant or the current timestamp."""

    value: SqlValue = None
    current_timestamp: bool = False

    def resolve(self, now: datetime) -> SqlValue:
        if self.current_timestamp:
            return now
        return self.value


@dataclass(frozen=True)
class Column:
    """Column definition.

    Attributes:
        name: Column name, unique within its table (case-sensitive).
        sql_type: Type tag.
        declared_type: Type as written in DDL, e.g. ``VARCHAR``.
        nullable: Whether NULL is allowed. Primary-key columns never are.
        primary_key: Whether the column belongs to the primary key.
        identity: Auto-numbering spec, if any.
        default: Default applied when an INSERT omits the column.
        max_length: Maximum text length for sized text types.
    """

    name: str
    sql_type: SqlType
    declared_type: str = ""
    nullable: bool = True
    primary_key: bool = False
    identity: IdentitySpec | None = None
    default: ColumnDefault | None = None
    max_length: int | None = None

    @property
    def key_role(self) -> KeyRole | None:
        return KeyRole.PRIMARY_KEY if self.primary_key else None

    @property
    def accepts_null(self) -> bool:
        return self.nullable and not self.primary_key


@dataclass
class Table:
    """A table: columns plus rows plus the identity counter."""

    name: str
    columns: list[Column]
    rows: list[RowValues] = field(default_factory=list)
    next_identity: int | None = None

    def __post_init__(self) -> None:
        identity = self.identity_column
        if identity is not None and self.next_identity is None:
            self.next_identity = identity.identity.seed  # type: ignore[union-attr]

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def identity_column(self) -> Column | None:
        for column in self.columns:
            if column.identity is not None:
                return column
        return None

    @property
    def primary_key_indexes(self) -> list[int]:
        return [i for i, c in enumerate(self.columns) if c.primary_key]

    def find_column(self, name: str) -> Column | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def column_index(self, name: str) -> int:
        """Return the position of a column.

        Raises:
            UnknownColumn: If the table has no such column.
        """
        for i, column in enumerate(self.columns):
            if column.name == name:
                return i
        raise UnknownColumn(name, self.name)

    def key_of(self, row: RowValues) -> tuple[SqlValue, ...]:
        return tuple(row[i] for i in self.primary_key_indexes)

    def peek_identity(self, offset: int = 0) -> int:
        """Identity value the ``offset``-th next insert would receive."""
        identity = self.identity_column
        if identity is None or self.next_identity is None:
            raise ValueError(f"Table '{self.name}' has no identity column")
        return self.next_identity + offset * identity.identity.increment  # type: ignore[union-attr]

    def advance_identity(self, count: int) -> None:
        if count and self.next_identity is not None:
            self.next_identity = self.peek_identity(count)


@dataclass(frozen=True)
class TableDefinition:
    """Input to CREATE TABLE.

    ``primary_key`` lists the columns of a table-level PRIMARY KEY
    constraint; inline ``PRIMARY KEY`` column flags are carried by the
    columns themselves.
    """

    name: str
    columns: tuple[Column, ...]
    primary_key: tuple[str, ...] = ()


@dataclass(frozen=True)
class AddColumn:
    """ALTER TABLE ... ADD <column>."""

    column: Column


@dataclass(frozen=True)
class DropColumn:
    """ALTER TABLE ... DROP COLUMN <name>."""

    name: str


TableChange = AddColumn | DropColumn

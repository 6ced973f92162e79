"""Catalog store: the owner of every database, table and row.

All mutations go through this service so that constraint checks happen in
exactly one place. Each mutating operation is atomic: it validates and
builds the complete new state of the affected table first and only then
swaps it in, so a failure leaves the table exactly as it was.

Thread Safety:
    Not thread-safe. The session façade serializes all calls.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from datetime import datetime

from mock_sql.domain.entities import (
    AddColumn,
    Column,
    ColumnDefault,
    Database,
    DropColumn,
    RowValues,
    Table,
    TableChange,
    TableDefinition,
)
from mock_sql.domain.errors import (
    AlreadyExists,
    ColumnCountMismatch,
    InvalidChange,
    InvalidDefinition,
    NotNullViolation,
    PrimaryKeyViolation,
    SemanticError,
    TypeMismatch,
    UnknownDatabase,
)
from mock_sql.domain.value_objects import SqlType, SqlValue, coerce_value
from mock_sql.infrastructure.logging import get_logger
from mock_sql.ports.outbound import SeedProvider

logger = get_logger(__name__)


class _UseDefault:
    """Marker for the ``DEFAULT`` keyword in an INSERT value list."""

    _instance: _UseDefault | None = None

    def __new__(cls) -> _UseDefault:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DEFAULT"


USE_DEFAULT = _UseDefault()

InsertValue = SqlValue | _UseDefault
RowPredicate = Callable[[RowValues], bool]
RowAssignment = Callable[[RowValues], SqlValue]


def _coerce_for(column: Column, value: SqlValue) -> SqlValue:
    return coerce_value(value, column.sql_type, column=column.name, max_length=column.max_length)


class CatalogStore:
    """In-memory catalog of the seeded databases.

    Example:
        >>> store = CatalogStore(BuiltinSeedProvider())
        >>> store.database_names()
        ['UniversityDB', 'ShopDB', 'LibraryDB']
        >>> len(store.get_table("UniversityDB", "STUDENTS").rows)
        8
    """

    def __init__(
        self,
        seed_provider: SeedProvider,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the store with freshly seeded content.

        Args:
            seed_provider: Source of the initial databases.
            clock: Supplies the timestamp for ``GETDATE()`` defaults.
        """
        self._seed_provider = seed_provider
        self._clock = clock
        self._databases: dict[str, Database] = {}
        self.reset_to_seed()

    @property
    def default_database(self) -> str:
        return self._seed_provider.default_database

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def database_names(self) -> list[str]:
        """Return the database names in seed order."""
        return list(self._databases)

    def get_database(self, name: str) -> Database:
        """Look up a database by name.

        Raises:
            UnknownDatabase: If no database has that name.
        """
        database = self._databases.get(name)
        if database is None:
            raise UnknownDatabase(name, self.database_names())
        return database

    def get_table(self, database: str, name: str) -> Table:
        """Look up a table.

        Raises:
            UnknownDatabase: If the database does not exist.
            UnknownTable: If the table does not exist.
        """
        return self.get_database(database).get_table(name)

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset_to_seed(self) -> None:
        """Replace all databases with freshly built seed content."""
        databases = self._seed_provider.load()
        fresh = {db.name: db for db in databases}
        if self._seed_provider.default_database not in fresh:
            raise UnknownDatabase(self._seed_provider.default_database, list(fresh))
        self._databases = fresh
        logger.debug("catalog reseeded", databases=list(fresh))

    # ------------------------------------------------------------------
    # DDL
    # ------------------------------------------------------------------

    def create_table(self, database: str, definition: TableDefinition) -> Table:
        """Create a table from a definition.

        Args:
            database: Target database name.
            definition: Table name, columns and optional table-level key.

        Returns:
            The new, empty table.

        Raises:
            AlreadyExists: If the table name is taken.
            InvalidDefinition: If the definition is inconsistent.
        """
        db = self.get_database(database)
        if db.has_table(definition.name):
            raise AlreadyExists(definition.name)

        columns = list(definition.columns)
        seen: set[str] = set()
        for column in columns:
            if column.name in seen:
                raise InvalidDefinition(
                    f"Column names in each table must be unique. Column name '{column.name}' "
                    f"in table '{definition.name}' is specified more than once."
                )
            seen.add(column.name)

        identities = [c for c in columns if c.identity is not None]
        if len(identities) > 1:
            raise InvalidDefinition(
                f"Multiple identity columns specified for table '{definition.name}'. "
                "Only one identity column per table is allowed."
            )
        for column in identities:
            self._check_identity(column, InvalidDefinition)
        columns = [replace(c, nullable=False) if c.identity is not None else c for c in columns]

        columns = self._apply_primary_key(definition, columns)
        columns = [self._checked_default(c, InvalidDefinition) for c in columns]

        table = Table(name=definition.name, columns=columns)
        db.add_table(table)
        logger.info(
            "table created", database=database, table=definition.name, columns=len(columns)
        )
        return table

    def drop_table(self, database: str, name: str) -> None:
        """Drop a table.

        Raises:
            UnknownTable: If the table does not exist.
        """
        self.get_database(database).remove_table(name)
        logger.info("table dropped", database=database, table=name)

    def alter_table(self, database: str, name: str, change: TableChange) -> Table:
        """Apply a structural change to a table.

        Raises:
            UnknownTable: If the table does not exist.
            UnknownColumn: If a dropped column does not exist.
            InvalidChange: If the change conflicts with the table's state.
        """
        table = self.get_table(database, name)
        if isinstance(change, AddColumn):
            self._add_column(table, change.column)
        elif isinstance(change, DropColumn):
            self._drop_column(table, change.name)
        else:
            raise InvalidChange(f"Unsupported table change: {type(change).__name__}")
        logger.info(
            "table altered", database=database, table=name, change=type(change).__name__
        )
        return table

    def _add_column(self, table: Table, column: Column) -> None:
        if table.find_column(column.name) is not None:
            raise InvalidChange(
                f"Column names in each table must be unique. Column name '{column.name}' "
                f"in table '{table.name}' is specified more than once."
            )
        if column.primary_key:
            if table.primary_key_indexes:
                raise InvalidChange(f"Table '{table.name}' already has a primary key defined on it.")
            if table.rows:
                raise InvalidChange(
                    f"Cannot add PRIMARY KEY column '{column.name}' to table '{table.name}' "
                    "because it already contains rows."
                )
            column = replace(column, nullable=False)
        if column.identity is not None:
            if table.identity_column is not None:
                raise InvalidChange(
                    f"Multiple identity columns specified for table '{table.name}'. "
                    "Only one identity column per table is allowed."
                )
            self._check_identity(column, InvalidChange)
            column = replace(column, nullable=False)
        column = self._checked_default(column, InvalidChange)

        if (
            table.rows
            and not column.nullable
            and column.default is None
            and column.identity is None
        ):
            raise InvalidChange(
                "ALTER TABLE only allows columns to be added that can contain nulls, "
                "or have a DEFAULT definition specified, or the column being added is an "
                f"identity column. Column '{column.name}' cannot be added to non-empty "
                f"table '{table.name}'."
            )

        now = self._clock()
        fill: list[SqlValue] = []
        next_identity: int | None = None
        if column.identity is not None:
            next_identity = column.identity.seed
            for _ in table.rows:
                fill.append(next_identity)
                next_identity += column.identity.increment
        else:
            value = column.default.resolve(now) if column.default is not None else None
            fill = [_coerce_for(column, value)] * len(table.rows)

        table.rows = [row + (value,) for row, value in zip(table.rows, fill)]
        table.columns = [*table.columns, column]
        if next_identity is not None:
            table.next_identity = next_identity

    def _drop_column(self, table: Table, name: str) -> None:
        index = table.column_index(name)
        column = table.columns[index]
        if column.primary_key:
            raise InvalidChange(
                f"Cannot drop column '{name}' because it is part of the primary key "
                f"of table '{table.name}'."
            )
        if len(table.columns) == 1:
            raise InvalidChange(
                f"Cannot drop column '{name}': table '{table.name}' must keep at least one column."
            )
        table.rows = [row[:index] + row[index + 1 :] for row in table.rows]
        table.columns = table.columns[:index] + table.columns[index + 1 :]
        if column.identity is not None:
            table.next_identity = None

    @staticmethod
    def _check_identity(column: Column, error: type[SemanticError]) -> None:
        if column.sql_type is not SqlType.INTEGER:
            raise error(
                f"Identity column '{column.name}' must be of an integer data type."
            )
        if column.identity is not None and column.identity.increment == 0:
            raise error(f"Identity column '{column.name}' cannot have an increment of 0.")
        if column.default is not None:
            raise error(
                f"Defaults cannot be created on columns with an IDENTITY attribute. "
                f"Column: '{column.name}'."
            )

    def _checked_default(self, column: Column, error: type[SemanticError]) -> Column:
        """Coerce a constant default to the column type up front."""
        default = column.default
        if default is None or default.current_timestamp:
            if default is not None and column.sql_type not in (SqlType.DATETIME, SqlType.TEXT):
                raise error(
                    f"Default GETDATE() is not compatible with column '{column.name}' "
                    f"of type {column.sql_type.value}."
                )
            return column
        try:
            value = _coerce_for(column, default.value)
        except TypeMismatch as exc:
            raise error(f"Invalid default for column '{column.name}': {exc}") from None
        if value is None and not column.accepts_null:
            raise error(f"Column '{column.name}' does not allow nulls but defaults to NULL.")
        return replace(column, default=ColumnDefault(value=value))

    @staticmethod
    def _apply_primary_key(definition: TableDefinition, columns: list[Column]) -> list[Column]:
        inline = [c.name for c in columns if c.primary_key]
        key = list(definition.primary_key)
        if len(inline) > 1 or (inline and key):
            raise InvalidDefinition(
                f"Cannot add multiple PRIMARY KEY constraints to table '{definition.name}'."
            )
        if not key:
            return [replace(c, nullable=False) if c.primary_key else c for c in columns]

        names = {c.name for c in columns}
        for name in key:
            if name not in names:
                raise InvalidDefinition(
                    f"Column name '{name}' does not exist in the target table '{definition.name}'."
                )
        if len(set(key)) != len(key):
            raise InvalidDefinition(
                f"Column names in the PRIMARY KEY of table '{definition.name}' must be unique."
            )
        members = set(key)
        return [
            replace(c, primary_key=True, nullable=False) if c.name in members else c
            for c in columns
        ]

    # ------------------------------------------------------------------
    # DML
    # ------------------------------------------------------------------

    def insert_row(
        self,
        database: str,
        table_name: str,
        values: Sequence[InsertValue],
        columns: Sequence[str] | None = None,
    ) -> int:
        """Insert a single row. See :meth:`insert_rows`."""
        return self.insert_rows(database, table_name, [values], columns)

    def insert_rows(
        self,
        database: str,
        table_name: str,
        rows: Sequence[Sequence[InsertValue]],
        columns: Sequence[str] | None = None,
    ) -> int:
        """Insert rows into a table, all or nothing.

        Without a column list, a row supplying one value per column targets
        every column; any other row targets the non-identity columns.
        Omitted columns receive their identity value, default or NULL.

        Args:
            database: Database name.
            table_name: Target table.
            rows: Value lists; ``USE_DEFAULT`` requests a column's default.
            columns: Optional explicit target column list.

        Returns:
            Number of rows inserted.

        Raises:
            UnknownTable: If the table does not exist.
            UnknownColumn: If the column list names an unknown column.
            ColumnCountMismatch: If a row's width does not match its targets.
            TypeMismatch: If a value cannot be converted to its column type.
            NotNullViolation: If NULL reaches a non-nullable column.
            PrimaryKeyViolation: If a key would be duplicated.
        """
        table = self.get_table(database, table_name)
        explicit = self._resolve_targets(table, columns) if columns is not None else None
        all_columns = list(range(len(table.columns)))
        non_identity = [i for i, c in enumerate(table.columns) if c.identity is None]

        keys = self._existing_keys(table)
        now = self._clock()
        allocated = 0
        explicit_identities: list[int] = []
        new_rows: list[RowValues] = []

        for values in rows:
            if explicit is not None:
                targets = explicit
            elif len(values) == len(table.columns):
                targets = all_columns
            else:
                targets = non_identity
            if len(values) != len(targets):
                raise ColumnCountMismatch(len(targets), len(values))

            supplied = dict(zip(targets, values))
            row: list[SqlValue] = []
            for index, column in enumerate(table.columns):
                value = supplied.get(index, USE_DEFAULT)
                if value is not USE_DEFAULT:
                    value = _coerce_for(column, value)  # type: ignore[arg-type]
                    if column.identity is not None and value is not None:
                        explicit_identities.append(value)  # type: ignore[arg-type]
                elif column.identity is not None:
                    value = table.peek_identity(allocated)
                    allocated += 1
                elif column.default is not None:
                    value = _coerce_for(column, column.default.resolve(now))
                else:
                    value = None
                if value is None and not column.accepts_null:
                    raise NotNullViolation(table.name, column.name)
                row.append(value)

            stored = tuple(row)
            if keys is not None:
                key = table.key_of(stored)
                if key in keys:
                    raise PrimaryKeyViolation(table.name, key)
                keys.add(key)
            new_rows.append(stored)

        table.rows = [*table.rows, *new_rows]
        table.advance_identity(allocated)
        for value in explicit_identities:
            self._bump_identity(table, value)
        return len(new_rows)

    def update_rows(
        self,
        database: str,
        table_name: str,
        predicate: RowPredicate,
        assignments: Mapping[str, RowAssignment],
    ) -> int:
        """Update matching rows, all or nothing.

        Every assignment is evaluated against the row's values before the
        update, so ``SET A = B, B = A`` swaps.

        Args:
            database: Database name.
            table_name: Target table.
            predicate: Selects the rows to change.
            assignments: Column name to a function computing its new value.

        Returns:
            Number of rows updated.

        Raises:
            UnknownColumn: If an assignment targets an unknown column.
            TypeMismatch, NotNullViolation, PrimaryKeyViolation: As for insert.
        """
        table = self.get_table(database, table_name)
        resolved: list[tuple[int, RowAssignment]] = []
        for name, compute in assignments.items():
            index = table.column_index(name)
            if table.columns[index].identity is not None:
                raise SemanticError(f"Cannot update identity column '{name}'.")
            resolved.append((index, compute))

        updated = 0
        new_rows: list[RowValues] = []
        for row in table.rows:
            if not predicate(row):
                new_rows.append(row)
                continue
            changed = list(row)
            for index, compute in resolved:
                column = table.columns[index]
                value = _coerce_for(column, compute(row))
                if value is None and not column.accepts_null:
                    raise NotNullViolation(table.name, column.name)
                changed[index] = value
            new_rows.append(tuple(changed))
            updated += 1

        if updated and table.primary_key_indexes:
            seen: set[tuple[SqlValue, ...]] = set()
            for row in new_rows:
                key = table.key_of(row)
                if key in seen:
                    raise PrimaryKeyViolation(table.name, key)
                seen.add(key)

        table.rows = new_rows
        return updated

    def delete_rows(self, database: str, table_name: str, predicate: RowPredicate) -> int:
        """Delete matching rows.

        Returns:
            Number of rows deleted.
        """
        table = self.get_table(database, table_name)
        kept = [row for row in table.rows if not predicate(row)]
        deleted = len(table.rows) - len(kept)
        table.rows = kept
        return deleted

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve_targets(table: Table, columns: Sequence[str]) -> list[int]:
        targets: list[int] = []
        for name in columns:
            index = table.column_index(name)
            if index in targets:
                raise SemanticError(
                    f"The column name '{name}' is specified more than once in the column "
                    "list of an INSERT."
                )
            targets.append(index)
        return targets

    @staticmethod
    def _existing_keys(table: Table) -> set[tuple[SqlValue, ...]] | None:
        if not table.primary_key_indexes:
            return None
        return {table.key_of(row) for row in table.rows}

    @staticmethod
    def _bump_identity(table: Table, explicit: int) -> None:
        identity = table.identity_column
        if identity is None or identity.identity is None or table.next_identity is None:
            return
        increment = identity.identity.increment
        if increment > 0 and explicit >= table.next_identity:
            table.next_identity = explicit + increment
        elif increment < 0 and explicit <= table.next_identity:
            table.next_identity = explicit + increment

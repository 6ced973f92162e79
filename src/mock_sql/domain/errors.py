"""Error taxonomy for the mock SQL engine.

Every failure the engine can report to a caller is an instance of
:class:`MockSqlError`. The session façade converts these into result data
(``error`` + ``errorType``); nothing in this hierarchy is meant to escape
``execute``/``reset``/``schema`` as an exception.

Hierarchy:
    MockSqlError
    ├── SQLSyntaxError              (reported as "SyntaxError")
    └── SemanticError
        ├── NotFound
        │   ├── UnknownDatabase
        │   ├── UnknownTable
        │   └── UnknownColumn
        ├── AlreadyExists
        ├── TypeMismatch
        ├── ColumnCountMismatch
        ├── InvalidDefinition
        ├── InvalidChange
        ├── AmbiguousReference
        ├── InvalidGrouping
        ├── DivisionByZero
        └── ConstraintViolation
            ├── PrimaryKeyViolation
            └── NotNullViolation
"""

from __future__ import annotations

from typing import ClassVar


class MockSqlError(Exception):
    """Base class for all errors surfaced to engine callers."""

    error_type: ClassVar[str] = "MockSqlError"

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        # Subclasses report their own class name unless they set one.
        if "error_type" not in cls.__dict__:
            cls.error_type = cls.__name__

    @property
    def message(self) -> str:
        return str(self)


class SQLSyntaxError(MockSqlError):
    """Malformed statement text.

    Attributes:
        token: The offending token text ("" at end of input).
        line: 1-based line of the token.
        column: 1-based column of the token.
        detail: What the parser expected or rejected.
    """

    error_type: ClassVar[str] = "SyntaxError"

    def __init__(self, detail: str, token: str = "", line: int = 1, column: int = 1) -> None:
        self.detail = detail
        self.token = token
        self.line = line
        self.column = column
        if token:
            text = f"Incorrect syntax near '{token}' (line {line}, column {column}): {detail}"
        else:
            text = f"Incorrect syntax at end of input (line {line}, column {column}): {detail}"
        super().__init__(text)


class SemanticError(MockSqlError):
    """A well-formed statement that cannot be executed against the catalog."""


class NotFound(SemanticError):
    """A named object does not exist."""


class UnknownDatabase(NotFound):
    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self.name = name
        text = f"Database '{name}' does not exist."
        if available:
            text += f" Available databases: {', '.join(available)}."
        super().__init__(text)


class UnknownTable(NotFound):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Invalid object name '{name}'.")


class UnknownColumn(NotFound):
    def __init__(self, name: str, table: str | None = None) -> None:
        self.name = name
        self.table = table
        qualified = f"{table}.{name}" if table else name
        super().__init__(f"Invalid column name '{qualified}'.")


class AlreadyExists(SemanticError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"There is already an object named '{name}' in the database.")


class TypeMismatch(SemanticError):
    """A value cannot be converted to the type its context requires."""


class ColumnCountMismatch(SemanticError):
    def __init__(self, expected: int, supplied: int) -> None:
        self.expected = expected
        self.supplied = supplied
        super().__init__(
            "Column name or number of supplied values does not match table definition "
            f"(expected {expected}, got {supplied})."
        )


class InvalidDefinition(SemanticError):
    """A CREATE TABLE definition is inconsistent."""


class InvalidChange(SemanticError):
    """An ALTER TABLE change cannot be applied to the table's current state."""


class AmbiguousReference(SemanticError):
    """A name resolves to more than one source in a query."""


class InvalidGrouping(SemanticError):
    """A column is used outside GROUP BY and outside any aggregate."""


class DivisionByZero(SemanticError):
    def __init__(self) -> None:
        super().__init__("Divide by zero error encountered.")


class ConstraintViolation(SemanticError):
    """A statement would break a table constraint."""


class PrimaryKeyViolation(ConstraintViolation):
    def __init__(self, table: str, key: tuple[object, ...]) -> None:
        self.table = table
        self.key = key
        rendered = ", ".join("NULL" if v is None else str(v) for v in key)
        super().__init__(
            f"Violation of PRIMARY KEY constraint on table '{table}'. "
            f"Cannot insert duplicate key value ({rendered})."
        )


class NotNullViolation(ConstraintViolation):
    def __init__(self, table: str, column: str) -> None:
        self.table = table
        self.column = column
        super().__init__(
            f"Cannot insert the value NULL into column '{column}', table '{table}'; "
            "column does not allow nulls."
        )

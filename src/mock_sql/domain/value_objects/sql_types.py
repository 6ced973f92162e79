"""Scalar types and value semantics for the mock SQL engine.

Row values form a closed set of Python types, one per SQL type tag:

    INTEGER  -> int
    DECIMAL  -> decimal.Decimal
    TEXT     -> str
    DATETIME -> datetime.datetime
    BOOLEAN  -> bool
    NULL     -> None

Everything that converts or compares values lives here so the catalog and
the executor agree on one set of rules.
"""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Union

from mock_sql.domain.errors import InvalidDefinition, TypeMismatch

SqlValue = Union[int, Decimal, str, datetime, bool, None]
"""A single cell value."""


class SqlType(Enum):
    """Column type tags."""

    INTEGER = "INTEGER"
    TEXT = "TEXT"
    DECIMAL = "DECIMAL"
    DATETIME = "DATETIME"
    BOOLEAN = "BOOLEAN"

    @classmethod
    def from_declared(cls, type_name: str) -> SqlType:
        """Map a declared SQL type name (e.g. ``NVARCHAR``) to its tag.

        Raises:
            InvalidDefinition: If the type name is not supported.
        """
        try:
            return _DECLARED_TYPES[type_name.upper()]
        except KeyError:
            raise InvalidDefinition(f"Column, parameter, or variable: cannot find data type {type_name}.") from None


class KeyRole(Enum):
    """Key annotations reported by the schema catalog."""

    PRIMARY_KEY = "PK"


_DECLARED_TYPES: dict[str, SqlType] = {
    "INT": SqlType.INTEGER,
    "INTEGER": SqlType.INTEGER,
    "BIGINT": SqlType.INTEGER,
    "SMALLINT": SqlType.INTEGER,
    "TINYINT": SqlType.INTEGER,
    "VARCHAR": SqlType.TEXT,
    "NVARCHAR": SqlType.TEXT,
    "CHAR": SqlType.TEXT,
    "NCHAR": SqlType.TEXT,
    "TEXT": SqlType.TEXT,
    "NTEXT": SqlType.TEXT,
    "DECIMAL": SqlType.DECIMAL,
    "NUMERIC": SqlType.DECIMAL,
    "FLOAT": SqlType.DECIMAL,
    "REAL": SqlType.DECIMAL,
    "MONEY": SqlType.DECIMAL,
    "SMALLMONEY": SqlType.DECIMAL,
    "DOUBLE": SqlType.DECIMAL,
    "DATETIME": SqlType.DATETIME,
    "DATETIME2": SqlType.DATETIME,
    "SMALLDATETIME": SqlType.DATETIME,
    "DATE": SqlType.DATETIME,
    "TIMESTAMP": SqlType.DATETIME,
    "BIT": SqlType.BOOLEAN,
    "BOOLEAN": SqlType.BOOLEAN,
    "BOOL": SqlType.BOOLEAN,
}

SIZED_TEXT_TYPES = frozenset({"VARCHAR", "NVARCHAR", "CHAR", "NCHAR"})
"""Declared types whose first size argument is a maximum length."""

_INTEGER_TEXT = re.compile(r"^\s*[+-]?\d+\s*$")


def type_of(value: SqlValue) -> SqlType | None:
    """Return the type tag of a runtime value (None for NULL)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return SqlType.BOOLEAN
    if isinstance(value, int):
        return SqlType.INTEGER
    if isinstance(value, Decimal):
        return SqlType.DECIMAL
    if isinstance(value, datetime):
        return SqlType.DATETIME
    if isinstance(value, str):
        return SqlType.TEXT
    raise TypeError(f"Unsupported runtime value {value!r}")


def is_numeric(value: SqlValue) -> bool:
    return isinstance(value, (int, Decimal))


def parse_datetime(text: str) -> datetime:
    """Parse ISO-8601 text (date, or date with time) into a naive datetime."""
    parsed = datetime.fromisoformat(text.strip())
    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None)
    return parsed


def format_datetime(value: datetime) -> str:
    """Render a datetime the way SQL Server Management Studio shows it."""
    text = value.strftime("%Y-%m-%d %H:%M:%S")
    if value.microsecond:
        text += f".{value.microsecond // 1000:03d}"
    return text


def render_value(value: SqlValue) -> str:
    """Render a value for inclusion in an error message."""
    if value is None:
        return "NULL"
    if isinstance(value, str):
        return f"'{value}'"
    if isinstance(value, datetime):
        return f"'{format_datetime(value)}'"
    return str(value)


def _to_integer(value: SqlValue) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        raise ValueError("fractional value")
    if isinstance(value, str) and _INTEGER_TEXT.match(value):
        return int(value)
    raise ValueError("not an integer")


def _to_decimal(value: SqlValue) -> Decimal:
    if isinstance(value, bool):
        raise ValueError("boolean is not numeric")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, str):
        number = Decimal(value.strip())
        if not number.is_finite():
            raise ValueError("not a finite number")
        return number
    raise ValueError("not a number")


def _to_text(value: SqlValue) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        raise ValueError("boolean is not text")
    if isinstance(value, (int, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return format_datetime(value)
    raise ValueError("not text")


def _to_datetime(value: SqlValue) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return parse_datetime(value)
    raise ValueError("not a datetime")


def _to_boolean(value: SqlValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
    raise ValueError("not a boolean")


_CONVERTERS: dict[SqlType, Callable[[Any], SqlValue]] = {
    SqlType.INTEGER: _to_integer,
    SqlType.DECIMAL: _to_decimal,
    SqlType.TEXT: _to_text,
    SqlType.DATETIME: _to_datetime,
    SqlType.BOOLEAN: _to_boolean,
}


def coerce_value(
    value: SqlValue,
    sql_type: SqlType,
    *,
    column: str | None = None,
    max_length: int | None = None,
) -> SqlValue:
    """Convert a value to the Python representation of ``sql_type``.

    NULL passes through unchanged; nullability is the caller's concern.

    Args:
        value: The value to convert.
        sql_type: Target type tag.
        column: Column name, used only for error messages.
        max_length: Maximum text length (TEXT columns only).

    Returns:
        The converted value.

    Raises:
        TypeMismatch: If the value cannot be represented as ``sql_type``.
    """
    if value is None:
        return None
    try:
        converted = _CONVERTERS[sql_type](value)
    except (ValueError, ArithmeticError):
        if column is not None:
            raise TypeMismatch(
                f"Cannot convert value {render_value(value)} to {sql_type.value} "
                f"for column '{column}'."
            ) from None
        raise TypeMismatch(
            f"Conversion failed when converting the value {render_value(value)} "
            f"to data type {sql_type.value}."
        ) from None

    if max_length is not None and isinstance(converted, str) and len(converted) > max_length:
        target = f" in column '{column}'" if column else ""
        raise TypeMismatch(
            f"String or binary data would be truncated{target} "
            f"(maximum length {max_length}, value length {len(converted)})."
        )
    return converted


def _align(left: SqlValue, right: SqlValue) -> tuple[Any, Any]:
    """Bring two non-null values to a mutually comparable representation."""
    left_type, right_type = type_of(left), type_of(right)
    if left_type == right_type:
        return left, right
    if is_numeric(left) and is_numeric(right):
        return _to_decimal_or_int(left), _to_decimal_or_int(right)
    if left_type is SqlType.TEXT:
        return coerce_value(left, _comparison_target(right_type)), right  # type: ignore[arg-type]
    if right_type is SqlType.TEXT:
        return left, coerce_value(right, _comparison_target(left_type))  # type: ignore[arg-type]
    raise TypeMismatch(
        f"Cannot compare {left_type.value} value {render_value(left)} "  # type: ignore[union-attr]
        f"with {right_type.value} value {render_value(right)}."  # type: ignore[union-attr]
    )


def _comparison_target(other: SqlType) -> SqlType:
    # Text meeting an INTEGER may still hold a fraction ('3.5' < 4).
    if other is SqlType.INTEGER:
        return SqlType.DECIMAL
    return other


def _to_decimal_or_int(value: SqlValue) -> int | Decimal:
    if isinstance(value, bool):
        return int(value)
    return value  # type: ignore[return-value]


def compare_values(left: SqlValue, right: SqlValue) -> int:
    """Three-way compare two non-null values.

    Text compares by code point. Text compared against a number, datetime
    or boolean is converted to that type first.

    Returns:
        -1, 0 or 1.

    Raises:
        TypeMismatch: If the values cannot be compared.
    """
    a, b = _align(left, right)
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def to_json_value(value: SqlValue) -> Any:
    """Convert a cell value to a JSON-friendly scalar."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return format_datetime(value)
    return value

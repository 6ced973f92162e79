"""Value objects for the mock SQL engine domain.

Exports:
    SQL Types:
        - SqlType: Column type tags (INTEGER, TEXT, DECIMAL, DATETIME, BOOLEAN)
        - SqlValue: Union of the Python types a cell may hold
        - KeyRole: Key annotations reported by the schema catalog
        - coerce_value: Convert a value to a column's type
        - compare_values: Three-way comparison with SQL conversion rules
"""

from mock_sql.domain.value_objects.sql_types import (
    SIZED_TEXT_TYPES,
    KeyRole,
    SqlType,
    SqlValue,
    coerce_value,
    compare_values,
    format_datetime,
    is_numeric,
    parse_datetime,
    render_value,
    to_json_value,
    type_of,
)

__all__ = [
    "SqlType",
    "SqlValue",
    "KeyRole",
    "SIZED_TEXT_TYPES",
    "coerce_value",
    "compare_values",
    "format_datetime",
    "is_numeric",
    "parse_datetime",
    "render_value",
    "to_json_value",
    "type_of",
]

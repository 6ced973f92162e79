"""Unit tests for expression evaluation."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from mock_sql.adapters.inbound.sql_ast import (
    AggregateExpr,
    AggregateFunc,
    ColumnExpr,
    ColumnRef,
    Expression,
)
from mock_sql.adapters.inbound.sql_parser import SQLParser
from mock_sql.application.expressions import (
    ExpressionEvaluator,
    RowSchema,
    Scope,
    SourceColumn,
    check_grouping,
    collect_aggregates,
    like_pattern,
)
from mock_sql.domain.errors import (
    AmbiguousReference,
    DivisionByZero,
    InvalidGrouping,
    SemanticError,
    TypeMismatch,
    UnknownColumn,
)
from mock_sql.domain.value_objects import SqlValue

NOW = datetime(2024, 6, 1, 12, 30)
EMPTY = Scope(RowSchema([]))


def expression(sql: str) -> Expression:
    [plan] = SQLParser().parse(f"SELECT {sql}")
    return plan.items[0].expr


def evaluate(sql: str) -> SqlValue:
    return ExpressionEvaluator(NOW).evaluate(expression(sql), EMPTY)


def value_scopes(*values: SqlValue) -> list[Scope]:
    schema = RowSchema([SourceColumn("T", "V")])
    return [Scope(schema, (v,)) for v in values]


def aggregate(func: AggregateFunc, *values: SqlValue, distinct: bool = False) -> SqlValue:
    expr = AggregateExpr(func, ColumnExpr(ColumnRef("V")), distinct)
    return ExpressionEvaluator(NOW).aggregate(expr, value_scopes(*values))


@pytest.mark.unit
class TestThreeValuedLogic:
    """Tests for NULL handling in predicates."""

    @pytest.mark.parametrize(
        "sql, expected",
        [
            ("NULL = 1", None),
            ("NULL = NULL", None),
            ("NULL IS NULL", True),
            ("1 IS NOT NULL", True),
            ("1 = 1 AND NULL = 1", None),
            ("1 = 2 AND NULL = 1", False),
            ("1 = 1 OR NULL = 1", True),
            ("1 = 2 OR NULL = 1", None),
            ("NOT (NULL = 1)", None),
            ("NOT (1 = 2)", True),
        ],
    )
    def test_truth_tables(self, sql: str, expected: bool | None) -> None:
        """Test AND, OR and NOT with unknown operands."""
        assert evaluate(sql) is expected

    @pytest.mark.parametrize(
        "sql, expected",
        [
            ("1 IN (1, NULL)", True),
            ("3 IN (1, NULL)", None),
            ("3 NOT IN (1, NULL)", None),
            ("3 NOT IN (1, 2)", True),
            ("NULL IN (1, 2)", None),
        ],
    )
    def test_in_with_nulls(self, sql: str, expected: bool | None) -> None:
        """Test IN when the list contains NULL."""
        assert evaluate(sql) is expected

    def test_between(self) -> None:
        """Test inclusive BETWEEN."""
        assert evaluate("5 BETWEEN 1 AND 5") is True
        assert evaluate("6 NOT BETWEEN 1 AND 5") is True
        assert evaluate("NULL BETWEEN 1 AND 5") is None

    def test_is_true_treats_unknown_as_false(self) -> None:
        """Test that WHERE-style evaluation drops unknown rows."""
        assert ExpressionEvaluator(NOW).is_true(expression("NULL = 1"), EMPTY) is False

    def test_non_boolean_condition(self) -> None:
        """Test that a number is not a condition."""
        with pytest.raises(TypeMismatch, match="non-boolean"):
            evaluate("NOT 1")


@pytest.mark.unit
class TestLike:
    """Tests for LIKE pattern translation."""

    @pytest.mark.parametrize(
        "pattern, text, matches",
        [
            ("A%", "Ahmed Ali", True),
            ("a%", "Ahmed Ali", True),
            ("%Ali", "Ahmed Ali", True),
            ("%ali%", "Khalid", True),
            ("_b", "ab", True),
            ("_b", "abc", False),
            ("[a-c]at", "bat", True),
            ("[a-c]at", "rat", False),
            ("[^a]%", "abc", False),
            ("[^a]%", "xbc", True),
            ("a.c", "abc", False),
            ("a.c", "a.c", True),
            ("[]", "[]", True),
            ("a[]%", "a[]b", True),
            ("[^]x", "[^]x", True),
            ("[abc", "[abc", True),
        ],
    )
    def test_like_pattern(self, pattern: str, text: str, matches: bool) -> None:
        """Test wildcards, character classes and literal characters."""
        assert (like_pattern(pattern).fullmatch(text) is not None) is matches

    def test_like_expression(self) -> None:
        """Test LIKE and NOT LIKE through the evaluator."""
        assert evaluate("'Sara' LIKE 'S%'") is True
        assert evaluate("'Sara' NOT LIKE 'S%'") is False
        assert evaluate("NULL LIKE 'S%'") is None

    def test_reversed_range(self) -> None:
        """Test that a reversed character range is reported as an error."""
        with pytest.raises(SemanticError, match=r"Invalid LIKE pattern '\[z-a\]'"):
            evaluate("'x' LIKE '[z-a]'")


@pytest.mark.unit
class TestArithmetic:
    """Tests for arithmetic operators."""

    def test_integer_division_truncates(self) -> None:
        """Test that integer division truncates toward zero."""
        assert evaluate("7 / 2") == 3
        assert evaluate("-7 / 2") == -3

    def test_decimal_division(self) -> None:
        """Test that decimal division keeps six places."""
        assert evaluate("7.0 / 2") == Decimal("3.5")
        assert evaluate("1.0 / 3") == Decimal("0.333333")

    def test_modulo_sign_follows_dividend(self) -> None:
        """Test the sign of the remainder."""
        assert evaluate("7 % 3") == 1
        assert evaluate("-7 % 3") == -1
        assert evaluate("7 % -3") == 1

    def test_division_by_zero(self) -> None:
        """Test that dividing by zero is an error."""
        with pytest.raises(DivisionByZero):
            evaluate("1 / 0")
        with pytest.raises(DivisionByZero):
            evaluate("5 % 0")

    def test_mixed_numeric(self) -> None:
        """Test integer and decimal operands together."""
        assert evaluate("2 * 1.5") == Decimal("3.0")
        assert evaluate("10 - 2.25") == Decimal("7.75")

    def test_null_propagates(self) -> None:
        """Test that NULL in arithmetic yields NULL."""
        assert evaluate("1 + NULL") is None

    def test_string_concatenation(self) -> None:
        """Test that + concatenates two strings."""
        assert evaluate("'Data' + ' ' + 'Structures'") == "Data Structures"

    def test_string_plus_number(self) -> None:
        """Test that non-numeric text cannot be added to a number."""
        with pytest.raises(TypeMismatch):
            evaluate("'abc' + 1")

    def test_date_arithmetic(self) -> None:
        """Test adding days to a datetime."""
        assert evaluate("GETDATE() + 1") == datetime(2024, 6, 2, 12, 30)

    def test_date_overflow(self) -> None:
        """Test that leaving the datetime range is a type error."""
        with pytest.raises(TypeMismatch, match="caused an overflow"):
            evaluate("GETDATE() + 3000000")
        with pytest.raises(TypeMismatch, match="caused an overflow"):
            evaluate("GETDATE() - 99999999999999999999")

    def test_decimal_precision_overflow(self) -> None:
        """Test that a quotient too wide for the fixed scale is a type error."""
        with pytest.raises(TypeMismatch, match="Arithmetic overflow"):
            evaluate("99999999999999999999999999.5 / 2.0")


@pytest.mark.unit
class TestFunctions:
    """Tests for scalar functions, CASE and CAST."""

    @pytest.mark.parametrize(
        "sql, expected",
        [
            ("UPPER('abc')", "ABC"),
            ("LOWER('ABC')", "abc"),
            ("LEN('ab  ')", 2),
            ("LTRIM('  ab')", "ab"),
            ("TRIM('  ab  ')", "ab"),
            ("SUBSTRING('Hello', 2, 3)", "ell"),
            ("REPLACE('Hello', 'L', 'x')", "Hexxo"),
            ("CONCAT('a', NULL, 1)", "a1"),
            ("COALESCE(NULL, NULL, 'x')", "x"),
            ("ISNULL(NULL, 0)", 0),
            ("ROUND(2.345, 2)", Decimal("2.35")),
            ("ROUND(2.5)", Decimal("3")),
            ("ABS(-4)", 4),
            ("YEAR('2024-03-15')", 2024),
            ("MONTH('2024-03-15')", 3),
            ("DAY('2024-03-15')", 15),
        ],
    )
    def test_scalar_functions(self, sql: str, expected: SqlValue) -> None:
        """Test the supported scalar functions."""
        assert evaluate(sql) == expected

    def test_round_beyond_scale(self) -> None:
        """Test that rounding past a value's scale leaves it unchanged."""
        assert evaluate("ROUND(3.60, 30)") == Decimal("3.60")
        assert evaluate("ROUND(42, 3)") == 42

    def test_round_overflow(self) -> None:
        """Test that a rounded value too wide for DECIMAL is a type error."""
        with pytest.raises(TypeMismatch, match="Arithmetic overflow"):
            evaluate("ROUND(99999999999999999999999999999.95, 1)")

    def test_null_argument(self) -> None:
        """Test that most functions return NULL for a NULL argument."""
        assert evaluate("UPPER(NULL)") is None

    def test_getdate(self) -> None:
        """Test that GETDATE() returns the statement timestamp."""
        assert evaluate("GETDATE()") == NOW
        assert evaluate("CURRENT_TIMESTAMP") == NOW

    def test_case(self) -> None:
        """Test searched and simple CASE."""
        assert evaluate("CASE WHEN 1 = 2 THEN 'a' ELSE 'b' END") == "b"
        assert evaluate("CASE 2 WHEN 1 THEN 'one' WHEN 2 THEN 'two' END") == "two"
        assert evaluate("CASE 3 WHEN 1 THEN 'one' END") is None

    @pytest.mark.parametrize(
        "sql, expected",
        [
            ("CAST(3.7 AS INT)", 3),
            ("CAST('42' AS INT)", 42),
            ("CAST('abcdef' AS VARCHAR(3))", "abc"),
            ("CAST(2.345 AS DECIMAL(5, 2))", Decimal("2.35")),
            ("CAST(5 AS BIT)", True),
            ("CAST(12 AS VARCHAR(10))", "12"),
            ("CONVERT(INT, '7')", 7),
        ],
    )
    def test_cast(self, sql: str, expected: SqlValue) -> None:
        """Test explicit conversions."""
        assert evaluate(sql) == expected

    def test_cast_failure(self) -> None:
        """Test that a failing conversion is a type mismatch."""
        with pytest.raises(TypeMismatch, match="Conversion failed"):
            evaluate("CAST('x' AS INT)")


@pytest.mark.unit
class TestAggregates:
    """Tests for aggregate computation."""

    def test_count_star_counts_nulls(self) -> None:
        """Test that COUNT(*) counts every row."""
        scopes = value_scopes(1, None, 3)
        assert ExpressionEvaluator(NOW).aggregate(AggregateExpr(AggregateFunc.COUNT), scopes) == 3

    def test_count_column_skips_nulls(self) -> None:
        """Test that COUNT(col) ignores NULL."""
        assert aggregate(AggregateFunc.COUNT, 1, None, 3) == 2

    def test_count_distinct(self) -> None:
        """Test COUNT(DISTINCT col)."""
        assert aggregate(AggregateFunc.COUNT, "CS", "Math", "CS", None, distinct=True) == 2

    def test_sum_and_avg(self) -> None:
        """Test SUM and AVG, with AVG kept as a decimal."""
        assert aggregate(AggregateFunc.SUM, 1, 2, None, 4) == 7
        assert aggregate(AggregateFunc.AVG, 1, 2) == Decimal("1.5")
        assert aggregate(AggregateFunc.AVG, Decimal("3.60"), Decimal("3.85")) == Decimal("3.725")

    def test_avg_overflow(self) -> None:
        """Test that an average too wide for the fixed scale is a type error."""
        with pytest.raises(TypeMismatch, match="Arithmetic overflow"):
            aggregate(AggregateFunc.AVG, Decimal("99999999999999999999999999.5"))

    def test_min_max(self) -> None:
        """Test MIN and MAX over text and numbers."""
        assert aggregate(AggregateFunc.MIN, "b", "a", None) == "a"
        assert aggregate(AggregateFunc.MAX, 3, Decimal("3.5"), 2) == Decimal("3.5")

    def test_empty_input(self) -> None:
        """Test aggregates over no rows."""
        assert aggregate(AggregateFunc.COUNT) == 0
        assert aggregate(AggregateFunc.SUM) is None
        assert aggregate(AggregateFunc.MAX, None) is None

    def test_sum_of_text(self) -> None:
        """Test that SUM rejects text."""
        with pytest.raises(TypeMismatch, match="invalid for sum operator"):
            aggregate(AggregateFunc.SUM, "a")

    def test_collect_aggregates(self) -> None:
        """Test that aggregates are collected once each, in order."""
        exprs = [expression("COUNT(*) + 1"), expression("SUM(V)"), expression("COUNT(*)")]
        found = collect_aggregates(exprs)
        assert [str(a) for a in found] == ["COUNT(*)", "SUM(V)"]


@pytest.mark.unit
class TestResolution:
    """Tests for column resolution and grouping checks."""

    @pytest.fixture
    def schema(self) -> RowSchema:
        """A joined row layout with a shared column name."""
        return RowSchema(
            [
                SourceColumn("s", "ID"),
                SourceColumn("s", "NAME"),
                SourceColumn("e", "ID"),
                SourceColumn("e", "GRADE"),
            ]
        )

    def test_qualified(self, schema: RowSchema) -> None:
        """Test qualified references."""
        assert schema.resolve(ColumnRef("ID", "e")) == 2

    def test_unique_unqualified(self, schema: RowSchema) -> None:
        """Test an unqualified name that only one source has."""
        assert schema.resolve(ColumnRef("GRADE")) == 3

    def test_ambiguous(self, schema: RowSchema) -> None:
        """Test an unqualified name that several sources have."""
        with pytest.raises(AmbiguousReference, match="Ambiguous column name 'ID'"):
            schema.resolve(ColumnRef("ID"))

    def test_unknown(self, schema: RowSchema) -> None:
        """Test an unknown column."""
        with pytest.raises(UnknownColumn, match="Invalid column name 'AGE'"):
            schema.resolve(ColumnRef("AGE"))

    def test_bindings(self, schema: RowSchema) -> None:
        """Test bindings in first-seen order."""
        assert schema.bindings == ["s", "e"]
        assert schema.indexes_for("e") == [2, 3]

    def test_grouping_check(self, schema: RowSchema) -> None:
        """Test that only grouped columns may appear outside aggregates."""
        group_by = [expression("s.NAME")]

        check_grouping(expression("UPPER(s.NAME)"), schema, group_by)
        check_grouping(expression("COUNT(e.GRADE)"), schema, group_by)
        with pytest.raises(InvalidGrouping, match="Column 'e.GRADE' is invalid"):
            check_grouping(expression("e.GRADE"), schema, group_by)

"""Expression evaluation for the query executor.

Evaluation follows SQL's three-valued logic: a comparison involving NULL
is *unknown* (represented as ``None``), ``AND``/``OR``/``NOT`` propagate
unknown, and WHERE/HAVING/ON keep a row only when the predicate is true.

Column references are resolved against a :class:`RowSchema`, which knows
which source (table name or alias) contributed each position of a joined
row. In a grouped query, expressions are evaluated against a
:class:`GroupValues` holding the group's key values and aggregate
results instead of a single row.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache

from mock_sql.adapters.inbound.sql_ast import (
    AggregateExpr,
    AggregateFunc,
    ArithmeticExpr,
    ArithmeticOp,
    BetweenExpr,
    CaseExpr,
    CastExpr,
    ColumnExpr,
    ColumnRef,
    ComparisonExpr,
    ComparisonOp,
    DefaultExpr,
    Expression,
    FunctionExpr,
    InExpr,
    LiteralExpr,
    LogicalExpr,
    LogicalOp,
    NegateExpr,
)
from mock_sql.domain.errors import (
    AmbiguousReference,
    DivisionByZero,
    InvalidGrouping,
    SemanticError,
    TypeMismatch,
    UnknownColumn,
)
from mock_sql.domain.value_objects import (
    SIZED_TEXT_TYPES,
    SqlType,
    SqlValue,
    coerce_value,
    compare_values,
    is_numeric,
    render_value,
    type_of,
)

DECIMAL_QUANTUM = Decimal("0.000001")
"""Scale of division and AVG results."""
_DECIMAL_OVERFLOW = "Arithmetic overflow error converting expression to data type DECIMAL."
_DATETIME_OVERFLOW = "Adding a value to a 'datetime' column caused an overflow."


# ----------------------------------------------------------------------
# Name resolution
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class SourceColumn:
    """One position of a (possibly joined) row."""

    binding: str  # table name or alias
    name: str


class RowSchema:
    """Column layout of the rows flowing through a query.

    Resolution is case-sensitive. An unqualified name that matches
    columns of several sources is ambiguous.
    """

    def __init__(self, columns: Sequence[SourceColumn]) -> None:
        self.columns = list(columns)
        self._cache: dict[ColumnRef, int] = {}

    @property
    def bindings(self) -> list[str]:
        seen: list[str] = []
        for column in self.columns:
            if column.binding not in seen:
                seen.append(column.binding)
        return seen

    def indexes_for(self, binding: str) -> list[int]:
        return [i for i, c in enumerate(self.columns) if c.binding == binding]

    def resolve(self, ref: ColumnRef) -> int:
        """Map a column reference to a row position.

        Raises:
            UnknownColumn: If nothing matches.
            AmbiguousReference: If an unqualified name matches several sources.
        """
        cached = self._cache.get(ref)
        if cached is not None:
            return cached

        matches = [
            i
            for i, column in enumerate(self.columns)
            if column.name == ref.name and (ref.table is None or column.binding == ref.table)
        ]
        if not matches:
            raise UnknownColumn(ref.name, ref.table)
        if len(matches) > 1:
            raise AmbiguousReference(f"Ambiguous column name '{ref}'.")
        self._cache[ref] = matches[0]
        return matches[0]

    def __add__(self, other: RowSchema) -> RowSchema:
        return RowSchema([*self.columns, *other.columns])


@dataclass
class GroupValues:
    """Values visible while evaluating an expression for one group.

    Attributes:
        key_columns: Group-by column positions mapped to the group's value.
        key_exprs: Other group-by expressions mapped to the group's value.
        aggregates: Aggregate results for this group.
    """

    key_columns: dict[int, SqlValue] = field(default_factory=dict)
    key_exprs: dict[Expression, SqlValue] = field(default_factory=dict)
    aggregates: dict[AggregateExpr, SqlValue] = field(default_factory=dict)


@dataclass
class Scope:
    """Evaluation context: one row, or one group of rows.

    A projected output row keeps the scope it was computed from in
    ``origin`` so ORDER BY can still reach source columns.
    """

    schema: RowSchema
    values: Sequence[SqlValue] = ()
    group: GroupValues | None = None
    origin: Scope | None = None


# ----------------------------------------------------------------------
# Expression walking
# ----------------------------------------------------------------------


def children(expr: Expression) -> list[Expression]:
    """Return the direct sub-expressions of an expression."""
    if isinstance(expr, ComparisonExpr):
        return [expr.left] if expr.right is None else [expr.left, expr.right]
    if isinstance(expr, LogicalExpr):
        return list(expr.operands)
    if isinstance(expr, InExpr):
        return [expr.operand, *expr.items]
    if isinstance(expr, BetweenExpr):
        return [expr.operand, expr.low, expr.high]
    if isinstance(expr, ArithmeticExpr):
        return [expr.left, expr.right]
    if isinstance(expr, NegateExpr):
        return [expr.operand]
    if isinstance(expr, FunctionExpr):
        return list(expr.args)
    if isinstance(expr, AggregateExpr):
        return [] if expr.arg is None else [expr.arg]
    if isinstance(expr, CaseExpr):
        nested: list[Expression] = [] if expr.operand is None else [expr.operand]
        for condition, result in expr.whens:
            nested.extend((condition, result))
        if expr.default is not None:
            nested.append(expr.default)
        return nested
    if isinstance(expr, CastExpr):
        return [expr.operand]
    return []


def collect_aggregates(exprs: Iterable[Expression | None]) -> list[AggregateExpr]:
    """Collect distinct aggregate sub-expressions in first-seen order."""
    found: list[AggregateExpr] = []

    def visit(expr: Expression) -> None:
        if isinstance(expr, AggregateExpr):
            if expr not in found:
                found.append(expr)
            return
        for child in children(expr):
            visit(child)

    for expr in exprs:
        if expr is not None:
            visit(expr)
    return found


def check_grouping(expr: Expression, schema: RowSchema, group_by: Sequence[Expression]) -> None:
    """Reject column references outside the GROUP BY and any aggregate.

    Raises:
        InvalidGrouping: For the first offending column.
    """
    key_columns = {schema.resolve(g.column) for g in group_by if isinstance(g, ColumnExpr)}

    def visit(node: Expression) -> None:
        if isinstance(node, AggregateExpr) or node in group_by:
            return
        if isinstance(node, ColumnExpr):
            if schema.resolve(node.column) not in key_columns:
                raise InvalidGrouping(
                    f"Column '{node.column}' is invalid in the select list because it is not "
                    "contained in either an aggregate function or the GROUP BY clause."
                )
            return
        for child in children(node):
            visit(child)

    visit(expr)


# ----------------------------------------------------------------------
# LIKE
# ----------------------------------------------------------------------


@lru_cache(maxsize=256)
def like_pattern(pattern: str) -> re.Pattern[str]:
    """Translate a LIKE pattern (``%``, ``_``, ``[abc]``, ``[a-z]``, ``[^a]``) to a regex.

    An unterminated ``[`` and an empty set (``[]``, ``[^]``) match literally.

    Raises:
        SemanticError: If a set contains a reversed range such as ``[z-a]``.
    """
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        elif char == "[":
            end = pattern.find("]", i + 1)
            body = pattern[i + 1 : end] if end != -1 else ""
            negate = body.startswith("^")
            if negate:
                body = body[1:]
            if end == -1:
                parts.append(re.escape(char))
            elif not body:
                parts.append(re.escape(pattern[i : end + 1]))
                i = end
            else:
                escaped = "".join(
                    c if c == "-" and 0 < k < len(body) - 1 else re.escape(c)
                    for k, c in enumerate(body)
                )
                parts.append(f"[{'^' if negate else ''}{escaped}]")
                i = end
        else:
            parts.append(re.escape(char))
        i += 1
    try:
        return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)
    except re.error as e:
        raise SemanticError(f"Invalid LIKE pattern '{pattern}': {e}.") from None


# ----------------------------------------------------------------------
# Arithmetic helpers
# ----------------------------------------------------------------------


def _numeric(value: SqlValue, op: str) -> int | Decimal:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, Decimal)):
        return value
    if isinstance(value, str):
        try:
            return coerce_value(value, SqlType.INTEGER)  # type: ignore[return-value]
        except TypeMismatch:
            return coerce_value(value, SqlType.DECIMAL)  # type: ignore[return-value]
    raise TypeMismatch(
        f"Operand type clash: {type_of(value).value} is incompatible with operator '{op}'."  # type: ignore[union-attr]
    )


def _quantize(value: Decimal) -> Decimal:
    """Round a computed DECIMAL to the engine's fixed scale."""
    try:
        return value.quantize(DECIMAL_QUANTUM, rounding=ROUND_HALF_UP)
    except ArithmeticError:
        raise TypeMismatch(_DECIMAL_OVERFLOW) from None


def _divide(left: int | Decimal, right: int | Decimal) -> int | Decimal:
    if right == 0:
        raise DivisionByZero()
    if isinstance(left, int) and isinstance(right, int):
        quotient = abs(left) // abs(right)
        return quotient if (left >= 0) == (right >= 0) else -quotient
    return _quantize(Decimal(left) / Decimal(right))


def _modulo(left: int | Decimal, right: int | Decimal) -> int | Decimal:
    if right == 0:
        raise DivisionByZero()
    if isinstance(left, int) and isinstance(right, int):
        remainder = abs(left) % abs(right)
        return remainder if left >= 0 else -remainder
    # Decimal remainder takes the sign of the dividend.
    return Decimal(left) % Decimal(right)


def _round(value: int | Decimal, digits: int) -> int | Decimal:
    scale = 0 if isinstance(value, int) else -value.as_tuple().exponent
    if digits >= scale:
        return value
    try:
        rounded = Decimal(value).quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP)
    except ArithmeticError:
        raise TypeMismatch(_DECIMAL_OVERFLOW) from None
    if isinstance(value, int):
        return int(rounded)
    return rounded


def _text(value: SqlValue) -> str:
    return coerce_value(value, SqlType.TEXT)  # type: ignore[return-value]


# ----------------------------------------------------------------------
# Evaluator
# ----------------------------------------------------------------------


class ExpressionEvaluator:
    """Evaluates expression trees against a scope.

    Args:
        now: Value of ``GETDATE()`` / ``CURRENT_TIMESTAMP``; fixed per
            statement so every row sees the same timestamp.
    """

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime.now()

    def is_true(self, expr: Expression, scope: Scope) -> bool:
        """Evaluate a predicate; unknown counts as false."""
        return self.evaluate(expr, scope) is True

    def evaluate(self, expr: Expression, scope: Scope) -> SqlValue:
        """Evaluate an expression.

        Raises:
            UnknownColumn, AmbiguousReference: On unresolvable names.
            TypeMismatch: On incompatible operands.
            DivisionByZero: On ``/`` or ``%`` by zero.
        """
        group = scope.group
        if group is not None and expr in group.key_exprs:
            return group.key_exprs[expr]

        if isinstance(expr, LiteralExpr):
            return expr.literal.value
        if isinstance(expr, ColumnExpr):
            return self._column(expr, scope)
        if isinstance(expr, ComparisonExpr):
            return self._comparison(expr, scope)
        if isinstance(expr, LogicalExpr):
            return self._logical(expr, scope)
        if isinstance(expr, InExpr):
            return self._in(expr, scope)
        if isinstance(expr, BetweenExpr):
            return self._between(expr, scope)
        if isinstance(expr, ArithmeticExpr):
            return self._arithmetic(expr, scope)
        if isinstance(expr, NegateExpr):
            value = self.evaluate(expr.operand, scope)
            if value is None:
                return None
            return -_numeric(value, "-")
        if isinstance(expr, FunctionExpr):
            return self._function(expr, scope)
        if isinstance(expr, CaseExpr):
            return self._case(expr, scope)
        if isinstance(expr, CastExpr):
            return self.cast(self.evaluate(expr.operand, scope), expr.target.name, expr.target.args)
        if isinstance(expr, AggregateExpr):
            if group is None or expr not in group.aggregates:
                raise SemanticError(f"Aggregate {expr} is not allowed in this context.")
            return group.aggregates[expr]
        if isinstance(expr, DefaultExpr):
            raise SemanticError("DEFAULT is only allowed in an INSERT value list.")
        raise SemanticError(f"Unsupported expression: {expr}")

    # -- leaves -------------------------------------------------------

    def _column(self, expr: ColumnExpr, scope: Scope) -> SqlValue:
        if expr.is_star:
            raise SemanticError("'*' is only allowed in the select list or COUNT(*).")
        index = scope.schema.resolve(expr.column)
        if scope.group is not None:
            if index not in scope.group.key_columns:
                raise InvalidGrouping(
                    f"Column '{expr.column}' is invalid in the select list because it is not "
                    "contained in either an aggregate function or the GROUP BY clause."
                )
            return scope.group.key_columns[index]
        return scope.values[index]

    # -- predicates ---------------------------------------------------

    def _comparison(self, expr: ComparisonExpr, scope: Scope) -> bool | None:
        left = self.evaluate(expr.left, scope)
        if expr.op is ComparisonOp.IS_NULL:
            return left is None
        if expr.op is ComparisonOp.IS_NOT_NULL:
            return left is not None
        assert expr.right is not None
        right = self.evaluate(expr.right, scope)
        if left is None or right is None:
            return None

        if expr.op in (ComparisonOp.LIKE, ComparisonOp.NOT_LIKE):
            matched = like_pattern(_text(right)).fullmatch(_text(left)) is not None
            return matched if expr.op is ComparisonOp.LIKE else not matched

        result = compare_values(left, right)
        if expr.op is ComparisonOp.EQ:
            return result == 0
        if expr.op is ComparisonOp.NE:
            return result != 0
        if expr.op is ComparisonOp.LT:
            return result < 0
        if expr.op is ComparisonOp.LE:
            return result <= 0
        if expr.op is ComparisonOp.GT:
            return result > 0
        return result >= 0

    def _logical(self, expr: LogicalExpr, scope: Scope) -> bool | None:
        if expr.op is LogicalOp.NOT:
            value = self._truth(self.evaluate(expr.operands[0], scope))
            return None if value is None else not value

        unknown = False
        for operand in expr.operands:
            value = self._truth(self.evaluate(operand, scope))
            if value is None:
                unknown = True
            elif expr.op is LogicalOp.AND and not value:
                return False
            elif expr.op is LogicalOp.OR and value:
                return True
        if unknown:
            return None
        return expr.op is LogicalOp.AND

    @staticmethod
    def _truth(value: SqlValue) -> bool | None:
        if value is None or isinstance(value, bool):
            return value
        raise TypeMismatch(
            f"An expression of non-boolean type {type_of(value).value} "  # type: ignore[union-attr]
            "specified in a context where a condition is expected."
        )

    def _in(self, expr: InExpr, scope: Scope) -> bool | None:
        operand = self.evaluate(expr.operand, scope)
        if operand is None:
            return None
        unknown = False
        for item in expr.items:
            value = self.evaluate(item, scope)
            if value is None:
                unknown = True
            elif compare_values(operand, value) == 0:
                return not expr.negated
        if unknown:
            return None
        return expr.negated

    def _between(self, expr: BetweenExpr, scope: Scope) -> bool | None:
        operand = self.evaluate(expr.operand, scope)
        low = self.evaluate(expr.low, scope)
        high = self.evaluate(expr.high, scope)
        lower = None if operand is None or low is None else compare_values(operand, low) >= 0
        upper = None if operand is None or high is None else compare_values(operand, high) <= 0
        if lower is False or upper is False:
            result: bool | None = False
        elif lower is None or upper is None:
            result = None
        else:
            result = True
        if result is None or not expr.negated:
            return result
        return not result

    # -- arithmetic ---------------------------------------------------

    def _arithmetic(self, expr: ArithmeticExpr, scope: Scope) -> SqlValue:
        left = self.evaluate(expr.left, scope)
        right = self.evaluate(expr.right, scope)
        if left is None or right is None:
            return None
        op = expr.op

        if op is ArithmeticOp.ADD and isinstance(left, str) and isinstance(right, str):
            return left + right
        if isinstance(left, datetime) and op in (ArithmeticOp.ADD, ArithmeticOp.SUB):
            days = _numeric(right, op.value)
            try:
                delta = timedelta(days=float(days))
                return left + delta if op is ArithmeticOp.ADD else left - delta
            except OverflowError:
                raise TypeMismatch(_DATETIME_OVERFLOW) from None

        a = _numeric(left, op.value)
        b = _numeric(right, op.value)
        if isinstance(a, Decimal) or isinstance(b, Decimal):
            a, b = Decimal(a), Decimal(b)
        if op is ArithmeticOp.ADD:
            return a + b
        if op is ArithmeticOp.SUB:
            return a - b
        if op is ArithmeticOp.MUL:
            return a * b
        if op is ArithmeticOp.DIV:
            return _divide(a, b)
        return _modulo(a, b)

    # -- functions ----------------------------------------------------

    def _function(self, expr: FunctionExpr, scope: Scope) -> SqlValue:
        name = expr.name
        if name in ("GETDATE", "CURRENT_TIMESTAMP"):
            return self.now
        if name == "CONCAT":
            return "".join(
                "" if value is None else _text(value)
                for value in (self.evaluate(arg, scope) for arg in expr.args)
            )
        if name == "COALESCE" or name == "ISNULL":
            for arg in expr.args:
                value = self.evaluate(arg, scope)
                if value is not None:
                    return value
            return None

        args = [self.evaluate(arg, scope) for arg in expr.args]
        if any(arg is None for arg in args):
            return None

        if name == "UPPER":
            return _text(args[0]).upper()
        if name == "LOWER":
            return _text(args[0]).lower()
        if name == "LEN":
            return len(_text(args[0]).rstrip(" "))
        if name == "LTRIM":
            return _text(args[0]).lstrip(" ")
        if name == "RTRIM":
            return _text(args[0]).rstrip(" ")
        if name == "TRIM":
            return _text(args[0]).strip(" ")
        if name == "SUBSTRING":
            text = _text(args[0])
            start = int(_numeric(args[1], name))
            length = int(_numeric(args[2], name))
            if length < 0:
                raise SemanticError("Invalid length parameter passed to the SUBSTRING function.")
            begin = max(start, 1) - 1
            end = max(start + length, 1) - 1
            return text[begin:end]
        if name == "REPLACE":
            text, find, replacement = (_text(a) for a in args)
            if not find:
                return text
            return re.sub(re.escape(find), lambda _: replacement, text, flags=re.IGNORECASE)
        if name == "ROUND":
            value = _numeric(args[0], name)
            digits = int(_numeric(args[1], name)) if len(args) > 1 else 0
            return _round(value, digits)
        if name == "ABS":
            return abs(_numeric(args[0], name))
        if name in ("YEAR", "MONTH", "DAY"):
            moment = coerce_value(args[0], SqlType.DATETIME)
            return getattr(moment, name.lower())
        raise SemanticError(f"'{name}' is not a recognized built-in function name.")

    def _case(self, expr: CaseExpr, scope: Scope) -> SqlValue:
        if expr.operand is not None:
            subject = self.evaluate(expr.operand, scope)
            for candidate, result in expr.whens:
                value = self.evaluate(candidate, scope)
                if subject is not None and value is not None and compare_values(subject, value) == 0:
                    return self.evaluate(result, scope)
        else:
            for condition, result in expr.whens:
                if self._truth(self.evaluate(condition, scope)):
                    return self.evaluate(result, scope)
        if expr.default is not None:
            return self.evaluate(expr.default, scope)
        return None

    # -- conversion ---------------------------------------------------

    @staticmethod
    def cast(value: SqlValue, type_name: str, args: Sequence[int] = ()) -> SqlValue:
        """Explicit conversion with CAST/CONVERT semantics.

        Unlike column coercion, an explicit cast truncates: decimals cast
        to an integer type lose their fraction and text cast to a sized
        text type is cut to length.
        """
        if value is None:
            return None
        target = SqlType.from_declared(type_name)
        if target is SqlType.INTEGER and isinstance(value, Decimal):
            return int(value)
        if target is SqlType.BOOLEAN and is_numeric(value) and not isinstance(value, bool):
            return value != 0
        converted = coerce_value(value, target)
        if target is SqlType.TEXT and type_name in SIZED_TEXT_TYPES:
            size = args[0] if args else 30
            return converted[:size]  # type: ignore[index]
        if target is SqlType.DECIMAL and len(args) == 2 and isinstance(converted, Decimal):
            try:
                return converted.quantize(Decimal(1).scaleb(-args[1]), rounding=ROUND_HALF_UP)
            except ArithmeticError:
                raise TypeMismatch(
                    f"Arithmetic overflow error converting {render_value(value)} to {type_name}."
                ) from None
        return converted

    # -- aggregates ---------------------------------------------------

    def aggregate(self, expr: AggregateExpr, scopes: Sequence[Scope]) -> SqlValue:
        """Compute an aggregate over the rows of one group."""
        if expr.arg is None:
            return len(scopes)

        values = [self.evaluate(expr.arg, scope) for scope in scopes]
        values = [v for v in values if v is not None]
        if expr.distinct:
            unique: list[SqlValue] = []
            for value in values:
                if not any(compare_values(value, seen) == 0 for seen in unique):
                    unique.append(value)
            values = unique

        func = expr.func
        if func is AggregateFunc.COUNT:
            return len(values)
        if not values:
            return None
        if func in (AggregateFunc.SUM, AggregateFunc.AVG):
            for value in values:
                if not is_numeric(value) or isinstance(value, bool):
                    raise TypeMismatch(
                        f"Operand data type {type_of(value).value} is invalid for "  # type: ignore[union-attr]
                        f"{func.value.lower()} operator."
                    )
            total = sum(values)  # type: ignore[arg-type]
            if func is AggregateFunc.SUM:
                return total
            return _quantize(Decimal(total) / len(values))

        best = values[0]
        for value in values[1:]:
            order = compare_values(value, best)
            if (func is AggregateFunc.MIN and order < 0) or (func is AggregateFunc.MAX and order > 0):
                best = value
        return best

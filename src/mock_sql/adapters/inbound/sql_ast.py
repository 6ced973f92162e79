"""Statement and expression nodes produced by the SQL parser.

Expressions are immutable and hashable so the executor can use them as
keys when it collects aggregates and matches GROUP BY expressions.
``str()`` of an expression renders SQL text; the executor uses it to name
unaliased output columns (``COUNT(*)``, ``UPPER(NAME)``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

from mock_sql.domain.value_objects import SqlType, SqlValue, render_value


class StatementType(Enum):
    """Types of SQL statements."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    CREATE_TABLE = "create_table"
    DROP_TABLE = "drop_table"
    ALTER_TABLE = "alter_table"
    USE = "use"
    DATABASE_DDL = "database_ddl"


class ComparisonOp(Enum):
    """Comparison operators for predicates."""

    EQ = "="
    NE = "<>"
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"


class LogicalOp(Enum):
    """Logical operators for combining predicates."""

    AND = "AND"
    OR = "OR"
    NOT = "NOT"


class ArithmeticOp(Enum):
    """Binary arithmetic operators (``+`` also concatenates text)."""

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"

    @property
    def precedence(self) -> int:
        return 1 if self in (ArithmeticOp.ADD, ArithmeticOp.SUB) else 2


class AggregateFunc(Enum):
    """Aggregate functions."""

    COUNT = "COUNT"
    SUM = "SUM"
    AVG = "AVG"
    MIN = "MIN"
    MAX = "MAX"


class JoinType(Enum):
    """Join kinds."""

    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"
    CROSS = "CROSS"


# ----------------------------------------------------------------------
# Expressions
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class ColumnRef:
    """Reference to a column, optionally qualified with a table name or alias."""

    name: str
    table: str | None = None

    def __str__(self) -> str:
        if self.table:
            return f"{self.table}.{self.name}"
        return self.name


@dataclass(frozen=True)
class Literal:
    """A literal value."""

    value: SqlValue
    data_type: SqlType | None = None


@dataclass(frozen=True)
class Expression(ABC):
    """Base class for expressions."""

    @abstractmethod
    def __str__(self) -> str:
        pass


@dataclass(frozen=True)
class ColumnExpr(Expression):
    """Column reference expression; ``*`` or ``t.*`` in a select list."""

    column: ColumnRef

    @property
    def is_star(self) -> bool:
        return self.column.name == "*"

    def __str__(self) -> str:
        return str(self.column)


@dataclass(frozen=True)
class LiteralExpr(Expression):
    """Literal value expression."""

    literal: Literal

    def __str__(self) -> str:
        if isinstance(self.literal.value, bool):
            return "TRUE" if self.literal.value else "FALSE"
        return render_value(self.literal.value)


@dataclass(frozen=True)
class ComparisonExpr(Expression):
    """Comparison expression (e.g., col = value)."""

    left: Expression
    op: ComparisonOp
    right: Expression | None = None  # None for IS NULL / IS NOT NULL

    def __str__(self) -> str:
        if self.right is None:
            return f"{self.left} {self.op.value}"
        return f"{self.left} {self.op.value} {self.right}"


@dataclass(frozen=True)
class LogicalExpr(Expression):
    """Logical expression combining other expressions."""

    op: LogicalOp
    operands: tuple[Expression, ...] = ()

    def __str__(self) -> str:
        if self.op == LogicalOp.NOT:
            return f"NOT ({self.operands[0]})"
        op_str = f" {self.op.value} "
        return f"({op_str.join(str(o) for o in self.operands)})"


@dataclass(frozen=True)
class InExpr(Expression):
    """``expr [NOT] IN (v1, v2, ...)``."""

    operand: Expression
    items: tuple[Expression, ...]
    negated: bool = False

    def __str__(self) -> str:
        keyword = "NOT IN" if self.negated else "IN"
        return f"{self.operand} {keyword} ({', '.join(str(i) for i in self.items)})"


@dataclass(frozen=True)
class BetweenExpr(Expression):
    """``expr [NOT] BETWEEN low AND high``."""

    operand: Expression
    low: Expression
    high: Expression
    negated: bool = False

    def __str__(self) -> str:
        keyword = "NOT BETWEEN" if self.negated else "BETWEEN"
        return f"{self.operand} {keyword} {self.low} AND {self.high}"


@dataclass(frozen=True)
class ArithmeticExpr(Expression):
    """Binary arithmetic expression."""

    op: ArithmeticOp
    left: Expression
    right: Expression

    def __str__(self) -> str:
        left = _wrap(self.left, self.op.precedence, right_side=False)
        right = _wrap(self.right, self.op.precedence, right_side=True)
        return f"{left} {self.op.value} {right}"


@dataclass(frozen=True)
class NegateExpr(Expression):
    """Unary minus."""

    operand: Expression

    def __str__(self) -> str:
        if isinstance(self.operand, ArithmeticExpr):
            return f"-({self.operand})"
        return f"-{self.operand}"


def _wrap(expr: Expression, precedence: int, right_side: bool) -> str:
    if isinstance(expr, ArithmeticExpr):
        inner = expr.op.precedence
        if inner < precedence or (right_side and inner == precedence):
            return f"({expr})"
    return str(expr)


@dataclass(frozen=True)
class FunctionExpr(Expression):
    """Scalar function call, e.g. ``UPPER(NAME)``."""

    name: str
    args: tuple[Expression, ...] = ()

    def __str__(self) -> str:
        if self.name == "CURRENT_TIMESTAMP":
            return self.name
        return f"{self.name}({', '.join(str(a) for a in self.args)})"


@dataclass(frozen=True)
class AggregateExpr(Expression):
    """Aggregate function expression."""

    func: AggregateFunc
    arg: Expression | None = None  # None for COUNT(*)
    distinct: bool = False

    def __str__(self) -> str:
        if self.arg is None:
            return f"{self.func.value}(*)"
        distinct_str = "DISTINCT " if self.distinct else ""
        return f"{self.func.value}({distinct_str}{self.arg})"


@dataclass(frozen=True)
class CaseExpr(Expression):
    """Simple (``CASE x WHEN ...``) or searched (``CASE WHEN ...``) CASE."""

    whens: tuple[tuple[Expression, Expression], ...]
    operand: Expression | None = None
    default: Expression | None = None

    def __str__(self) -> str:
        parts = ["CASE"]
        if self.operand is not None:
            parts.append(str(self.operand))
        for condition, result in self.whens:
            parts.append(f"WHEN {condition} THEN {result}")
        if self.default is not None:
            parts.append(f"ELSE {self.default}")
        parts.append("END")
        return " ".join(parts)


@dataclass(frozen=True)
class TypeSpec:
    """A declared type such as ``VARCHAR(50)`` or ``DECIMAL(10, 2)``."""

    name: str
    args: tuple[int, ...] = ()

    @property
    def sql_type(self) -> SqlType:
        return SqlType.from_declared(self.name)

    def __str__(self) -> str:
        if self.args:
            return f"{self.name}({', '.join(str(a) for a in self.args)})"
        return self.name


@dataclass(frozen=True)
class CastExpr(Expression):
    """``CAST(expr AS type)``; ``CONVERT(type, expr)`` parses to the same node."""

    operand: Expression
    target: TypeSpec

    def __str__(self) -> str:
        return f"CAST({self.operand} AS {self.target})"


@dataclass(frozen=True)
class DefaultExpr(Expression):
    """The ``DEFAULT`` keyword in an INSERT value list."""

    def __str__(self) -> str:
        return "DEFAULT"


# ----------------------------------------------------------------------
# Clauses
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class SelectItem:
    """An item in a SELECT list."""

    expr: Expression
    alias: str | None = None


@dataclass(frozen=True)
class OrderByItem:
    """An item in an ORDER BY clause."""

    expr: Expression
    ascending: bool = True


@dataclass(frozen=True)
class TableRef:
    """A table in FROM/JOIN, optionally database-qualified and aliased."""

    name: str
    alias: str | None = None
    database: str | None = None

    @property
    def binding(self) -> str:
        """The name columns use to qualify this source."""
        return self.alias or self.name

    def __str__(self) -> str:
        text = f"{self.database}..{self.name}" if self.database else self.name
        if self.alias:
            return f"{text} AS {self.alias}"
        return text


@dataclass(frozen=True)
class Join:
    """A join step in a FROM clause."""

    join_type: JoinType
    table: TableRef
    condition: Expression | None = None


@dataclass(frozen=True)
class ColumnSpec:
    """Column definition as written in CREATE TABLE / ALTER TABLE ADD."""

    name: str
    type_spec: TypeSpec
    nullable: bool = True
    primary_key: bool = False
    identity: tuple[int, int] | None = None
    default: Expression | None = None


# ----------------------------------------------------------------------
# Statement plans
# ----------------------------------------------------------------------


@dataclass
class LogicalPlan(ABC):
    """Base class for parsed statements."""

    @property
    @abstractmethod
    def statement_type(self) -> StatementType:
        pass


@dataclass
class SelectPlan(LogicalPlan):
    """A SELECT query."""

    items: list[SelectItem]
    source: TableRef | None = None
    joins: list[Join] = field(default_factory=list)
    where: Expression | None = None
    group_by: list[Expression] = field(default_factory=list)
    having: Expression | None = None
    order_by: list[OrderByItem] = field(default_factory=list)
    distinct: bool = False
    limit: int | None = None
    offset: int = 0

    @property
    def statement_type(self) -> StatementType:
        return StatementType.SELECT


@dataclass
class InsertPlan(LogicalPlan):
    """Insert literal rows or the result of a query into a table."""

    table: TableRef
    columns: list[str] | None = None
    values: list[list[Expression]] = field(default_factory=list)
    query: SelectPlan | None = None

    @property
    def statement_type(self) -> StatementType:
        return StatementType.INSERT


@dataclass
class UpdatePlan(LogicalPlan):
    """Update rows in a table."""

    table: TableRef
    assignments: dict[str, Expression]
    predicate: Expression | None = None

    @property
    def statement_type(self) -> StatementType:
        return StatementType.UPDATE


@dataclass
class DeletePlan(LogicalPlan):
    """Delete rows from a table."""

    table: TableRef
    predicate: Expression | None = None

    @property
    def statement_type(self) -> StatementType:
        return StatementType.DELETE


@dataclass
class CreateTablePlan(LogicalPlan):
    """Create a new table."""

    table: TableRef
    columns: list[ColumnSpec]
    primary_key: list[str] = field(default_factory=list)

    @property
    def statement_type(self) -> StatementType:
        return StatementType.CREATE_TABLE


@dataclass
class DropTablePlan(LogicalPlan):
    """Drop a table."""

    table: TableRef
    if_exists: bool = False

    @property
    def statement_type(self) -> StatementType:
        return StatementType.DROP_TABLE


@dataclass
class AlterTablePlan(LogicalPlan):
    """Add or drop one column."""

    table: TableRef
    add_column: ColumnSpec | None = None
    drop_column: str | None = None

    @property
    def statement_type(self) -> StatementType:
        return StatementType.ALTER_TABLE


@dataclass
class UsePlan(LogicalPlan):
    """Switch the session's current database."""

    database: str

    @property
    def statement_type(self) -> StatementType:
        return StatementType.USE


@dataclass
class DatabaseDDLPlan(LogicalPlan):
    """``CREATE DATABASE`` / ``DROP DATABASE``, which the sandbox refuses."""

    action: str
    database: str

    @property
    def statement_type(self) -> StatementType:
        return StatementType.DATABASE_DDL

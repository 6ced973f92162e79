"""SQL Parser for the T-SQL teaching subset.

This module turns a batch of SQL text into a list of statement plans. The
text is tokenized by :mod:`mock_sql.adapters.inbound.sql_lexer` (which
delegates to sqlparse) and parsed by recursive descent. The whole batch is
parsed before anything executes, so a syntax error anywhere means no
statement runs.

Supported statements:
    - SELECT (DISTINCT, TOP, joins, WHERE, GROUP BY, HAVING, ORDER BY,
      LIMIT/OFFSET and OFFSET ... FETCH)
    - INSERT (VALUES rows, DEFAULT VALUES, or a SELECT)
    - UPDATE
    - DELETE
    - CREATE TABLE / DROP TABLE / ALTER TABLE (ADD, DROP COLUMN)
    - USE

Keywords are case-insensitive; identifiers keep their case and may be
written bare, ``[bracketed]`` or ``"double-quoted"``.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal

from mock_sql.adapters.inbound.sql_ast import (
    AggregateExpr,
    AggregateFunc,
    AlterTablePlan,
    ArithmeticExpr,
    ArithmeticOp,
    BetweenExpr,
    CaseExpr,
    CastExpr,
    ColumnExpr,
    ColumnRef,
    ColumnSpec,
    ComparisonExpr,
    ComparisonOp,
    CreateTablePlan,
    DatabaseDDLPlan,
    DefaultExpr,
    DeletePlan,
    DropTablePlan,
    Expression,
    FunctionExpr,
    InExpr,
    InsertPlan,
    Join,
    JoinType,
    Literal,
    LiteralExpr,
    LogicalExpr,
    LogicalOp,
    LogicalPlan,
    NegateExpr,
    OrderByItem,
    SelectItem,
    SelectPlan,
    TableRef,
    TypeSpec,
    UpdatePlan,
    UsePlan,
)
from mock_sql.adapters.inbound.sql_lexer import Token, TokenKind, tokenize
from mock_sql.domain.errors import SQLSyntaxError
from mock_sql.domain.value_objects import SqlType

RESERVED_WORDS = frozenset(
    {
        "ADD", "ALL", "ALTER", "AND", "AS", "ASC", "BETWEEN", "BY", "CASE", "CHECK",
        "COLUMN", "CONSTRAINT", "CREATE", "CROSS", "DATABASE", "DEFAULT", "DELETE",
        "DESC", "DISTINCT", "DROP", "ELSE", "END", "EXCEPT", "EXISTS", "FETCH",
        "FOREIGN", "FROM", "FULL", "GROUP", "HAVING", "IN", "INNER", "INSERT",
        "INTERSECT", "INTO", "IS", "JOIN", "LEFT", "LIKE", "LIMIT", "NOT", "NULL",
        "OFFSET", "ON", "OR", "ORDER", "OUTER", "PRIMARY", "REFERENCES", "RIGHT",
        "SELECT", "SET", "TABLE", "THEN", "TOP", "UNION", "UNIQUE", "UPDATE", "USE",
        "VALUES", "WHEN", "WHERE",
    }
)

STATEMENT_KEYWORDS = frozenset(
    {"SELECT", "INSERT", "UPDATE", "DELETE", "CREATE", "DROP", "ALTER", "USE"}
)

SCALAR_FUNCTIONS: dict[str, tuple[int, int | None]] = {
    # name: (min args, max args or None for variadic)
    "UPPER": (1, 1),
    "LOWER": (1, 1),
    "LEN": (1, 1),
    "LTRIM": (1, 1),
    "RTRIM": (1, 1),
    "TRIM": (1, 1),
    "SUBSTRING": (3, 3),
    "CONCAT": (2, None),
    "REPLACE": (3, 3),
    "ROUND": (1, 2),
    "ABS": (1, 1),
    "ISNULL": (2, 2),
    "COALESCE": (1, None),
    "YEAR": (1, 1),
    "MONTH": (1, 1),
    "DAY": (1, 1),
    "GETDATE": (0, 0),
    "CURRENT_TIMESTAMP": (0, 0),
}

_COMPARISONS = {
    "=": ComparisonOp.EQ,
    "<>": ComparisonOp.NE,
    "!=": ComparisonOp.NE,
    "<": ComparisonOp.LT,
    "<=": ComparisonOp.LE,
    "!>": ComparisonOp.LE,
    ">": ComparisonOp.GT,
    ">=": ComparisonOp.GE,
    "!<": ComparisonOp.GE,
}

_ARITHMETIC = {
    "+": ArithmeticOp.ADD,
    "-": ArithmeticOp.SUB,
    "/": ArithmeticOp.DIV,
    "%": ArithmeticOp.MOD,
}

_JOIN_STARTERS = frozenset({"JOIN", "INNER", "LEFT", "RIGHT", "FULL", "CROSS"})

_NUMERIC_TYPES = (SqlType.INTEGER, SqlType.DECIMAL)

MAX_NUMERIC_PRECISION = 38


class SQLParser:
    """Recursive descent parser for the supported T-SQL subset.

    Example:
        >>> parser = SQLParser()
        >>> [plan] = parser.parse("SELECT NAME FROM STUDENTS WHERE GPA > 3.5")
        >>> plan.where
        ComparisonExpr(left=ColumnExpr(...), op=<ComparisonOp.GT: '>'>, ...)
    """

    def __init__(self) -> None:
        self._tokens: list[Token] = []
        self._pos = 0
        self._aggregates_allowed = False
        self._in_aggregate = False

    def parse(self, sql: str) -> list[LogicalPlan]:
        """Parse a batch of SQL statements.

        Args:
            sql: One or more statements separated by ``;``.

        Returns:
            The statement plans in source order; empty statements are
            skipped, so blank input yields an empty list.

        Raises:
            SQLSyntaxError: If any statement in the batch is malformed.
        """
        self._tokens = tokenize(sql)
        self._pos = 0
        self._aggregates_allowed = False
        self._in_aggregate = False

        plans: list[LogicalPlan] = []
        while not self._at_end():
            if self._peek().is_punct(";"):
                self._advance()
                continue
            plans.append(self._parse_statement())
            token = self._peek()
            if token.is_punct(";") or token.kind is TokenKind.EOF:
                continue
            if token.is_word(*STATEMENT_KEYWORDS):
                # T-SQL allows statements to follow each other without ';'.
                continue
            raise self._error("Expected ';' or end of statement.", token)
        return plans

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------

    def _peek(self, ahead: int = 0) -> Token:
        index = min(self._pos + ahead, len(self._tokens) - 1)
        return self._tokens[index]

    def _advance(self) -> Token:
        token = self._tokens[self._pos]
        if token.kind is not TokenKind.EOF:
            self._pos += 1
        return token

    def _at_end(self) -> bool:
        return self._peek().kind is TokenKind.EOF

    def _error(self, detail: str, token: Token | None = None) -> SQLSyntaxError:
        token = token or self._peek()
        return SQLSyntaxError(detail, token.text, token.line, token.column)

    def _match_word(self, *words: str) -> Token | None:
        if self._peek().is_word(*words):
            return self._advance()
        return None

    def _expect_word(self, *words: str) -> Token:
        token = self._match_word(*words)
        if token is None:
            raise self._error(f"Expected {' or '.join(words)}.")
        return token

    def _match_punct(self, char: str) -> bool:
        if self._peek().is_punct(char):
            self._advance()
            return True
        return False

    def _expect_punct(self, char: str) -> None:
        if not self._match_punct(char):
            raise self._error(f"Expected '{char}'.")

    def _is_identifier(self, token: Token) -> bool:
        if token.kind is TokenKind.QUOTED_IDENT:
            return bool(token.value)
        return token.kind is TokenKind.WORD and token.upper not in RESERVED_WORDS

    def _expect_identifier(self, what: str = "identifier") -> str:
        token = self._peek()
        if not self._is_identifier(token):
            raise self._error(f"Expected {what}.")
        self._advance()
        return token.value

    def _expect_integer(self, what: str = "integer") -> int:
        negative = False
        if self._peek().is_op("-"):
            self._advance()
            negative = True
        token = self._peek()
        if token.kind is not TokenKind.NUMBER or not token.value.isdigit():
            raise self._error(f"Expected {what}.")
        self._advance()
        self._check_precision(token)
        value = int(token.value)
        return -value if negative else value

    def _check_precision(self, token: Token) -> None:
        if len(token.value.replace(".", "").lstrip("0")) > MAX_NUMERIC_PRECISION:
            raise self._error(
                "The number is out of the range for numeric representation "
                f"(maximum precision {MAX_NUMERIC_PRECISION}).",
                token,
            )

    @contextmanager
    def _aggregate_scope(self, allowed: bool) -> Iterator[None]:
        saved = self._aggregates_allowed
        self._aggregates_allowed = allowed
        try:
            yield
        finally:
            self._aggregates_allowed = saved

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _parse_statement(self) -> LogicalPlan:
        token = self._peek()
        keyword = token.upper if token.kind is TokenKind.WORD else ""
        if keyword == "SELECT":
            return self._parse_select()
        if keyword == "INSERT":
            return self._parse_insert()
        if keyword == "UPDATE":
            return self._parse_update()
        if keyword == "DELETE":
            return self._parse_delete()
        if keyword == "CREATE":
            return self._parse_create()
        if keyword == "DROP":
            return self._parse_drop()
        if keyword == "ALTER":
            return self._parse_alter()
        if keyword == "USE":
            self._advance()
            return UsePlan(database=self._expect_identifier("database name"))
        if token.kind is TokenKind.EOF:
            raise self._error("Expected a statement.", token)
        raise self._error("Unknown or unsupported statement.", token)

    def _parse_table_name(self) -> TableRef:
        """Parse ``table``, ``schema.table`` or ``database.schema.table``."""
        parts = [self._expect_identifier("table name")]
        while self._peek().is_punct("."):
            self._advance()
            if self._peek().is_punct("."):
                # database..table
                parts.append("")
                continue
            parts.append(self._expect_identifier("table name"))
        if len(parts) > 3:
            raise self._error("Too many name parts in table reference.")
        database = parts[0] if len(parts) == 3 else None
        return TableRef(name=parts[-1], database=database)

    def _parse_select(self) -> SelectPlan:
        self._expect_word("SELECT")
        distinct = False
        if self._match_word("DISTINCT"):
            distinct = True
        else:
            self._match_word("ALL")

        top: int | None = None
        if self._match_word("TOP"):
            if self._match_punct("("):
                top = self._expect_integer("row count")
                self._expect_punct(")")
            else:
                top = self._expect_integer("row count")
            if top < 0:
                raise self._error("TOP row count must not be negative.")

        with self._aggregate_scope(True):
            items = [self._parse_select_item()]
            while self._match_punct(","):
                items.append(self._parse_select_item())

        plan = SelectPlan(items=items, distinct=distinct)

        if self._match_word("FROM"):
            plan.source = self._parse_table_ref()
            plan.joins = self._parse_joins()

        if self._match_word("WHERE"):
            plan.where = self._parse_expression()

        if self._match_word("GROUP"):
            self._expect_word("BY")
            plan.group_by = [self._parse_expression()]
            while self._match_punct(","):
                plan.group_by.append(self._parse_expression())

        if self._match_word("HAVING"):
            with self._aggregate_scope(True):
                plan.having = self._parse_expression()

        if self._match_word("ORDER"):
            self._expect_word("BY")
            with self._aggregate_scope(True):
                plan.order_by = [self._parse_order_item()]
                while self._match_punct(","):
                    plan.order_by.append(self._parse_order_item())

        limit, offset = self._parse_limit_clauses()
        if top is not None and (limit is not None or offset):
            raise self._error("TOP cannot be combined with LIMIT or OFFSET.")
        plan.limit = top if top is not None else limit
        plan.offset = offset
        return plan

    def _parse_limit_clauses(self) -> tuple[int | None, int]:
        limit: int | None = None
        offset = 0
        if self._match_word("LIMIT"):
            limit = self._expect_integer("row count")
            if self._match_word("OFFSET"):
                offset = self._expect_integer("row offset")
        elif self._match_word("OFFSET"):
            offset = self._expect_integer("row offset")
            self._expect_word("ROW", "ROWS")
            if self._match_word("FETCH"):
                self._expect_word("NEXT", "FIRST")
                limit = self._expect_integer("row count")
                self._expect_word("ROW", "ROWS")
                self._expect_word("ONLY")
        if (limit is not None and limit < 0) or offset < 0:
            raise self._error("Row counts must not be negative.")
        return limit, offset

    def _parse_select_item(self) -> SelectItem:
        token = self._peek()
        if token.kind is TokenKind.STAR:
            self._advance()
            return SelectItem(expr=ColumnExpr(ColumnRef("*")))
        if (
            self._is_identifier(token)
            and self._peek(1).is_punct(".")
            and self._peek(2).kind is TokenKind.STAR
        ):
            self._advance()
            self._advance()
            self._advance()
            return SelectItem(expr=ColumnExpr(ColumnRef("*", table=token.value)))

        expr = self._parse_expression()
        return SelectItem(expr=expr, alias=self._parse_alias())

    def _parse_alias(self) -> str | None:
        if self._match_word("AS"):
            token = self._peek()
            if token.kind is TokenKind.STRING:
                self._advance()
                return token.value
            return self._expect_identifier("alias")
        token = self._peek()
        if token.kind is TokenKind.STRING or self._is_identifier(token):
            self._advance()
            return token.value
        return None

    def _parse_table_ref(self) -> TableRef:
        if self._peek().is_punct("("):
            raise self._error("Subqueries are not supported.")
        table = self._parse_table_name()
        alias: str | None = None
        if self._match_word("AS"):
            alias = self._expect_identifier("alias")
        elif self._is_identifier(self._peek()):
            alias = self._advance().value
        return TableRef(name=table.name, alias=alias, database=table.database)

    def _parse_joins(self) -> list[Join]:
        joins: list[Join] = []
        while True:
            if self._match_punct(","):
                joins.append(Join(JoinType.CROSS, self._parse_table_ref()))
                continue
            token = self._peek()
            if not token.is_word(*_JOIN_STARTERS):
                return joins

            if self._match_word("CROSS"):
                self._expect_word("JOIN")
                joins.append(Join(JoinType.CROSS, self._parse_table_ref()))
                continue

            join_type = JoinType.INNER
            if self._match_word("INNER"):
                pass
            elif word := self._match_word("LEFT", "RIGHT", "FULL"):
                join_type = JoinType[word.upper]
                self._match_word("OUTER")
            self._expect_word("JOIN")
            table = self._parse_table_ref()
            self._expect_word("ON")
            joins.append(Join(join_type, table, self._parse_expression()))

    def _parse_order_item(self) -> OrderByItem:
        expr = self._parse_expression()
        ascending = True
        if self._match_word("DESC"):
            ascending = False
        else:
            self._match_word("ASC")
        return OrderByItem(expr=expr, ascending=ascending)

    def _parse_insert(self) -> InsertPlan:
        self._expect_word("INSERT")
        self._match_word("INTO")
        table = self._parse_table_name()

        columns: list[str] | None = None
        if self._peek().is_punct("("):
            self._advance()
            columns = [self._parse_column_name()]
            while self._match_punct(","):
                columns.append(self._parse_column_name())
            self._expect_punct(")")

        if self._match_word("DEFAULT"):
            self._expect_word("VALUES")
            if columns is not None:
                raise self._error("DEFAULT VALUES cannot be used with a column list.")
            return InsertPlan(table=table, columns=[], values=[[]])

        if self._peek().is_word("SELECT"):
            return InsertPlan(table=table, columns=columns, query=self._parse_select())

        self._expect_word("VALUES")
        rows = [self._parse_value_row()]
        while self._match_punct(","):
            rows.append(self._parse_value_row())
        return InsertPlan(table=table, columns=columns, values=rows)

    def _parse_column_name(self) -> str:
        """Parse a possibly qualified column name and keep the last part."""
        name = self._expect_identifier("column name")
        while self._match_punct("."):
            name = self._expect_identifier("column name")
        return name

    def _parse_value_row(self) -> list[Expression]:
        self._expect_punct("(")
        row = [self._parse_value()]
        while self._match_punct(","):
            row.append(self._parse_value())
        self._expect_punct(")")
        return row

    def _parse_value(self) -> Expression:
        if self._match_word("DEFAULT"):
            return DefaultExpr()
        return self._parse_expression()

    def _parse_update(self) -> UpdatePlan:
        self._expect_word("UPDATE")
        table = self._parse_table_name()
        self._expect_word("SET")

        assignments: dict[str, Expression] = {}
        while True:
            token = self._peek()
            name = self._parse_column_name()
            if name in assignments:
                raise self._error(
                    f"The column name '{name}' is specified more than once in the SET clause.",
                    token,
                )
            if not self._peek().is_op("="):
                raise self._error("Expected '='.")
            self._advance()
            assignments[name] = self._parse_expression()
            if not self._match_punct(","):
                break

        predicate = self._parse_expression() if self._match_word("WHERE") else None
        return UpdatePlan(table=table, assignments=assignments, predicate=predicate)

    def _parse_delete(self) -> DeletePlan:
        self._expect_word("DELETE")
        self._match_word("FROM")
        table = self._parse_table_name()
        predicate = self._parse_expression() if self._match_word("WHERE") else None
        return DeletePlan(table=table, predicate=predicate)

    def _parse_create(self) -> LogicalPlan:
        self._expect_word("CREATE")
        if self._match_word("DATABASE"):
            return DatabaseDDLPlan("CREATE", self._expect_identifier("database name"))
        self._expect_word("TABLE")
        table = self._parse_table_name()
        self._expect_punct("(")

        columns: list[ColumnSpec] = []
        primary_key: list[str] = []
        while True:
            if self._peek().is_word("CONSTRAINT", "PRIMARY", "FOREIGN", "UNIQUE", "CHECK"):
                key = self._parse_table_constraint()
                if primary_key:
                    raise self._error("Cannot add multiple PRIMARY KEY constraints.")
                primary_key = key
            else:
                columns.append(self._parse_column_spec())
            if not self._match_punct(","):
                break
        self._expect_punct(")")
        if not columns:
            raise self._error("A table must have at least one column.")
        return CreateTablePlan(table=table, columns=columns, primary_key=primary_key)

    def _parse_table_constraint(self) -> list[str]:
        if self._match_word("CONSTRAINT"):
            self._expect_identifier("constraint name")
        token = self._peek()
        if token.is_word("FOREIGN", "UNIQUE", "CHECK"):
            raise self._error(f"{token.upper} constraints are not supported.", token)
        self._expect_word("PRIMARY")
        self._expect_word("KEY")
        self._match_word("CLUSTERED", "NONCLUSTERED")
        self._expect_punct("(")
        names = [self._parse_key_column()]
        while self._match_punct(","):
            names.append(self._parse_key_column())
        self._expect_punct(")")
        return names

    def _parse_key_column(self) -> str:
        name = self._expect_identifier("column name")
        self._match_word("ASC", "DESC")
        return name

    def _parse_column_spec(self) -> ColumnSpec:
        name = self._expect_identifier("column name")
        type_spec = self._parse_type()

        nullable: bool | None = None
        primary_key = False
        identity: tuple[int, int] | None = None
        default: Expression | None = None
        while True:
            token = self._peek()
            if self._match_word("CONSTRAINT"):
                self._expect_identifier("constraint name")
            elif self._match_word("PRIMARY"):
                self._expect_word("KEY")
                self._match_word("CLUSTERED", "NONCLUSTERED")
                primary_key = True
            elif self._match_word("IDENTITY"):
                identity = (1, 1)
                if self._match_punct("("):
                    seed = self._expect_integer("identity seed")
                    self._expect_punct(",")
                    identity = (seed, self._expect_integer("identity increment"))
                    self._expect_punct(")")
            elif self._match_word("NOT"):
                self._expect_word("NULL")
                nullable = False
            elif self._match_word("NULL"):
                nullable = True
            elif self._match_word("DEFAULT"):
                default = self._parse_additive()
            elif token.is_word("UNIQUE", "CHECK", "REFERENCES", "FOREIGN"):
                raise self._error(f"{token.upper} constraints are not supported.", token)
            else:
                break
        if primary_key and nullable:
            raise self._error(
                f"Cannot define PRIMARY KEY constraint on nullable column '{name}'."
            )
        return ColumnSpec(
            name=name,
            type_spec=type_spec,
            nullable=nullable is not False,
            primary_key=primary_key,
            identity=identity,
            default=default,
        )

    def _parse_type(self) -> TypeSpec:
        token = self._peek()
        if token.kind is not TokenKind.WORD and token.kind is not TokenKind.QUOTED_IDENT:
            raise self._error("Expected a data type.")
        self._advance()
        name = token.upper
        if name == "DOUBLE":
            self._match_word("PRECISION")

        args: list[int] = []
        if self._match_punct("("):
            if self._match_word("MAX"):
                pass
            else:
                args.append(self._expect_integer("type size"))
                while self._match_punct(","):
                    args.append(self._expect_integer("type size"))
            self._expect_punct(")")
        return TypeSpec(name=name, args=tuple(args))

    def _parse_drop(self) -> LogicalPlan:
        self._expect_word("DROP")
        if self._match_word("DATABASE"):
            return DatabaseDDLPlan("DROP", self._expect_identifier("database name"))
        self._expect_word("TABLE")
        if_exists = False
        if self._match_word("IF"):
            self._expect_word("EXISTS")
            if_exists = True
        return DropTablePlan(table=self._parse_table_name(), if_exists=if_exists)

    def _parse_alter(self) -> AlterTablePlan:
        self._expect_word("ALTER")
        self._expect_word("TABLE")
        table = self._parse_table_name()
        if self._match_word("ADD"):
            if self._peek().is_word("CONSTRAINT", "PRIMARY", "FOREIGN", "UNIQUE", "CHECK"):
                raise self._error("Adding table constraints is not supported.")
            self._match_word("COLUMN")
            return AlterTablePlan(table=table, add_column=self._parse_column_spec())
        if self._match_word("DROP"):
            self._expect_word("COLUMN")
            return AlterTablePlan(table=table, drop_column=self._expect_identifier("column name"))
        raise self._error("Expected ADD or DROP COLUMN.")

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _parse_expression(self) -> Expression:
        return self._parse_or()

    def _parse_or(self) -> Expression:
        operands = [self._parse_and()]
        while self._match_word("OR"):
            operands.append(self._parse_and())
        if len(operands) == 1:
            return operands[0]
        return LogicalExpr(LogicalOp.OR, tuple(operands))

    def _parse_and(self) -> Expression:
        operands = [self._parse_not()]
        while self._match_word("AND"):
            operands.append(self._parse_not())
        if len(operands) == 1:
            return operands[0]
        return LogicalExpr(LogicalOp.AND, tuple(operands))

    def _parse_not(self) -> Expression:
        if self._match_word("NOT"):
            return LogicalExpr(LogicalOp.NOT, (self._parse_not(),))
        return self._parse_predicate()

    def _parse_predicate(self) -> Expression:
        if self._peek().is_word("EXISTS"):
            raise self._error("Subqueries are not supported.")
        left = self._parse_additive()
        token = self._peek()

        if token.kind is TokenKind.OP and token.value in _COMPARISONS:
            self._advance()
            return ComparisonExpr(left, _COMPARISONS[token.value], self._parse_additive())

        if self._match_word("IS"):
            negated = self._match_word("NOT") is not None
            self._expect_word("NULL")
            op = ComparisonOp.IS_NOT_NULL if negated else ComparisonOp.IS_NULL
            return ComparisonExpr(left, op)

        negated = False
        if token.is_word("NOT") and self._peek(1).is_word("IN", "BETWEEN", "LIKE"):
            self._advance()
            negated = True

        if self._match_word("IN"):
            self._expect_punct("(")
            if self._peek().is_word("SELECT"):
                raise self._error("Subqueries are not supported.")
            items = [self._parse_expression()]
            while self._match_punct(","):
                items.append(self._parse_expression())
            self._expect_punct(")")
            return InExpr(left, tuple(items), negated)

        if self._match_word("BETWEEN"):
            low = self._parse_additive()
            self._expect_word("AND")
            high = self._parse_additive()
            return BetweenExpr(left, low, high, negated)

        if self._match_word("LIKE"):
            op = ComparisonOp.NOT_LIKE if negated else ComparisonOp.LIKE
            return ComparisonExpr(left, op, self._parse_additive())

        return left

    def _parse_additive(self) -> Expression:
        left = self._parse_multiplicative()
        while self._peek().is_op("+", "-"):
            op = _ARITHMETIC[self._advance().value]
            left = ArithmeticExpr(op, left, self._parse_multiplicative())
        return left

    def _parse_multiplicative(self) -> Expression:
        left = self._parse_unary()
        while True:
            token = self._peek()
            if token.kind is TokenKind.STAR:
                op = ArithmeticOp.MUL
            elif token.is_op("/", "%"):
                op = _ARITHMETIC[token.value]
            else:
                return left
            self._advance()
            left = ArithmeticExpr(op, left, self._parse_unary())

    def _parse_unary(self) -> Expression:
        if self._peek().is_op("-"):
            self._advance()
            operand = self._parse_unary()
            if isinstance(operand, LiteralExpr) and operand.literal.data_type in _NUMERIC_TYPES:
                value = operand.literal.value
                return LiteralExpr(Literal(-value, operand.literal.data_type))  # type: ignore[operator]
            return NegateExpr(operand)
        if self._peek().is_op("+"):
            self._advance()
            return self._parse_unary()
        return self._parse_primary()

    def _parse_primary(self) -> Expression:
        token = self._peek()

        if token.kind is TokenKind.NUMBER:
            self._advance()
            return self._number_literal(token)

        if token.kind is TokenKind.STRING:
            self._advance()
            return LiteralExpr(Literal(token.value, SqlType.TEXT))

        if token.is_punct("("):
            self._advance()
            if self._peek().is_word("SELECT"):
                raise self._error("Subqueries are not supported.")
            expr = self._parse_expression()
            self._expect_punct(")")
            return expr

        if token.kind is TokenKind.WORD:
            keyword = token.upper
            if keyword == "NULL":
                self._advance()
                return LiteralExpr(Literal(None))
            if keyword in ("TRUE", "FALSE") and not self._peek(1).is_punct("."):
                self._advance()
                return LiteralExpr(Literal(keyword == "TRUE", SqlType.BOOLEAN))
            if keyword == "CASE":
                return self._parse_case()
            if keyword == "CAST" and self._peek(1).is_punct("("):
                return self._parse_cast()
            if keyword == "CONVERT" and self._peek(1).is_punct("("):
                return self._parse_convert()
            if keyword == "CURRENT_TIMESTAMP":
                self._advance()
                return FunctionExpr("CURRENT_TIMESTAMP")
            if keyword == "DEFAULT":
                raise self._error("DEFAULT is only allowed in an INSERT value list.")
            if self._peek(1).is_punct("("):
                return self._parse_function_call()

        if self._is_identifier(token):
            return self._parse_column_expr()

        raise self._error("Expected an expression.", token)

    def _number_literal(self, token: Token) -> LiteralExpr:
        text = token.value
        self._check_precision(token)
        if text.isdigit():
            return LiteralExpr(Literal(int(text), SqlType.INTEGER))
        return LiteralExpr(Literal(Decimal(text), SqlType.DECIMAL))

    def _parse_column_expr(self) -> ColumnExpr:
        first = self._advance().value
        if not self._peek().is_punct("."):
            return ColumnExpr(ColumnRef(first))
        self._advance()
        if self._peek().kind is TokenKind.STAR:
            raise self._error("'*' is only allowed in the select list.")
        second = self._expect_identifier("column name")
        if self._peek().is_punct("."):
            raise self._error("Column references may have at most one qualifier.")
        return ColumnExpr(ColumnRef(second, table=first))

    def _parse_case(self) -> CaseExpr:
        self._expect_word("CASE")
        operand: Expression | None = None
        if not self._peek().is_word("WHEN"):
            operand = self._parse_expression()
        whens: list[tuple[Expression, Expression]] = []
        while self._match_word("WHEN"):
            condition = self._parse_expression()
            self._expect_word("THEN")
            whens.append((condition, self._parse_expression()))
        if not whens:
            raise self._error("Expected WHEN.")
        default = self._parse_expression() if self._match_word("ELSE") else None
        self._expect_word("END")
        return CaseExpr(whens=tuple(whens), operand=operand, default=default)

    def _parse_cast(self) -> CastExpr:
        self._expect_word("CAST")
        self._expect_punct("(")
        operand = self._parse_expression()
        self._expect_word("AS")
        target = self._parse_type()
        self._expect_punct(")")
        return CastExpr(operand, target)

    def _parse_convert(self) -> CastExpr:
        self._expect_word("CONVERT")
        self._expect_punct("(")
        target = self._parse_type()
        self._expect_punct(",")
        operand = self._parse_expression()
        if self._match_punct(","):
            # Style codes only affect formatting; ours is fixed.
            self._expect_integer("style")
        self._expect_punct(")")
        return CastExpr(operand, target)

    def _parse_function_call(self) -> Expression:
        token = self._advance()
        name = token.upper
        self._expect_punct("(")

        if name in AggregateFunc.__members__:
            return self._parse_aggregate(token, AggregateFunc[name])

        if name not in SCALAR_FUNCTIONS:
            raise self._error(f"'{token.value}' is not a recognized built-in function name.", token)

        args: list[Expression] = []
        if not self._peek().is_punct(")"):
            args.append(self._parse_expression())
            while self._match_punct(","):
                args.append(self._parse_expression())
        self._expect_punct(")")

        low, high = SCALAR_FUNCTIONS[name]
        if len(args) < low or (high is not None and len(args) > high):
            if high is None:
                expected = f"at least {low}"
            elif high == low:
                expected = str(low)
            else:
                expected = f"{low} to {high}"
            raise self._error(f"The {name} function requires {expected} argument(s).", token)
        return FunctionExpr(name, tuple(args))

    def _parse_aggregate(self, token: Token, func: AggregateFunc) -> AggregateExpr:
        if not self._aggregates_allowed:
            raise self._error(
                "An aggregate may only appear in the select list, HAVING or ORDER BY.", token
            )
        if self._in_aggregate:
            raise self._error(
                "Cannot perform an aggregate function on an expression containing an aggregate.",
                token,
            )

        if func is AggregateFunc.COUNT and self._peek().kind is TokenKind.STAR:
            self._advance()
            self._expect_punct(")")
            return AggregateExpr(func)

        distinct = self._match_word("DISTINCT") is not None
        if not distinct:
            self._match_word("ALL")
        self._in_aggregate = True
        try:
            arg = self._parse_expression()
        finally:
            self._in_aggregate = False
        self._expect_punct(")")
        return AggregateExpr(func, arg, distinct)

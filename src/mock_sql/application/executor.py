"""Query Executor using Volcano iterator model.

This module interprets parsed statement plans against the catalog store.
SELECT queries are compiled into a pull-based operator tree; DML and DDL
statements are translated into catalog store calls.

The Volcano model:
    - Each operator is an iterator with open(), next(), close() methods
    - Operators pull scopes from their children on demand
    - Blocking operators (aggregate, sort) materialize their input on open()

SELECT operator order:
    SeqScan -> NestedLoopJoin* -> Filter(WHERE) -> Aggregate -> Filter(HAVING)
    -> Project -> Distinct -> Sort -> Limit

References:
    - Graefe, "Volcano" (1994)
    - SQL Server logical query processing order
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from functools import cmp_to_key
from typing import Any, Iterator

from mock_sql.adapters.inbound.sql_ast import (
    AggregateExpr,
    AlterTablePlan,
    ColumnExpr,
    ColumnRef,
    ColumnSpec,
    CreateTablePlan,
    DatabaseDDLPlan,
    DefaultExpr,
    DeletePlan,
    DropTablePlan,
    Expression,
    FunctionExpr,
    InsertPlan,
    JoinType,
    LiteralExpr,
    LogicalPlan,
    OrderByItem,
    SelectItem,
    SelectPlan,
    TableRef,
    UpdatePlan,
    UsePlan,
)
from mock_sql.application.expressions import (
    ExpressionEvaluator,
    GroupValues,
    RowSchema,
    Scope,
    SourceColumn,
    check_grouping,
    collect_aggregates,
)
from mock_sql.domain.entities import (
    AddColumn,
    Column,
    ColumnDefault,
    DropColumn,
    IdentitySpec,
    TableDefinition,
)
from mock_sql.domain.errors import AmbiguousReference, SemanticError, UnknownTable
from mock_sql.domain.services import USE_DEFAULT, CatalogStore, InsertValue
from mock_sql.domain.value_objects import (
    SIZED_TEXT_TYPES,
    SqlValue,
    compare_values,
    to_json_value,
)


_TIMESTAMP_FUNCTIONS = ("GETDATE", "CURRENT_TIMESTAMP")


@dataclass
class Row:
    """A row of data returned by the executor."""

    columns: list[str]
    values: list[SqlValue]

    def __repr__(self) -> str:
        pairs = ", ".join(f"{c}={v!r}" for c, v in zip(self.columns, self.values))
        return f"Row({pairs})"


@dataclass
class ExecutionResult:
    """Result of executing a statement or a batch.

    Exactly one shape is populated: tabular (``columns`` + ``rows``),
    status (``message`` + ``rows_affected``) or error (``error`` +
    ``error_type``).
    """

    columns: list[str] | None = None
    rows: list[Row] | None = None
    message: str | None = None
    rows_affected: int | None = None
    error: str | None = None
    error_type: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def is_tabular(self) -> bool:
        return self.columns is not None

    @classmethod
    def status(cls, message: str, rows_affected: int | None = None) -> ExecutionResult:
        return cls(message=message, rows_affected=rows_affected)

    @classmethod
    def affected(cls, count: int) -> ExecutionResult:
        return cls(message=f"({count} row(s) affected)", rows_affected=count)

    @classmethod
    def failure(cls, error: str, error_type: str) -> ExecutionResult:
        return cls(error=error, error_type=error_type)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys, omitting absent fields.

        DECIMAL values become JSON numbers and DATETIME values
        ``YYYY-MM-DD HH:MM:SS`` strings.
        """
        data: dict[str, Any] = {}
        if self.columns is not None:
            data["columns"] = list(self.columns)
            data["rows"] = [[to_json_value(v) for v in row.values] for row in self.rows or []]
        if self.message is not None:
            data["message"] = self.message
        if self.rows_affected is not None:
            data["rowsAffected"] = self.rows_affected
        if self.error is not None:
            data["error"] = self.error
            data["errorType"] = self.error_type
        return data


@dataclass
class Session:
    """Mutable per-session state: the current database."""

    database: str


# ----------------------------------------------------------------------
# Operators
# ----------------------------------------------------------------------


class Operator(ABC):
    """Base class for executor operators (Volcano model).

    Every operator exposes the :class:`RowSchema` of the scopes it yields.
    """

    schema: RowSchema

    @abstractmethod
    def open(self) -> None:
        """Initialize the operator."""
        pass

    @abstractmethod
    def next(self) -> Scope | None:
        """Return the next scope or None if exhausted."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Clean up resources."""
        pass

    def __iter__(self) -> Iterator[Scope]:
        """Allow iteration over operator results."""
        self.open()
        try:
            while True:
                scope = self.next()
                if scope is None:
                    break
                yield scope
        finally:
            self.close()


class _MaterializedOperator(Operator):
    """Operator that computes all of its output on open()."""

    def __init__(self) -> None:
        self._buffer: list[Scope] = []
        self._position = 0

    @abstractmethod
    def _materialize(self) -> list[Scope]:
        pass

    def open(self) -> None:
        self._buffer = self._materialize()
        self._position = 0

    def next(self) -> Scope | None:
        if self._position >= len(self._buffer):
            return None
        scope = self._buffer[self._position]
        self._position += 1
        return scope

    def close(self) -> None:
        self._buffer = []
        self._position = 0


def _drain(child: Operator) -> list[Scope]:
    scopes: list[Scope] = []
    child.open()
    try:
        while True:
            scope = child.next()
            if scope is None:
                return scopes
            scopes.append(scope)
    finally:
        child.close()


class SeqScanOperator(Operator):
    """Sequential scan over a snapshot of a table's rows."""

    def __init__(self, rows: Sequence[tuple[SqlValue, ...]], schema: RowSchema) -> None:
        self.schema = schema
        self._rows = rows
        self._current_row = 0

    def open(self) -> None:
        self._current_row = 0

    def next(self) -> Scope | None:
        if self._current_row >= len(self._rows):
            return None
        row = self._rows[self._current_row]
        self._current_row += 1
        return Scope(self.schema, row)

    def close(self) -> None:
        self._current_row = 0


class SingleRowOperator(Operator):
    """Yields one empty row; the source of a SELECT without FROM."""

    def __init__(self) -> None:
        self.schema = RowSchema([])
        self._returned = False

    def open(self) -> None:
        self._returned = False

    def next(self) -> Scope | None:
        if self._returned:
            return None
        self._returned = True
        return Scope(self.schema, ())

    def close(self) -> None:
        pass


class NestedLoopJoinOperator(_MaterializedOperator):
    """Nested-loop join of two inputs.

    The ON predicate is evaluated once per left x right pair. Outer joins
    pad the missing side with NULLs; unmatched right rows of a RIGHT or
    FULL join are emitted after all left-driven rows.
    """

    def __init__(
        self,
        left: Operator,
        right: Operator,
        join_type: JoinType,
        condition: Expression | None,
        evaluator: ExpressionEvaluator,
    ) -> None:
        super().__init__()
        self._left = left
        self._right = right
        self._join_type = join_type
        self._condition = condition
        self._evaluator = evaluator
        self.schema = left.schema + right.schema

    def _materialize(self) -> list[Scope]:
        right_rows = [scope.values for scope in _drain(self._right)]
        left_nulls = (None,) * len(self._left.schema.columns)
        right_nulls = (None,) * len(self._right.schema.columns)
        matched_right: set[int] = set()
        output: list[Scope] = []

        for left in _drain(self._left):
            matched = False
            for index, right in enumerate(right_rows):
                combined = Scope(self.schema, (*left.values, *right))
                if self._condition is None or self._evaluator.is_true(self._condition, combined):
                    output.append(combined)
                    matched_right.add(index)
                    matched = True
            if not matched and self._join_type in (JoinType.LEFT, JoinType.FULL):
                output.append(Scope(self.schema, (*left.values, *right_nulls)))

        if self._join_type in (JoinType.RIGHT, JoinType.FULL):
            for index, right in enumerate(right_rows):
                if index not in matched_right:
                    output.append(Scope(self.schema, (*left_nulls, *right)))
        return output


class FilterOperator(Operator):
    """Filter operator that keeps scopes whose predicate is true."""

    def __init__(self, child: Operator, predicate: Expression, evaluator: ExpressionEvaluator) -> None:
        self._child = child
        self._predicate = predicate
        self._evaluator = evaluator
        self.schema = child.schema

    def open(self) -> None:
        self._child.open()

    def next(self) -> Scope | None:
        while True:
            scope = self._child.next()
            if scope is None:
                return None
            if self._evaluator.is_true(self._predicate, scope):
                return scope

    def close(self) -> None:
        self._child.close()


class AggregateOperator(_MaterializedOperator):
    """Hash-free grouping: buckets in first-seen order, NULLs group together.

    Without GROUP BY expressions all input forms a single group, even when
    the input is empty.
    """

    def __init__(
        self,
        child: Operator,
        group_by: Sequence[Expression],
        aggregates: Sequence[AggregateExpr],
        evaluator: ExpressionEvaluator,
    ) -> None:
        super().__init__()
        self._child = child
        self._group_by = list(group_by)
        self._aggregates = list(aggregates)
        self._evaluator = evaluator
        self.schema = child.schema

    def _materialize(self) -> list[Scope]:
        buckets: dict[tuple[SqlValue, ...], list[Scope]] = {}
        for scope in _drain(self._child):
            key = tuple(self._evaluator.evaluate(expr, scope) for expr in self._group_by)
            buckets.setdefault(key, []).append(scope)
        if not self._group_by and not buckets:
            buckets[()] = []

        groups: list[Scope] = []
        for key, members in buckets.items():
            values = GroupValues()
            for expr, value in zip(self._group_by, key):
                if isinstance(expr, ColumnExpr):
                    values.key_columns[self.schema.resolve(expr.column)] = value
                else:
                    values.key_exprs[expr] = value
            for aggregate in self._aggregates:
                values.aggregates[aggregate] = self._evaluator.aggregate(aggregate, members)
            groups.append(Scope(self.schema, members[0].values if members else (), values))
        return groups


class ProjectOperator(Operator):
    """Computes the select list for each input scope."""

    def __init__(
        self,
        child: Operator,
        exprs: Sequence[Expression],
        names: Sequence[str],
        evaluator: ExpressionEvaluator,
    ) -> None:
        self._child = child
        self._exprs = list(exprs)
        self._evaluator = evaluator
        self.schema = RowSchema([SourceColumn("", name) for name in names])

    def open(self) -> None:
        self._child.open()

    def next(self) -> Scope | None:
        scope = self._child.next()
        if scope is None:
            return None
        values = tuple(self._evaluator.evaluate(expr, scope) for expr in self._exprs)
        return Scope(self.schema, values, origin=scope)

    def close(self) -> None:
        self._child.close()


class DistinctOperator(Operator):
    """Drops output rows equal to one already returned."""

    def __init__(self, child: Operator) -> None:
        self._child = child
        self._seen: set[tuple[SqlValue, ...]] = set()
        self.schema = child.schema

    def open(self) -> None:
        self._child.open()
        self._seen = set()

    def next(self) -> Scope | None:
        while True:
            scope = self._child.next()
            if scope is None:
                return None
            key = tuple(scope.values)
            if key not in self._seen:
                self._seen.add(key)
                return scope

    def close(self) -> None:
        self._child.close()
        self._seen = set()


SortKey = Callable[[Scope], SqlValue]


def _compare_nulls_last(left: SqlValue, right: SqlValue, ascending: bool) -> int:
    if left is None and right is None:
        return 0
    if left is None:
        return 1
    if right is None:
        return -1
    order = compare_values(left, right)
    return order if ascending else -order


class SortOperator(_MaterializedOperator):
    """Stable sort; NULLs sort last in either direction."""

    def __init__(self, child: Operator, keys: Sequence[tuple[SortKey, bool]]) -> None:
        super().__init__()
        self._child = child
        self._keys = list(keys)
        self.schema = child.schema

    def _materialize(self) -> list[Scope]:
        decorated = [
            ([key(scope) for key, _ in self._keys], scope) for scope in _drain(self._child)
        ]

        def compare(a: tuple[list[SqlValue], Scope], b: tuple[list[SqlValue], Scope]) -> int:
            for (left, right), (_, ascending) in zip(zip(a[0], b[0]), self._keys):
                order = _compare_nulls_last(left, right, ascending)
                if order:
                    return order
            return 0

        decorated.sort(key=cmp_to_key(compare))
        return [scope for _, scope in decorated]


class LimitOperator(Operator):
    """Limit operator that skips ``offset`` rows and returns at most ``limit``."""

    def __init__(self, child: Operator, limit: int | None, offset: int = 0) -> None:
        self._child = child
        self._limit = limit
        self._offset = offset
        self._returned = 0
        self.schema = child.schema

    def open(self) -> None:
        self._child.open()
        self._returned = 0
        for _ in range(self._offset):
            if self._child.next() is None:
                break

    def next(self) -> Scope | None:
        if self._limit is not None and self._returned >= self._limit:
            return None
        scope = self._child.next()
        if scope is None:
            return None
        self._returned += 1
        return scope

    def close(self) -> None:
        self._child.close()


# ----------------------------------------------------------------------
# Executor
# ----------------------------------------------------------------------


def output_name(item: SelectItem) -> str:
    """Name of an output column: alias, else column name, else expression text."""
    if item.alias:
        return item.alias
    if isinstance(item.expr, ColumnExpr):
        return item.expr.column.name
    return str(item.expr)


class QueryExecutor:
    """Executes statement plans against the catalog store.

    SELECT plans are compiled into operator trees; every other statement
    maps onto one catalog store operation, which is atomic on its own.

    Args:
        catalog: The catalog store to read and mutate.
        clock: Supplies ``GETDATE()``; read once per statement.
    """

    def __init__(self, catalog: CatalogStore, clock: Callable[[], datetime] = datetime.now) -> None:
        self._catalog = catalog
        self._clock = clock

    def execute(self, plan: LogicalPlan, session: Session) -> ExecutionResult:
        """Execute one statement.

        Args:
            plan: The parsed statement.
            session: Session state; ``USE`` changes its database.

        Returns:
            A tabular result for SELECT, a status result otherwise.

        Raises:
            MockSqlError: Any semantic failure of the statement.
        """
        evaluator = ExpressionEvaluator(self._clock())
        if isinstance(plan, SelectPlan):
            return self._execute_query(plan, session, evaluator)
        elif isinstance(plan, InsertPlan):
            return self._execute_insert(plan, session, evaluator)
        elif isinstance(plan, UpdatePlan):
            return self._execute_update(plan, session, evaluator)
        elif isinstance(plan, DeletePlan):
            return self._execute_delete(plan, session, evaluator)
        elif isinstance(plan, CreateTablePlan):
            return self._execute_create_table(plan, session, evaluator)
        elif isinstance(plan, DropTablePlan):
            return self._execute_drop_table(plan, session)
        elif isinstance(plan, AlterTablePlan):
            return self._execute_alter_table(plan, session, evaluator)
        elif isinstance(plan, UsePlan):
            return self._execute_use(plan, session)
        elif isinstance(plan, DatabaseDDLPlan):
            raise SemanticError(
                f"{plan.action} DATABASE is not available: the sandbox has a fixed set of "
                f"databases ({', '.join(self._catalog.database_names())})."
            )
        raise SemanticError(f"Unsupported statement: {type(plan).__name__}")

    @staticmethod
    def _database_for(ref: TableRef, session: Session) -> str:
        return ref.database or session.database

    # -- SELECT -------------------------------------------------------

    def _execute_query(
        self, plan: SelectPlan, session: Session, evaluator: ExpressionEvaluator
    ) -> ExecutionResult:
        names, scopes = self._run_select(plan, session, evaluator)
        rows = [Row(columns=names, values=list(scope.values)) for scope in scopes]
        return ExecutionResult(columns=names, rows=rows)

    def _run_select(
        self, plan: SelectPlan, session: Session, evaluator: ExpressionEvaluator
    ) -> tuple[list[str], list[Scope]]:
        operator = self._build_operator_tree(plan, session, evaluator)
        return [c.name for c in operator.schema.columns], list(operator)

    def _scan(self, ref: TableRef, session: Session) -> Operator:
        table = self._catalog.get_table(self._database_for(ref, session), ref.name)
        schema = RowSchema([SourceColumn(ref.binding, name) for name in table.column_names])
        return SeqScanOperator(list(table.rows), schema)

    def _build_operator_tree(
        self, plan: SelectPlan, session: Session, evaluator: ExpressionEvaluator
    ) -> Operator:
        """Build a physical operator tree from a SELECT plan."""
        operator: Operator = SingleRowOperator() if plan.source is None else self._scan(plan.source, session)
        bindings = [] if plan.source is None else [plan.source.binding]
        for join in plan.joins:
            if join.table.binding in bindings:
                raise AmbiguousReference(
                    f"The correlation name '{join.table.binding}' is specified multiple times "
                    "in a FROM clause."
                )
            bindings.append(join.table.binding)
            right = self._scan(join.table, session)
            operator = NestedLoopJoinOperator(operator, right, join.join_type, join.condition, evaluator)

        source_schema = operator.schema
        items = self._expand_stars(plan.items, source_schema)
        exprs = [item.expr for item in items]
        names = [output_name(item) for item in items]

        if plan.where is not None:
            operator = FilterOperator(operator, plan.where, evaluator)

        aggregates = collect_aggregates([*exprs, plan.having, *(o.expr for o in plan.order_by)])
        grouped = bool(plan.group_by or aggregates)
        if grouped:
            for expr in plan.group_by:
                if isinstance(expr, ColumnExpr):
                    source_schema.resolve(expr.column)
            for expr in exprs:
                check_grouping(expr, source_schema, plan.group_by)
            if plan.having is not None:
                check_grouping(plan.having, source_schema, plan.group_by)
            operator = AggregateOperator(operator, plan.group_by, aggregates, evaluator)
            if plan.having is not None:
                operator = FilterOperator(operator, plan.having, evaluator)
        elif plan.having is not None:
            raise SemanticError("HAVING requires a GROUP BY clause or an aggregate in the select list.")

        sort_keys = self._sort_keys(plan, items, names, source_schema, grouped, evaluator)
        operator = ProjectOperator(operator, exprs, names, evaluator)
        if plan.distinct:
            operator = DistinctOperator(operator)
        if sort_keys:
            operator = SortOperator(operator, sort_keys)
        if plan.limit is not None or plan.offset:
            operator = LimitOperator(operator, plan.limit, plan.offset)
        return operator

    @staticmethod
    def _expand_stars(items: Sequence[SelectItem], schema: RowSchema) -> list[SelectItem]:
        expanded: list[SelectItem] = []
        for item in items:
            expr = item.expr
            if not (isinstance(expr, ColumnExpr) and expr.is_star):
                expanded.append(item)
                continue
            if expr.column.table is None:
                positions = list(range(len(schema.columns)))
                if not positions:
                    raise SemanticError("SELECT * with no tables specified is not valid.")
            else:
                positions = schema.indexes_for(expr.column.table)
                if not positions:
                    raise UnknownTable(expr.column.table)
            for position in positions:
                column = schema.columns[position]
                qualifier = column.binding if expr.column.table or len(schema.bindings) > 1 else None
                expanded.append(SelectItem(ColumnExpr(ColumnRef(column.name, qualifier))))
        return expanded

    def _sort_keys(
        self,
        plan: SelectPlan,
        items: Sequence[SelectItem],
        names: Sequence[str],
        source_schema: RowSchema,
        grouped: bool,
        evaluator: ExpressionEvaluator,
    ) -> list[tuple[SortKey, bool]]:
        keys: list[tuple[SortKey, bool]] = []
        for order in plan.order_by:
            position = self._output_position(order, items, names)
            if position is not None:
                keys.append((_output_key(position), order.ascending))
                continue
            if plan.distinct:
                raise SemanticError(
                    "ORDER BY items must appear in the select list if SELECT DISTINCT is specified."
                )
            if grouped:
                check_grouping(order.expr, source_schema, plan.group_by)
            keys.append((_source_key(order.expr, evaluator), order.ascending))
        return keys

    @staticmethod
    def _output_position(
        order: OrderByItem, items: Sequence[SelectItem], names: Sequence[str]
    ) -> int | None:
        expr = order.expr
        if isinstance(expr, LiteralExpr) and isinstance(expr.literal.value, int) and not isinstance(
            expr.literal.value, bool
        ):
            position = expr.literal.value
            if not 1 <= position <= len(items):
                raise SemanticError(
                    f"The ORDER BY position number {position} is out of range of the number "
                    "of items in the select list."
                )
            return position - 1
        if isinstance(expr, ColumnExpr) and expr.column.table is None:
            matches = [i for i, name in enumerate(names) if name == expr.column.name]
            aliased = [i for i in matches if items[i].alias]
            if len(aliased) > 1 or (not aliased and len(matches) > 1):
                raise AmbiguousReference(f"Ambiguous column name '{expr.column.name}'.")
            if aliased:
                return aliased[0]
            if matches:
                return matches[0]
        for i, item in enumerate(items):
            if item.expr == expr:
                return i
        return None

    # -- DML ----------------------------------------------------------

    def _execute_insert(
        self, plan: InsertPlan, session: Session, evaluator: ExpressionEvaluator
    ) -> ExecutionResult:
        database = self._database_for(plan.table, session)
        rows: list[list[InsertValue]]
        if plan.query is not None:
            _, values = self._run_select(plan.query, session, evaluator)
            rows = [list(scope.values) for scope in values]
        else:
            empty = Scope(RowSchema([]))
            rows = [
                [USE_DEFAULT if isinstance(e, DefaultExpr) else evaluator.evaluate(e, empty) for e in row]
                for row in plan.values
            ]
        count = self._catalog.insert_rows(database, plan.table.name, rows, plan.columns)
        return ExecutionResult.affected(count)

    def _table_schema(self, ref: TableRef, session: Session) -> RowSchema:
        table = self._catalog.get_table(self._database_for(ref, session), ref.name)
        return RowSchema([SourceColumn(ref.binding, name) for name in table.column_names])

    def _execute_update(
        self, plan: UpdatePlan, session: Session, evaluator: ExpressionEvaluator
    ) -> ExecutionResult:
        schema = self._table_schema(plan.table, session)
        predicate = plan.predicate

        def matches(row: tuple[SqlValue, ...]) -> bool:
            return predicate is None or evaluator.is_true(predicate, Scope(schema, row))

        def assignment(expr: Expression) -> Callable[[tuple[SqlValue, ...]], SqlValue]:
            return lambda row: evaluator.evaluate(expr, Scope(schema, row))

        assignments = {name: assignment(expr) for name, expr in plan.assignments.items()}
        count = self._catalog.update_rows(
            self._database_for(plan.table, session), plan.table.name, matches, assignments
        )
        return ExecutionResult.affected(count)

    def _execute_delete(
        self, plan: DeletePlan, session: Session, evaluator: ExpressionEvaluator
    ) -> ExecutionResult:
        schema = self._table_schema(plan.table, session)
        predicate = plan.predicate

        def matches(row: tuple[SqlValue, ...]) -> bool:
            return predicate is None or evaluator.is_true(predicate, Scope(schema, row))

        count = self._catalog.delete_rows(self._database_for(plan.table, session), plan.table.name, matches)
        return ExecutionResult.affected(count)

    # -- DDL ----------------------------------------------------------

    def _column_from_spec(self, spec: ColumnSpec, evaluator: ExpressionEvaluator) -> Column:
        type_spec = spec.type_spec
        sql_type = type_spec.sql_type
        default: ColumnDefault | None = None
        if spec.default is not None:
            if isinstance(spec.default, FunctionExpr) and spec.default.name in _TIMESTAMP_FUNCTIONS:
                default = ColumnDefault(current_timestamp=True)
            else:
                default = ColumnDefault(value=evaluator.evaluate(spec.default, Scope(RowSchema([]))))
        max_length = None
        if type_spec.name in SIZED_TEXT_TYPES:
            max_length = type_spec.args[0] if type_spec.args else None
        return Column(
            name=spec.name,
            sql_type=sql_type,
            declared_type=type_spec.name,
            nullable=spec.nullable,
            primary_key=spec.primary_key,
            identity=IdentitySpec(*spec.identity) if spec.identity is not None else None,
            default=default,
            max_length=max_length,
        )

    def _execute_create_table(
        self, plan: CreateTablePlan, session: Session, evaluator: ExpressionEvaluator
    ) -> ExecutionResult:
        definition = TableDefinition(
            name=plan.table.name,
            columns=tuple(self._column_from_spec(spec, evaluator) for spec in plan.columns),
            primary_key=tuple(plan.primary_key),
        )
        table = self._catalog.create_table(self._database_for(plan.table, session), definition)
        return ExecutionResult.status(f"Table '{table.name}' created.")

    def _execute_drop_table(self, plan: DropTablePlan, session: Session) -> ExecutionResult:
        database = self._database_for(plan.table, session)
        if plan.if_exists and not self._catalog.get_database(database).has_table(plan.table.name):
            return ExecutionResult.status(f"Table '{plan.table.name}' does not exist; nothing dropped.")
        self._catalog.drop_table(database, plan.table.name)
        return ExecutionResult.status(f"Table '{plan.table.name}' dropped.")

    def _execute_alter_table(
        self, plan: AlterTablePlan, session: Session, evaluator: ExpressionEvaluator
    ) -> ExecutionResult:
        change: AddColumn | DropColumn
        if plan.add_column is not None:
            change = AddColumn(self._column_from_spec(plan.add_column, evaluator))
        else:
            assert plan.drop_column is not None
            change = DropColumn(plan.drop_column)
        table = self._catalog.alter_table(self._database_for(plan.table, session), plan.table.name, change)
        return ExecutionResult.status(f"Table '{table.name}' altered.")

    # -- session ------------------------------------------------------

    def _execute_use(self, plan: UsePlan, session: Session) -> ExecutionResult:
        database = self._catalog.get_database(plan.database)
        session.database = database.name
        return ExecutionResult.status(f"Changed database context to '{database.name}'.")


def _output_key(position: int) -> SortKey:
    return lambda scope: scope.values[position]


def _source_key(expr: Expression, evaluator: ExpressionEvaluator) -> SortKey:
    def key(scope: Scope) -> SqlValue:
        assert scope.origin is not None
        return evaluator.evaluate(expr, scope.origin)

    return key

"""Unit tests for the query executor."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from mock_sql.adapters.inbound.sql_parser import SQLParser
from mock_sql.application.executor import ExecutionResult, QueryExecutor, Row, Session
from mock_sql.domain.errors import (
    AmbiguousReference,
    InvalidGrouping,
    SemanticError,
    UnknownDatabase,
    UnknownTable,
)
from mock_sql.domain.services import CatalogStore


class ExecutorTestBase:
    """Base class wiring an executor to a seeded catalog."""

    @pytest.fixture
    def executor(self, catalog: CatalogStore, now: datetime) -> QueryExecutor:
        """Create an executor with a fixed clock."""
        return QueryExecutor(catalog, clock=lambda: now)

    @pytest.fixture
    def session(self) -> Session:
        return Session(database="UniversityDB")

    @staticmethod
    def run(executor: QueryExecutor, session: Session, sql: str) -> ExecutionResult:
        result = ExecutionResult.status("")
        for plan in SQLParser().parse(sql):
            result = executor.execute(plan, session)
        return result

    @staticmethod
    def values(result: ExecutionResult) -> list[list[object]]:
        assert result.rows is not None
        return [row.values for row in result.rows]


@pytest.mark.unit
class TestSelect(ExecutorTestBase):
    """Tests for single-table SELECT."""

    def test_select_star(self, executor: QueryExecutor, session: Session) -> None:
        """Test SELECT * returns every column and row."""
        result = self.run(executor, session, "SELECT * FROM STUDENTS")

        assert result.is_tabular
        assert result.columns == ["ID", "NAME", "EMAIL", "MAJOR", "GPA", "AGE", "ENROLLED_AT"]
        assert len(result.rows) == 8

    def test_where(self, executor: QueryExecutor, session: Session) -> None:
        """Test filtering with WHERE."""
        result = self.run(executor, session, "SELECT NAME FROM STUDENTS WHERE GPA > 3.5")

        assert [r["NAME"] for r in result.rows] == ["Ahmed Ali", "Sara Hassan", "Mona Saleh"]

    def test_where_null_is_unknown(self, executor: QueryExecutor, session: Session) -> None:
        """Test that rows with NULL in the predicate are dropped either way."""
        equal = self.run(executor, session, "SELECT ID FROM STUDENTS WHERE MAJOR = 'Physics'")
        not_equal = self.run(executor, session, "SELECT ID FROM STUDENTS WHERE MAJOR <> 'Physics'")

        assert len(equal.rows) + len(not_equal.rows) == 7

    def test_row_shape(self, executor: QueryExecutor, session: Session) -> None:
        """Test that each row carries the output columns and its values."""
        result = self.run(executor, session, "SELECT ID, NAME FROM STUDENTS WHERE ID = 2")
        row = result.rows[0]

        assert isinstance(row, Row)
        assert row.columns == ["ID", "NAME"]
        assert row.values == [2, "Sara Hassan"]
        assert repr(row) == "Row(ID=2, NAME='Sara Hassan')"

    def test_alias_and_expression_names(self, executor: QueryExecutor, session: Session) -> None:
        """Test output column naming."""
        result = self.run(
            executor, session, "SELECT NAME AS StudentName, AGE + 1, UPPER(MAJOR) FROM STUDENTS"
        )
        assert result.columns == ["StudentName", "AGE + 1", "UPPER(MAJOR)"]

    def test_select_without_from(self, executor: QueryExecutor, session: Session) -> None:
        """Test a constant SELECT."""
        result = self.run(executor, session, "SELECT 1 + 1 AS two, 'x'")
        assert self.values(result) == [[2, "x"]]

    def test_three_part_name(self, executor: QueryExecutor, session: Session) -> None:
        """Test reading another database without USE."""
        result = self.run(executor, session, "SELECT COUNT(*) FROM ShopDB.dbo.PRODUCTS")

        assert self.values(result) == [[8]]
        assert session.database == "UniversityDB"

    def test_unknown_table(self, executor: QueryExecutor, session: Session) -> None:
        """Test selecting from a table of another database."""
        with pytest.raises(UnknownTable, match="Invalid object name 'PRODUCTS'"):
            self.run(executor, session, "SELECT * FROM PRODUCTS")


@pytest.mark.unit
class TestJoins(ExecutorTestBase):
    """Tests for joins."""

    def test_inner_join(self, executor: QueryExecutor, session: Session) -> None:
        """Test an inner join."""
        result = self.run(
            executor,
            session,
            "SELECT s.NAME, c.TITLE FROM STUDENTS s "
            "JOIN ENROLLMENTS e ON s.ID = e.STUDENT_ID "
            "JOIN COURSES c ON c.ID = e.COURSE_ID",
        )

        assert len(result.rows) == 12
        assert result.rows[0].values == ["Ahmed Ali", "Introduction to Programming"]

    def test_left_join(self, executor: QueryExecutor, session: Session) -> None:
        """Test that LEFT JOIN keeps unmatched left rows padded with NULL."""
        result = self.run(
            executor,
            session,
            "SELECT s.NAME, e.COURSE_ID FROM STUDENTS s "
            "LEFT JOIN ENROLLMENTS e ON s.ID = e.STUDENT_ID",
        )

        assert len(result.rows) == 13
        assert ["Mona Saleh", None] in self.values(result)

    def test_right_join_unmatched_last(self, executor: QueryExecutor, session: Session) -> None:
        """Test that unmatched right rows follow the matched ones."""
        result = self.run(
            executor,
            session,
            "SELECT c.TITLE, e.ID FROM ENROLLMENTS e RIGHT JOIN COURSES c ON e.COURSE_ID = c.ID",
        )

        assert len(result.rows) == 13
        assert result.rows[-1].values == ["Web Development", None]

    def test_full_join(self, executor: QueryExecutor, session: Session) -> None:
        """Test FULL JOIN keeps unmatched rows of both sides."""
        result = self.run(
            executor,
            session,
            "SELECT s.ID, c.ID FROM STUDENTS s FULL JOIN COURSES c ON s.ID = c.ID + 100",
        )
        assert len(result.rows) == 14

    def test_cross_join(self, executor: QueryExecutor, session: Session) -> None:
        """Test a cross join."""
        result = self.run(executor, session, "SELECT COUNT(*) FROM STUDENTS CROSS JOIN COURSES")
        assert self.values(result) == [[48]]

    def test_star_over_join(self, executor: QueryExecutor, session: Session) -> None:
        """Test * and t.* over a join."""
        sql = "FROM STUDENTS s JOIN ENROLLMENTS e ON s.ID = e.STUDENT_ID"

        assert len(self.run(executor, session, f"SELECT * {sql}").columns) == 12
        assert self.run(executor, session, f"SELECT e.* {sql}").columns == [
            "ID",
            "STUDENT_ID",
            "COURSE_ID",
            "GRADE",
            "SEMESTER",
        ]

    def test_unknown_star_qualifier(self, executor: QueryExecutor, session: Session) -> None:
        """Test t.* with an unknown binding."""
        with pytest.raises(UnknownTable):
            self.run(executor, session, "SELECT x.* FROM STUDENTS s")

    def test_ambiguous_column(self, executor: QueryExecutor, session: Session) -> None:
        """Test an unqualified column present on both sides."""
        with pytest.raises(AmbiguousReference):
            self.run(
                executor,
                session,
                "SELECT ID FROM STUDENTS s JOIN ENROLLMENTS e ON s.ID = e.STUDENT_ID",
            )

    def test_duplicate_correlation_name(self, executor: QueryExecutor, session: Session) -> None:
        """Test joining a table to itself without aliases."""
        with pytest.raises(AmbiguousReference, match="specified multiple times"):
            self.run(executor, session, "SELECT * FROM STUDENTS JOIN STUDENTS ON 1 = 1")


@pytest.mark.unit
class TestGrouping(ExecutorTestBase):
    """Tests for aggregation, GROUP BY and HAVING."""

    def test_group_by(self, executor: QueryExecutor, session: Session) -> None:
        """Test groups in first-seen order, NULL forming its own group."""
        result = self.run(executor, session, "SELECT MAJOR, COUNT(*) FROM STUDENTS GROUP BY MAJOR")

        assert self.values(result) == [
            ["Computer Science", 3],
            ["Mathematics", 2],
            ["Physics", 2],
            [None, 1],
        ]

    def test_having(self, executor: QueryExecutor, session: Session) -> None:
        """Test filtering groups."""
        result = self.run(
            executor,
            session,
            "SELECT MAJOR, COUNT(*) AS N FROM STUDENTS GROUP BY MAJOR HAVING COUNT(*) > 2",
        )
        assert self.values(result) == [["Computer Science", 3]]

    def test_aggregates_without_group_by(self, executor: QueryExecutor, session: Session) -> None:
        """Test whole-table aggregates."""
        result = self.run(
            executor,
            session,
            "SELECT COUNT(*), COUNT(EMAIL), AVG(GPA), MIN(AGE), MAX(NAME) FROM STUDENTS",
        )
        assert self.values(result) == [[8, 7, Decimal("3.35"), 19, "Yousef Ibrahim"]]

    def test_aggregate_over_empty_input(self, executor: QueryExecutor, session: Session) -> None:
        """Test that an aggregate without GROUP BY always yields one row."""
        result = self.run(
            executor, session, "SELECT COUNT(*), MAX(GPA) FROM STUDENTS WHERE ID > 100"
        )
        assert self.values(result) == [[0, None]]

    def test_group_by_over_empty_input(self, executor: QueryExecutor, session: Session) -> None:
        """Test that GROUP BY over no rows yields no groups."""
        result = self.run(
            executor, session, "SELECT MAJOR, COUNT(*) FROM STUDENTS WHERE ID > 100 GROUP BY MAJOR"
        )
        assert result.rows == []

    def test_ungrouped_column(self, executor: QueryExecutor, session: Session) -> None:
        """Test that a bare column next to an aggregate is rejected."""
        with pytest.raises(InvalidGrouping, match="Column 'NAME' is invalid"):
            self.run(executor, session, "SELECT NAME, COUNT(*) FROM STUDENTS")

    def test_having_without_grouping(self, executor: QueryExecutor, session: Session) -> None:
        """Test HAVING on an ungrouped query."""
        with pytest.raises(SemanticError, match="HAVING"):
            self.run(executor, session, "SELECT NAME FROM STUDENTS HAVING NAME = 'x'")

    def test_join_with_grouping(self, executor: QueryExecutor, session: Session) -> None:
        """Test counting enrollments per course title."""
        result = self.run(
            executor,
            session,
            "SELECT c.TITLE, COUNT(e.ID) AS N FROM COURSES c "
            "LEFT JOIN ENROLLMENTS e ON e.COURSE_ID = c.ID "
            "GROUP BY c.TITLE ORDER BY N DESC, c.TITLE",
        )
        assert self.values(result)[0] == ["Data Structures", 3]
        assert self.values(result)[-1] == ["Web Development", 0]


@pytest.mark.unit
class TestOrdering(ExecutorTestBase):
    """Tests for ORDER BY, DISTINCT and row limits."""

    def test_order_by_nulls_last(self, executor: QueryExecutor, session: Session) -> None:
        """Test that NULLs sort last in both directions."""
        ascending = self.run(executor, session, "SELECT NAME, MAJOR FROM STUDENTS ORDER BY MAJOR")
        descending = self.run(executor, session, "SELECT NAME, MAJOR FROM STUDENTS ORDER BY MAJOR DESC")

        assert ascending.rows[-1]["NAME"] == "Mona Saleh"
        assert descending.rows[-1]["NAME"] == "Mona Saleh"
        assert descending.rows[0]["MAJOR"] == "Physics"

    def test_sort_is_stable(self, executor: QueryExecutor, session: Session) -> None:
        """Test that ties keep their original order."""
        result = self.run(executor, session, "SELECT NAME FROM STUDENTS ORDER BY MAJOR")
        assert [r["NAME"] for r in result.rows[:3]] == ["Ahmed Ali", "Omar Khalid", "Khaled Nasser"]

    def test_order_by_unselected_column(self, executor: QueryExecutor, session: Session) -> None:
        """Test sorting by a source column missing from the select list."""
        result = self.run(executor, session, "SELECT NAME FROM STUDENTS ORDER BY AGE DESC, ID")
        assert [r["NAME"] for r in result.rows[:3]] == ["Yousef Ibrahim", "Omar Khalid", "Huda Mahmoud"]

    def test_order_by_alias_and_position(self, executor: QueryExecutor, session: Session) -> None:
        """Test ORDER BY an output alias and an ordinal."""
        by_alias = self.run(executor, session, "SELECT NAME, GPA AS G FROM STUDENTS ORDER BY G DESC")
        by_position = self.run(executor, session, "SELECT NAME, GPA FROM STUDENTS ORDER BY 2 DESC")

        assert by_alias.rows[0]["NAME"] == "Mona Saleh"
        assert by_position.rows[0]["NAME"] == "Mona Saleh"

    def test_order_by_position_out_of_range(self, executor: QueryExecutor, session: Session) -> None:
        """Test an ordinal beyond the select list."""
        with pytest.raises(SemanticError, match="out of range"):
            self.run(executor, session, "SELECT NAME FROM STUDENTS ORDER BY 3")

    def test_distinct(self, executor: QueryExecutor, session: Session) -> None:
        """Test that DISTINCT treats NULLs as equal."""
        result = self.run(executor, session, "SELECT DISTINCT MAJOR FROM STUDENTS")
        assert len(result.rows) == 4

    def test_distinct_order_by_unselected(self, executor: QueryExecutor, session: Session) -> None:
        """Test that DISTINCT requires ORDER BY items in the select list."""
        with pytest.raises(SemanticError, match="SELECT DISTINCT"):
            self.run(executor, session, "SELECT DISTINCT MAJOR FROM STUDENTS ORDER BY AGE")

    def test_top(self, executor: QueryExecutor, session: Session) -> None:
        """Test TOP after ORDER BY."""
        result = self.run(executor, session, "SELECT TOP 3 NAME FROM STUDENTS ORDER BY GPA DESC")
        assert [r["NAME"] for r in result.rows] == ["Mona Saleh", "Sara Hassan", "Ahmed Ali"]

    def test_offset_fetch(self, executor: QueryExecutor, session: Session) -> None:
        """Test paging with OFFSET and FETCH."""
        result = self.run(
            executor,
            session,
            "SELECT ID FROM STUDENTS ORDER BY ID OFFSET 2 ROWS FETCH NEXT 2 ROWS ONLY",
        )
        assert self.values(result) == [[3], [4]]

    def test_offset_beyond_end(self, executor: QueryExecutor, session: Session) -> None:
        """Test an offset past the last row."""
        result = self.run(executor, session, "SELECT ID FROM STUDENTS LIMIT 5 OFFSET 20")
        assert result.rows == []


@pytest.mark.unit
class TestModification(ExecutorTestBase):
    """Tests for INSERT, UPDATE and DELETE."""

    def test_insert(self, executor: QueryExecutor, session: Session) -> None:
        """Test the affected-rows status of INSERT."""
        result = self.run(
            executor,
            session,
            "INSERT INTO COURSES VALUES (7, 'Optics', 'Physics', 3), (8, 'Statistics', 'Mathematics', 3)",
        )

        assert not result.is_tabular
        assert result.message == "(2 row(s) affected)"
        assert result.rows_affected == 2

    def test_insert_defaults(self, executor: QueryExecutor, session: Session, now: datetime) -> None:
        """Test identity, constant and timestamp defaults through SQL."""
        self.run(
            executor,
            session,
            "CREATE TABLE AUDIT_LOG ("
            "ID INT IDENTITY(1,1) PRIMARY KEY, "
            "MSG VARCHAR(20) DEFAULT 'none', "
            "LOGGED_AT DATETIME DEFAULT GETDATE()); "
            "INSERT INTO AUDIT_LOG DEFAULT VALUES; "
            "INSERT INTO AUDIT_LOG (MSG) VALUES ('hi'); "
            "INSERT INTO AUDIT_LOG VALUES (DEFAULT, NULL)",
        )

        result = self.run(executor, session, "SELECT * FROM AUDIT_LOG")
        assert self.values(result) == [[1, "none", now], [2, "hi", now], [3, "none", None]]

    def test_insert_select(self, executor: QueryExecutor, session: Session) -> None:
        """Test INSERT ... SELECT."""
        self.run(executor, session, "CREATE TABLE ARCHIVE (ID INT, NAME VARCHAR(50))")
        result = self.run(
            executor,
            session,
            "INSERT INTO ARCHIVE SELECT ID, NAME FROM STUDENTS WHERE MAJOR = 'Physics'",
        )

        assert result.rows_affected == 2
        assert self.values(self.run(executor, session, "SELECT NAME FROM ARCHIVE")) == [
            ["Lina Youssef"],
            ["Huda Mahmoud"],
        ]

    def test_update(self, executor: QueryExecutor, session: Session) -> None:
        """Test UPDATE with an expression over the old value."""
        result = self.run(
            executor, session, "UPDATE STUDENTS SET GPA = GPA + 0.1 WHERE MAJOR = 'Physics'"
        )
        assert result.message == "(2 row(s) affected)"

        gpa = self.run(executor, session, "SELECT GPA FROM STUDENTS WHERE ID = 4")
        assert self.values(gpa) == [[Decimal("3.30")]]

    def test_update_swaps_with_old_values(self, executor: QueryExecutor, session: Session) -> None:
        """Test that every SET expression sees the row before the update."""
        self.run(executor, session, "UPDATE COURSES SET TITLE = DEPARTMENT, DEPARTMENT = TITLE WHERE ID = 3")

        result = self.run(executor, session, "SELECT TITLE, DEPARTMENT FROM COURSES WHERE ID = 3")
        assert self.values(result) == [["Mathematics", "Calculus I"]]

    def test_delete(self, executor: QueryExecutor, session: Session) -> None:
        """Test DELETE with a predicate."""
        result = self.run(executor, session, "DELETE FROM ENROLLMENTS WHERE GRADE IS NULL")
        assert result.rows_affected == 1

        result = self.run(executor, session, "DELETE FROM ENROLLMENTS WHERE ID > 100")
        assert result.message == "(0 row(s) affected)"


@pytest.mark.unit
class TestDefinition(ExecutorTestBase):
    """Tests for DDL and USE."""

    def test_create_and_drop(self, executor: QueryExecutor, session: Session) -> None:
        """Test CREATE TABLE and DROP TABLE status messages."""
        created = self.run(executor, session, "CREATE TABLE T (ID INT PRIMARY KEY, NAME VARCHAR(50))")
        dropped = self.run(executor, session, "DROP TABLE T")

        assert created.message == "Table 'T' created."
        assert dropped.message == "Table 'T' dropped."

    def test_drop_if_exists(self, executor: QueryExecutor, session: Session) -> None:
        """Test DROP TABLE IF EXISTS on a missing table."""
        result = self.run(executor, session, "DROP TABLE IF EXISTS NOPE")
        assert result.message == "Table 'NOPE' does not exist; nothing dropped."

        with pytest.raises(UnknownTable):
            self.run(executor, session, "DROP TABLE NOPE")

    def test_alter(self, executor: QueryExecutor, session: Session) -> None:
        """Test ALTER TABLE ADD with a default."""
        result = self.run(executor, session, "ALTER TABLE COURSES ADD CAPACITY INT DEFAULT 30")
        assert result.message == "Table 'COURSES' altered."

        capacities = self.run(executor, session, "SELECT DISTINCT CAPACITY FROM COURSES")
        assert self.values(capacities) == [[30]]

    def test_use(self, executor: QueryExecutor, session: Session) -> None:
        """Test switching databases."""
        result = self.run(executor, session, "USE LibraryDB")

        assert result.message == "Changed database context to 'LibraryDB'."
        assert session.database == "LibraryDB"

    def test_use_unknown_database(self, executor: QueryExecutor, session: Session) -> None:
        """Test that a failed USE leaves the session unchanged."""
        with pytest.raises(UnknownDatabase):
            self.run(executor, session, "USE HrDB")
        assert session.database == "UniversityDB"

    def test_database_ddl_refused(self, executor: QueryExecutor, session: Session) -> None:
        """Test that databases cannot be created."""
        with pytest.raises(SemanticError, match="fixed set of databases"):
            self.run(executor, session, "CREATE DATABASE Sandbox")

"""Built-in seed data for the three sandbox databases.

Implements the SeedProvider port with fixed content:

    UniversityDB  STUDENTS (8), COURSES (6), ENROLLMENTS (12)
    ShopDB        CUSTOMERS (5), PRODUCTS (8), ORDERS (8)
    LibraryDB     BOOKS (8), MEMBERS (5), LOANS (7)

The fixtures include the NULLs and unmatched rows that make outer joins
and IS NULL predicates worth practising: student 6 has no enrollments,
course 6 has no students, some e-mails and majors are missing.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from mock_sql.domain.entities import Column, ColumnDefault, Database, IdentitySpec, Table
from mock_sql.domain.value_objects import SIZED_TEXT_TYPES, SqlType, coerce_value

UNIVERSITY_DB = "UniversityDB"
SHOP_DB = "ShopDB"
LIBRARY_DB = "LibraryDB"


def _column(
    name: str,
    declared: str,
    size: int | None = None,
    *,
    nullable: bool = True,
    primary_key: bool = False,
    identity: IdentitySpec | None = None,
    default: ColumnDefault | None = None,
) -> Column:
    return Column(
        name=name,
        sql_type=SqlType.from_declared(declared),
        declared_type=declared,
        nullable=nullable and not primary_key and identity is None,
        primary_key=primary_key,
        identity=identity,
        default=default,
        max_length=size if declared in SIZED_TEXT_TYPES else None,
    )


def _table(name: str, columns: list[Column], rows: Sequence[Sequence[Any]]) -> Table:
    """Build a table, converting literal seed values to column types."""
    stored = [
        tuple(
            coerce_value(value, column.sql_type, column=column.name, max_length=column.max_length)
            for column, value in zip(columns, row, strict=True)
        )
        for row in rows
    ]
    table = Table(name=name, columns=columns, rows=stored)
    table.advance_identity(len(stored))
    return table


def _university() -> Database:
    students = _table(
        "STUDENTS",
        [
            _column("ID", "INT", primary_key=True),
            _column("NAME", "VARCHAR", 50, nullable=False),
            _column("EMAIL", "VARCHAR", 100),
            _column("MAJOR", "VARCHAR", 50),
            _column("GPA", "DECIMAL"),
            _column("AGE", "INT"),
            _column("ENROLLED_AT", "DATE"),
        ],
        [
            (1, "Ahmed Ali", "ahmed@uni.edu", "Computer Science", "3.60", 20, "2022-09-01"),
            (2, "Sara Hassan", "sara@uni.edu", "Mathematics", "3.85", 21, "2021-09-01"),
            (3, "Omar Khalid", "omar@uni.edu", "Computer Science", "2.90", 22, "2020-09-01"),
            (4, "Lina Youssef", None, "Physics", "3.20", 19, "2023-09-01"),
            (5, "Yousef Ibrahim", "yousef@uni.edu", "Mathematics", "2.75", 23, "2020-09-01"),
            (6, "Mona Saleh", "mona@uni.edu", None, "3.95", 20, "2022-09-01"),
            (7, "Khaled Nasser", "khaled@uni.edu", "Computer Science", "3.10", 21, "2021-09-01"),
            (8, "Huda Mahmoud", "huda@uni.edu", "Physics", "3.45", 22, "2021-02-01"),
        ],
    )
    courses = _table(
        "COURSES",
        [
            _column("ID", "INT", primary_key=True),
            _column("TITLE", "VARCHAR", 100, nullable=False),
            _column("DEPARTMENT", "VARCHAR", 50),
            _column("CREDITS", "INT"),
        ],
        [
            (1, "Introduction to Programming", "Computer Science", 4),
            (2, "Data Structures", "Computer Science", 4),
            (3, "Calculus I", "Mathematics", 3),
            (4, "Linear Algebra", "Mathematics", 3),
            (5, "Classical Mechanics", "Physics", 4),
            (6, "Web Development", "Computer Science", 3),
        ],
    )
    enrollments = _table(
        "ENROLLMENTS",
        [
            _column("ID", "INT", primary_key=True, identity=IdentitySpec(1, 1)),
            _column("STUDENT_ID", "INT", nullable=False),
            _column("COURSE_ID", "INT", nullable=False),
            _column("GRADE", "CHAR", 1),
            _column("SEMESTER", "VARCHAR", 20),
        ],
        [
            (1, 1, 1, "A", "Fall 2023"),
            (2, 1, 2, "B", "Fall 2023"),
            (3, 2, 3, "A", "Fall 2023"),
            (4, 2, 4, "A", "Spring 2024"),
            (5, 3, 1, "C", "Fall 2023"),
            (6, 3, 2, None, "Spring 2024"),
            (7, 4, 5, "B", "Spring 2024"),
            (8, 5, 3, "D", "Fall 2023"),
            (9, 5, 4, "C", "Spring 2024"),
            (10, 7, 1, "B", "Spring 2024"),
            (11, 7, 2, "A", "Spring 2024"),
            (12, 8, 5, "A", "Fall 2023"),
        ],
    )
    return Database(
        name=UNIVERSITY_DB,
        tables={t.name: t for t in (students, courses, enrollments)},
    )


def _shop() -> Database:
    customers = _table(
        "CUSTOMERS",
        [
            _column("ID", "INT", primary_key=True),
            _column("NAME", "VARCHAR", 50, nullable=False),
            _column("EMAIL", "VARCHAR", 100),
            _column("CITY", "VARCHAR", 50),
            _column("JOINED_AT", "DATETIME"),
        ],
        [
            (1, "Nour Adel", "nour@mail.com", "Cairo", "2023-01-15"),
            (2, "Karim Fathy", "karim@mail.com", "Alexandria", "2023-03-02"),
            (3, "Rana Samir", None, "Cairo", "2023-05-20"),
            (4, "Tarek Hosny", "tarek@mail.com", "Giza", "2023-07-11"),
            (5, "Dina Farouk", "dina@mail.com", None, "2024-01-08"),
        ],
    )
    products = _table(
        "PRODUCTS",
        [
            _column("ID", "INT", primary_key=True),
            _column("NAME", "VARCHAR", 100, nullable=False),
            _column("CATEGORY", "VARCHAR", 50),
            _column("PRICE", "DECIMAL", nullable=False),
            _column("STOCK", "INT", nullable=False, default=ColumnDefault(0)),
            _column("IS_ACTIVE", "BIT", default=ColumnDefault(True)),
        ],
        [
            (1, "Laptop", "Electronics", "15000.00", 12, True),
            (2, "Smartphone", "Electronics", "8500.00", 25, True),
            (3, "Headphones", "Electronics", "750.00", 40, True),
            (4, "Office Chair", "Furniture", "2200.00", 8, True),
            (5, "Desk Lamp", "Furniture", "350.00", 0, False),
            (6, "Notebook", "Stationery", "25.50", 200, True),
            (7, "Pen Set", "Stationery", "60.00", 150, True),
            (8, "Monitor", "Electronics", "4200.00", 5, True),
        ],
    )
    orders = _table(
        "ORDERS",
        [
            _column("ID", "INT", primary_key=True, identity=IdentitySpec(1001, 1)),
            _column("CUSTOMER_ID", "INT", nullable=False),
            _column("PRODUCT_ID", "INT", nullable=False),
            _column("QUANTITY", "INT", nullable=False, default=ColumnDefault(1)),
            _column("ORDER_DATE", "DATETIME", default=ColumnDefault(current_timestamp=True)),
        ],
        [
            (1001, 1, 1, 1, "2024-01-10"),
            (1002, 1, 3, 2, "2024-01-10"),
            (1003, 2, 2, 1, "2024-02-05"),
            (1004, 3, 6, 10, "2024-02-14"),
            (1005, 3, 7, 2, "2024-02-14"),
            (1006, 4, 4, 1, "2024-03-01"),
            (1007, 2, 8, 2, "2024-03-18"),
            (1008, 5, 3, 1, "2024-04-02"),
        ],
    )
    return Database(
        name=SHOP_DB,
        tables={t.name: t for t in (customers, products, orders)},
    )


def _library() -> Database:
    books = _table(
        "BOOKS",
        [
            _column("ID", "INT", primary_key=True),
            _column("TITLE", "VARCHAR", 100, nullable=False),
            _column("AUTHOR", "VARCHAR", 100),
            _column("GENRE", "VARCHAR", 30),
            _column("PUBLISHED_YEAR", "INT"),
            _column("AVAILABLE", "BIT", default=ColumnDefault(True)),
        ],
        [
            (1, "The Alchemist", "Paulo Coelho", "Fiction", 1988, True),
            (2, "Clean Code", "Robert C. Martin", "Programming", 2008, False),
            (3, "Sapiens", "Yuval Noah Harari", "History", 2011, True),
            (4, "The Pragmatic Programmer", "Andrew Hunt", "Programming", 1999, False),
            (5, "Dune", "Frank Herbert", "Science Fiction", 1965, True),
            (6, "1984", "George Orwell", "Fiction", 1949, False),
            (7, "A Brief History of Time", "Stephen Hawking", "Science", 1988, True),
            (8, "Season of Migration to the North", "Tayeb Salih", "Fiction", 1966, True),
        ],
    )
    members = _table(
        "MEMBERS",
        [
            _column("ID", "INT", primary_key=True),
            _column("NAME", "VARCHAR", 50, nullable=False),
            _column("EMAIL", "VARCHAR", 100),
            _column("JOINED_AT", "DATE"),
        ],
        [
            (1, "Amal Hassan", "amal@lib.org", "2022-02-10"),
            (2, "Basel Omar", "basel@lib.org", "2022-06-21"),
            (3, "Cyrine Nabil", None, "2023-01-05"),
            (4, "Dalia Mostafa", "dalia@lib.org", "2023-04-17"),
            (5, "Emad Zaki", "emad@lib.org", "2023-09-30"),
        ],
    )
    loans = _table(
        "LOANS",
        [
            _column("ID", "INT", primary_key=True, identity=IdentitySpec(1, 1)),
            _column("BOOK_ID", "INT", nullable=False),
            _column("MEMBER_ID", "INT", nullable=False),
            _column("LOAN_DATE", "DATE", nullable=False),
            _column("RETURN_DATE", "DATE"),
        ],
        [
            (1, 2, 1, "2024-03-01", None),
            (2, 4, 2, "2024-03-05", None),
            (3, 6, 3, "2024-03-10", None),
            (4, 1, 1, "2024-01-12", "2024-01-26"),
            (5, 3, 4, "2024-02-01", "2024-02-15"),
            (6, 5, 5, "2024-02-20", "2024-03-05"),
            (7, 7, 2, "2024-01-03", "2024-01-17"),
        ],
    )
    return Database(
        name=LIBRARY_DB,
        tables={t.name: t for t in (books, members, loans)},
    )


class BuiltinSeedProvider:
    """Seed provider backed by the fixtures in this module."""

    def __init__(self, default_database: str = UNIVERSITY_DB) -> None:
        self._default_database = default_database

    @property
    def default_database(self) -> str:
        return self._default_database

    def load(self) -> list[Database]:
        return [_university(), _shop(), _library()]

"""Unit tests for schema snapshots."""

from __future__ import annotations

import pytest

from mock_sql.application.schema_introspector import SchemaIntrospector
from mock_sql.domain.entities import AddColumn, Column, TableDefinition
from mock_sql.domain.errors import UnknownDatabase
from mock_sql.domain.services import CatalogStore
from mock_sql.domain.value_objects import SqlType


@pytest.mark.unit
class TestSchemaIntrospector:
    """Tests for SchemaIntrospector."""

    @pytest.fixture
    def introspector(self, catalog: CatalogStore) -> SchemaIntrospector:
        return SchemaIntrospector(catalog)

    def test_university_snapshot(self, introspector: SchemaIntrospector) -> None:
        """Test the default database's tables and column metadata."""
        snapshot = introspector.snapshot("UniversityDB")

        assert snapshot.current_database == "UniversityDB"
        assert snapshot.available_databases == ["UniversityDB", "ShopDB", "LibraryDB"]
        assert [t.name for t in snapshot.tables] == ["STUDENTS", "COURSES", "ENROLLMENTS"]

        students = snapshot.tables[0]
        id_column, name_column = students.columns[:2]
        assert (id_column.name, id_column.type, id_column.key_role) == ("ID", "INTEGER", "PK")
        assert (name_column.type, name_column.key_role) == ("TEXT", None)
        assert students.columns[4].type == "DECIMAL"
        assert students.columns[6].type == "DATETIME"

    def test_shop_snapshot(self, introspector: SchemaIntrospector) -> None:
        """Test another database's tables."""
        snapshot = introspector.snapshot("ShopDB")
        assert [t.name for t in snapshot.tables] == ["CUSTOMERS", "PRODUCTS", "ORDERS"]

    def test_snapshot_reflects_ddl(self, catalog: CatalogStore, introspector: SchemaIntrospector) -> None:
        """Test that snapshots are never stale."""
        catalog.create_table(
            "UniversityDB", TableDefinition("NOTES", (Column("BODY", SqlType.TEXT, "VARCHAR"),))
        )
        catalog.alter_table("UniversityDB", "COURSES", AddColumn(Column("ACTIVE", SqlType.BOOLEAN, "BIT")))

        snapshot = introspector.snapshot("UniversityDB")

        assert snapshot.tables[-1].name == "NOTES"
        assert snapshot.tables[1].columns[-1].type == "BOOLEAN"

    def test_to_dict(self, introspector: SchemaIntrospector) -> None:
        """Test the JSON shape, with keyRole only on key columns."""
        data = introspector.snapshot("UniversityDB").to_dict()

        assert data["currentDatabase"] == "UniversityDB"
        assert data["availableDatabases"] == ["UniversityDB", "ShopDB", "LibraryDB"]
        columns = data["tables"][0]["columns"]
        assert columns[0] == {"name": "ID", "type": "INTEGER", "keyRole": "PK"}
        assert columns[1] == {"name": "NAME", "type": "TEXT"}

    def test_unknown_database(self, introspector: SchemaIntrospector) -> None:
        """Test describing a database that does not exist."""
        with pytest.raises(UnknownDatabase):
            introspector.snapshot("HrDB")

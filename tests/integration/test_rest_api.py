"""Integration tests for the REST API adapter."""

from __future__ import annotations

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from mock_sql import __version__
from mock_sql.adapters.inbound.rest_api import create_app
from mock_sql.application import MockSqlEngine
from mock_sql.infrastructure.metrics import MetricsRegistry


@pytest.mark.integration
class TestRestApi:
    """Tests for the HTTP endpoints."""

    @pytest.fixture
    def client(self, metrics_registry: MetricsRegistry, now: datetime) -> TestClient:
        """Create a test client over a fresh engine."""
        engine = MockSqlEngine(metrics=metrics_registry, clock=lambda: now)
        return TestClient(create_app(engine, metrics=metrics_registry))

    def test_health(self, client: TestClient) -> None:
        """Test health check endpoint."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "version": __version__,
            "currentDatabase": "UniversityDB",
        }

    def test_execute_select(self, client: TestClient) -> None:
        """Test a tabular result."""
        response = client.post(
            "/execute",
            json={"sql": "SELECT NAME, GPA FROM STUDENTS WHERE ID = 1"},
        )

        assert response.status_code == 200
        assert response.json() == {"columns": ["NAME", "GPA"], "rows": [["Ahmed Ali", 3.6]]}

    def test_execute_status(self, client: TestClient) -> None:
        """Test a status result."""
        response = client.post(
            "/execute",
            json={"sql": "DELETE FROM ENROLLMENTS WHERE GRADE IS NULL"},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "(1 row(s) affected)", "rowsAffected": 1}

    def test_execute_error_is_not_http_error(self, client: TestClient) -> None:
        """Test that SQL errors come back as 200 with error fields."""
        response = client.post("/execute", json={"sql": "SELECT * FROM NOPE"})

        assert response.status_code == 200
        assert response.json() == {
            "error": "Invalid object name 'NOPE'.",
            "errorType": "UnknownTable",
        }

    def test_execute_requires_sql(self, client: TestClient) -> None:
        """Test request validation."""
        response = client.post("/execute", json={})
        assert response.status_code == 422

    def test_use_is_shared_across_requests(self, client: TestClient) -> None:
        """Test that the session database persists between calls."""
        client.post("/execute", json={"sql": "USE LibraryDB"})

        schema = client.get("/schema").json()
        health = client.get("/health").json()

        assert schema["currentDatabase"] == "LibraryDB"
        assert [t["name"] for t in schema["tables"]] == ["BOOKS", "MEMBERS", "LOANS"]
        assert health["currentDatabase"] == "LibraryDB"

    def test_schema(self, client: TestClient) -> None:
        """Test the schema shape."""
        response = client.get("/schema")

        assert response.status_code == 200
        data = response.json()
        assert data["availableDatabases"] == ["UniversityDB", "ShopDB", "LibraryDB"]
        students = data["tables"][0]
        assert students["name"] == "STUDENTS"
        assert students["columns"][0] == {"name": "ID", "type": "INTEGER", "keyRole": "PK"}
        assert students["columns"][1] == {"name": "NAME", "type": "TEXT"}

    def test_reset(self, client: TestClient) -> None:
        """Test that reset restores data and the default database."""
        client.post("/execute", json={"sql": "DELETE FROM STUDENTS; USE ShopDB"})

        response = client.post("/reset")

        assert response.status_code == 200
        assert "UniversityDB" in response.json()["message"]
        rows = client.post("/execute", json={"sql": "SELECT COUNT(*) FROM STUDENTS"}).json()["rows"]
        assert rows == [[8]]

    def test_metrics(self, client: TestClient) -> None:
        """Test Prometheus exposition."""
        client.post("/execute", json={"sql": "SELECT * FROM COURSES"})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert 'mock_sql_statements_total{statement_type="select",status="success"} 1.0' in response.text

"""Pytest configuration and fixtures for mock_sql tests."""

from __future__ import annotations

from datetime import datetime
from typing import Generator

import pytest
from prometheus_client import CollectorRegistry

from mock_sql.adapters.inbound.sql_parser import SQLParser
from mock_sql.adapters.outbound import BuiltinSeedProvider
from mock_sql.application import MockSqlEngine
from mock_sql.domain.services import CatalogStore
from mock_sql.infrastructure.config import Config, ObservabilityConfig
from mock_sql.infrastructure.container import Container, reset_container
from mock_sql.infrastructure.metrics import MetricsRegistry

FIXED_NOW = datetime(2024, 6, 1, 12, 30, 0)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture
def now() -> datetime:
    """The fixed time the test clock reports."""
    return FIXED_NOW


@pytest.fixture
def test_config() -> Config:
    """Provide a configuration with metrics and tracing switched off."""
    return Config(
        observability=ObservabilityConfig(
            log_level="WARNING",
            metrics_enabled=False,
            tracing_enabled=False,
        ),
    )


@pytest.fixture
def catalog() -> CatalogStore:
    """Provide a freshly seeded catalog store."""
    return CatalogStore(BuiltinSeedProvider(), clock=fixed_clock)


@pytest.fixture
def parser() -> SQLParser:
    return SQLParser()


@pytest.fixture
def engine() -> MockSqlEngine:
    """Provide an engine with seed data and a fixed clock, without metrics."""
    return MockSqlEngine(clock=fixed_clock)


@pytest.fixture
def container() -> Generator[Container, None, None]:
    """Provide a fresh DI container for each test."""
    reset_container()
    c = Container()
    yield c
    c.clear()
    reset_container()


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")

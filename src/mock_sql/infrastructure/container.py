"""Dependency injection container."""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from mock_sql.adapters.outbound import BuiltinSeedProvider
from mock_sql.application.sql_engine import MockSqlEngine
from mock_sql.infrastructure.config import Config, get_config
from mock_sql.infrastructure.logging import setup_logging
from mock_sql.infrastructure.metrics import MetricsRegistry, setup_metrics
from mock_sql.infrastructure.tracing import setup_tracing

T = TypeVar("T")


class Container:
    """
    Simple dependency injection container.

    Supports singleton and factory registrations with lazy initialization.
    """

    def __init__(self) -> None:
        """Initialize the container."""
        self._factories: dict[type, Callable[[Container], Any]] = {}
        self._instances: dict[type, Any] = {}

    def register_singleton(self, interface: type[T], instance: T) -> None:
        """
        Register a singleton instance.

        Args:
            interface: The interface/type to register
            instance: The singleton instance
        """
        self._instances[interface] = instance

    def register_factory(
        self,
        interface: type[T],
        factory: Callable[[Container], T],
    ) -> None:
        """
        Register a factory function for lazy instantiation.

        The factory runs on first resolve; its result is reused afterwards.

        Args:
            interface: The interface/type to register
            factory: Factory function that takes the container and returns an instance
        """
        self._factories[interface] = factory

    def resolve(self, interface: type[T]) -> T:
        """
        Resolve a dependency.

        Args:
            interface: The interface/type to resolve

        Returns:
            The resolved instance

        Raises:
            KeyError: If no registration exists for the interface
        """
        if interface in self._instances:
            return self._instances[interface]

        if interface in self._factories:
            instance = self._factories[interface](self)
            self._instances[interface] = instance
            return instance

        raise KeyError(f"No registration found for {interface}")

    def has(self, interface: type) -> bool:
        """Check if an interface is registered."""
        return interface in self._factories or interface in self._instances

    def clear(self) -> None:
        """Clear all registrations and instances."""
        self._factories.clear()
        self._instances.clear()


def _build_engine(container: Container) -> MockSqlEngine:
    config = container.resolve(Config)
    observability = config.observability

    setup_logging(
        level=observability.log_level,
        log_format=observability.log_format,
        max_sql_length=observability.max_logged_sql_length,
    )
    if observability.tracing_enabled:
        setup_tracing(
            service_name=observability.otel_service_name,
            otlp_endpoint=observability.otel_endpoint,
            console_export=observability.otel_console_export,
        )

    metrics = container.resolve(MetricsRegistry) if observability.metrics_enabled else None
    seed_provider = BuiltinSeedProvider(default_database=config.engine.default_database)
    return MockSqlEngine(seed_provider, metrics=metrics)


def configure_container(container: Container, config: Config | None = None) -> Container:
    """
    Register the engine and its collaborators.

    Args:
        container: Container to populate
        config: Configuration to use instead of the environment's

    Returns:
        The same container
    """
    container.register_singleton(Config, config or get_config())
    container.register_factory(MetricsRegistry, lambda _: setup_metrics())
    container.register_factory(MockSqlEngine, _build_engine)
    return container


# Global container instance
_container: Container | None = None


def get_container() -> Container:
    """Get the global container instance, configured from the environment."""
    global _container
    if _container is None:
        _container = configure_container(Container())
    return _container


def reset_container() -> None:
    """Reset the global container (useful for testing)."""
    global _container
    if _container is not None:
        _container.clear()
    _container = None

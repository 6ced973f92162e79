"""Outbound ports - dependencies on external systems."""

from mock_sql.ports.outbound.seed_provider import SeedProvider

__all__ = ["SeedProvider"]

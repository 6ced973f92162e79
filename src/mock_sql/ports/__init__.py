"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Inbound ports: APIs offered to clients (SqlEngine)
- Outbound ports: Dependencies the engine needs (SeedProvider)

Adapters implement these ports with concrete functionality.
"""

from mock_sql.ports.inbound import SqlEngine
from mock_sql.ports.outbound import SeedProvider

__all__ = [
    # Inbound ports
    "SqlEngine",
    # Outbound ports
    "SeedProvider",
]

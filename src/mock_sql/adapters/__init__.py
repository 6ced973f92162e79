"""Adapters layer - concrete implementations of port interfaces.

Adapters provide the actual implementations:
- Inbound adapters: Handle incoming requests (SQL text, REST)
- Outbound adapters: Implement external dependencies (seed data)
"""

from mock_sql.adapters.outbound import BuiltinSeedProvider

__all__ = [
    # Outbound adapters
    "BuiltinSeedProvider",
]

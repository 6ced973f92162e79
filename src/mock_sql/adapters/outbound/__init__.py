"""Outbound adapters - implementations of outbound ports."""

from mock_sql.adapters.outbound.builtin_seed_provider import (
    LIBRARY_DB,
    SHOP_DB,
    UNIVERSITY_DB,
    BuiltinSeedProvider,
)

__all__ = [
    "BuiltinSeedProvider",
    "UNIVERSITY_DB",
    "SHOP_DB",
    "LIBRARY_DB",
]

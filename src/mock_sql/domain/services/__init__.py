"""Domain services for business logic.

Services implement domain logic that doesn't naturally fit within a single
entity. The catalog store coordinates databases, tables and constraint
checks.
"""

from mock_sql.domain.services.catalog_store import (
    USE_DEFAULT,
    CatalogStore,
    InsertValue,
    RowAssignment,
    RowPredicate,
)

__all__ = [
    "CatalogStore",
    "InsertValue",
    "RowAssignment",
    "RowPredicate",
    "USE_DEFAULT",
]

"""Seed Provider port.

This outbound port supplies the initial content of the catalog. The
catalog store asks for a fresh copy at startup and on every reset, so an
implementation must build new objects on each call and return identical
content every time.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol

from mock_sql.domain.entities import Database


class SeedProvider(Protocol):
    """Protocol for the source of seeded databases."""

    @property
    @abstractmethod
    def default_database(self) -> str:
        """Name of the database a new session starts in."""
        ...

    @abstractmethod
    def load(self) -> list[Database]:
        """Build the seeded databases.

        Returns:
            Freshly constructed databases in presentation order. Callers
            may mutate them freely.
        """
        ...

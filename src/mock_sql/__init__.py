"""
Mock SQL - T-SQL sandbox engine for an interactive SQL course

Parses a practical subset of T-SQL and runs it against seeded in-memory
databases (UniversityDB, ShopDB, LibraryDB) with a switchable session
context, a live schema catalog and a resettable state.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"

"""
Mise household kitchen service.

The package exposes the ingredient-matching recommendation engine, the grocery-list
consolidation engine, and the HTTP/CLI surfaces that feed them from a SQLite store.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"

"""Metadata catalog realizations."""

from catalog.base import Catalog
from catalog.memory_catalog import MemoryCatalog
from catalog.sqlite_catalog import SQLiteCatalog

__all__ = [
    "Catalog",
    "MemoryCatalog",
    "SQLiteCatalog",
]

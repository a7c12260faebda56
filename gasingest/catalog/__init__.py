"""Catalog store implementations."""

from gasingest.catalog.base import CatalogEntry, CatalogStore
from gasingest.catalog.sqlite_catalog import SQLiteCatalog

__all__ = ["CatalogEntry", "CatalogStore", "SQLiteCatalog"]

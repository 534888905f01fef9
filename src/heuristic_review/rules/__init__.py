"""Catalog loading, validation and manifest management."""

from .catalog import TEMPLATE_FIELDS, load_catalog
from .catalog_manager import CATALOG_DIR, CatalogEntry, CatalogManager
from .predicates import parse_predicate

__all__ = [
    "CATALOG_DIR",
    "CatalogEntry",
    "CatalogManager",
    "TEMPLATE_FIELDS",
    "load_catalog",
    "parse_predicate",
]

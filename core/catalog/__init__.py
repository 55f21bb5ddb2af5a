# Path: core/catalog/__init__.py
# Purpose: Package initializer for the SQLite picture catalog.
# Layer: core/catalog.
# Details: Exposes the catalog, its immutable lookup snapshot, and the custom SQL functions.

from .database import CatalogError, CatalogSnapshot, PictureCatalog, QueryCancelledError
from .sql_functions import SQL_FUNCTIONS, register_functions

__all__ = [
    "CatalogError",
    "CatalogSnapshot",
    "PictureCatalog",
    "QueryCancelledError",
    "SQL_FUNCTIONS",
    "register_functions",
]

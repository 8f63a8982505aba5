"""
JsonDB - named tables of JSON records stored in a single file.

Each database is one human-readable JSON document mapping table names to
arrays of records. Every operation reads the file, applies the change and
writes the whole document back.
"""

__version__ = "0.1.0"

from .database import Database, connect, open_existing

# Schema and locations
from .schema import Schema
from .locations import DefaultLocationResolver, FixedLocationResolver, LocationResolver

# Configuration
from .config import set_default_location, get_default_location

# Errors
from .errors import (
    JsonDBError,
    ConfigurationError,
    PersistenceError,
    TableNotFoundError,
    RowNotFoundError,
    MultipleMatchError,
)

# Typed models and data utilities
from .models import JsonDBModel, TypedTable
from .bulk import load_json, export_json, export_csv

__all__ = [
    # Database API
    "Database",
    "connect",
    "open_existing",
    "Schema",

    # Locations
    "LocationResolver",
    "DefaultLocationResolver",
    "FixedLocationResolver",

    # Configuration
    "set_default_location",
    "get_default_location",

    # Errors
    "JsonDBError",
    "ConfigurationError",
    "PersistenceError",
    "TableNotFoundError",
    "RowNotFoundError",
    "MultipleMatchError",

    # Models and data utilities
    "JsonDBModel",
    "TypedTable",
    "load_json",
    "export_json",
    "export_csv",
]

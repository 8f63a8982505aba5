"""Schema declaration and storage path resolution for JsonDB."""

import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import config
from .errors import ConfigurationError
from .locations import DefaultLocationResolver, LocationResolver

logger = logging.getLogger(__name__)

DB_SUFFIX = ".json"


class Schema(BaseModel):
    """Immutable description of one database.

    Attributes:
        tables: Ordered table names; non-empty, unique and non-blank
        dbname: Database name, used as the file name
        location: Storage directory (or database file); resolved when None
        one_indexed: Number auto-assigned ids from 1 instead of 0
        compact: Serialize without indentation
    """

    model_config = ConfigDict(frozen=True)

    tables: Tuple[str, ...] = Field(..., description="Declared table names")
    dbname: str = Field(..., description="Database name")
    location: Optional[str] = Field(None, description="Storage directory")
    one_indexed: bool = False
    compact: bool = False

    @field_validator('tables')
    @classmethod
    def _check_tables(cls, tables: Tuple[str, ...]) -> Tuple[str, ...]:
        if not tables:
            raise ValueError("at least one table must be declared")

        names = tuple(tables)
        if any(not name.strip() for name in names):
            raise ValueError("table names cannot be blank")
        padded = [name for name in names if name != name.strip()]
        if padded:
            raise ValueError(f"table names cannot start or end with whitespace: {padded!r}")

        seen = set()
        duplicates = []
        for name in names:
            if name in seen and name not in duplicates:
                duplicates.append(name)
            seen.add(name)
        if duplicates:
            raise ValueError(f"duplicate table names: {', '.join(duplicates)}")

        return names

    @field_validator('dbname')
    @classmethod
    def _check_dbname(cls, dbname: str) -> str:
        if not dbname.strip():
            raise ValueError("database name cannot be blank")
        if dbname != dbname.strip():
            raise ValueError(f"database name cannot start or end with whitespace: {dbname!r}")
        if os.sep in dbname or (os.altsep and os.altsep in dbname):
            raise ValueError("database name cannot contain path separators")
        return dbname

    @classmethod
    def build(cls, tables: List[str], dbname: str, location: Optional[str | os.PathLike] = None,
              one_indexed: bool = False, compact: bool = False) -> "Schema":
        """Create a schema, reporting validation problems as ConfigurationError."""
        if isinstance(tables, str):
            tables = [tables]
        try:
            return cls(
                tables=tuple(tables) if tables is not None else (),
                dbname=dbname,
                location=os.fspath(location) if location is not None else None,
                one_indexed=one_indexed,
                compact=compact,
            )
        except ValidationError as e:
            problems = [err['msg'] for err in e.errors()]
            raise ConfigurationError(
                f"Invalid schema for database '{dbname}'",
                problems,
                {'tables': list(tables) if tables else [], 'dbname': dbname}
            ) from e

    @property
    def file_name(self) -> str:
        """File name of the database document."""
        if self.dbname.endswith(DB_SUFFIX):
            return self.dbname
        return self.dbname + DB_SUFFIX

    @property
    def floor(self) -> int:
        """First id assigned in an empty table."""
        return 1 if self.one_indexed else 0


def resolve_paths(schema: Schema, resolver: Optional[LocationResolver] = None) -> Tuple[str, str]:
    """
    Determine the storage directory and database file for a schema.

    Location precedence is the schema's explicit location, then the
    JSONDB_LOCATION default, then ``resolver``. A missing directory is
    created; an existing regular file is used as the database document.

    Args:
        schema: Database schema
        resolver: Fallback location resolver (DefaultLocationResolver when None)

    Returns:
        Tuple of (absolute directory, absolute database file path)

    Raises:
        ConfigurationError: If no usable location can be determined or created
    """
    location = schema.location or config.location
    if not location:
        resolver = resolver or DefaultLocationResolver()
        location = resolver.resolve()
    if not location:
        raise ConfigurationError(
            "No storage location could be determined",
            ["Pass location=... when opening the database", "Set JSONDB_LOCATION"],
        )

    path = Path(location).expanduser().absolute()

    if path.is_file():
        logger.debug("Using existing file %s as database document", path)
        return str(path.parent), str(path)

    if path.exists() and not path.is_dir():
        raise ConfigurationError(
            f"Location '{path}' is neither a directory nor a regular file",
            ["Point location at a directory or an existing database file"],
            {'location': str(path)}
        )

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(
            f"Cannot create storage directory '{path}': {e}",
            ["Verify you have write permissions to the parent directory"],
            {'location': str(path)}
        ) from e

    return str(path), str(path / schema.file_name)

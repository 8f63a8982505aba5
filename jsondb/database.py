"""
Database class for JsonDB - table CRUD over a single JSON document.

Every operation loads the whole document from disk, checks that the table
exists, works on the in-memory copy and, for writes, saves the whole
document back before returning. Nothing is cached between calls.
"""

import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .config import config
from .errors import (
    ConfigurationError,
    MultipleMatchError,
    PersistenceError,
    RowNotFoundError,
    TableNotFoundError,
)
from .locations import LocationResolver
from .matching import (
    contains_text,
    filter_records,
    has_field,
    id_predicate,
    matching_indices,
    where_predicate,
)
from .schema import Schema, resolve_paths
from .storage import Document, PersistenceEngine

logger = logging.getLogger(__name__)

# Ids that ask for auto-assignment on insert
AUTO_ID = -1

Record = Dict[str, Any]


def _is_int_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def next_id(rows: Sequence[Record], floor: int = 0) -> int:
    """
    Compute the id for a new row.

    The id is derived from the table's content, not from a stored counter:
    ``floor`` for an empty table, otherwise the largest integer id plus one.
    Deleting the row holding the largest id lets that id be handed out again.
    """
    ids = [row['id'] for row in rows if isinstance(row, dict) and _is_int_id(row.get('id'))]
    if not ids:
        return floor
    return max(ids) + 1


class Database:
    """
    A set of named tables stored in one JSON file.

    Examples:
        db = jsondb.connect(['users', 'posts'], 'app', location='./data')

        user = db.insert({'name': 'Alice'}, 'users')   # {'name': 'Alice', 'id': 0}
        db.update({'id': user['id'], 'name': 'Alice B.'}, 'users')
        db.get(0, 'users')
        db.get_rows({'name': 'Alice B.'}, 'users')
        db.delete(0, 'users')
    """

    def __init__(self, tables: Sequence[str], dbname: str, location: Optional[str | os.PathLike] = None,
                 one_indexed: Optional[bool] = None, compact: Optional[bool] = None,
                 resolver: Optional[LocationResolver] = None):
        """
        Open a database, creating its file if it does not exist.

        Args:
            tables: Table names to declare
            dbname: Database name; the file is ``<dbname>.json``
            location: Storage directory (or database file). Defaults to
                JSONDB_LOCATION, then the platform application-data directory
            one_indexed: Start auto-assigned ids at 1 (default from JSONDB_ONE_INDEXED)
            compact: Write JSON without indentation (default from JSONDB_COMPACT)
            resolver: Location resolver used when no location is configured

        Raises:
            ConfigurationError: If the schema or location is unusable
            PersistenceError: If the initial file cannot be written
        """
        self.schema = Schema.build(
            tables, dbname, location,
            one_indexed=config.one_indexed if one_indexed is None else one_indexed,
            compact=config.compact if compact is None else compact,
        )
        self.location, self.path = resolve_paths(self.schema, resolver)
        self._engine = PersistenceEngine(self.path, self.schema.tables, self.schema.compact)
        self._engine.initialize()

    def __repr__(self) -> str:
        return f"Database(dbname={self.schema.dbname!r}, path={self.path!r}, tables={list(self.tables)!r})"

    @property
    def tables(self) -> Tuple[str, ...]:
        """Declared table names."""
        return self.schema.tables

    @property
    def engine(self) -> PersistenceEngine:
        return self._engine

    # Internal helpers

    def _table(self, document: Document, table: str) -> List[Record]:
        if table not in self.schema.tables:
            raise TableNotFoundError(table, list(self.schema.tables), "not declared in schema")
        if table not in document:
            raise TableNotFoundError(table, list(self.schema.tables), f"missing from {self.path}")
        rows = document[table]
        if not isinstance(rows, list):
            raise PersistenceError(
                self.path, "load",
                f"table '{table}' is a {type(rows).__name__}, expected an array"
            )
        return rows

    def _load_table(self, table: str) -> Tuple[Document, List[Record]]:
        document = self._engine.load()
        return document, self._table(document, table)

    def _unique_index(self, rows: List[Record], row_id: int, table: str) -> Optional[int]:
        indices = matching_indices(rows, id_predicate(row_id))
        if len(indices) > 1:
            raise MultipleMatchError(row_id, table, len(indices))
        return indices[0] if indices else None

    def _prepare_row(self, row: Record, rows: List[Record], table: str) -> Record:
        if not isinstance(row, dict):
            raise ValueError(f"Row must be a dict, got {type(row).__name__}")

        record = dict(row)
        row_id = record.get('id')
        if row_id is None or row_id == AUTO_ID:
            record['id'] = next_id(rows, self.schema.floor)
            logger.debug("Assigned id %d in table '%s'", record['id'], table)
        elif not _is_int_id(row_id):
            raise ValueError(f"Row id must be an integer, got {row_id!r}")
        else:
            taken = matching_indices(rows, id_predicate(row_id))
            if taken:
                raise MultipleMatchError(row_id, table, len(taken) + 1)
        return record

    # CRUD operations

    def insert(self, row: Record, table: str) -> Record:
        """
        Append a row to a table.

        A missing, None or -1 ``id`` is replaced with the next id (see
        ``next_id``). An explicit id must be an integer not already in use.

        Args:
            row: Record to store; it is copied, not modified
            table: Table name

        Returns:
            The stored record, including its id

        Raises:
            TableNotFoundError: If the table does not exist
            MultipleMatchError: If an explicit id is already taken
            ValueError: If the row is not a dict or its id is not an integer
        """
        with self._engine.lock():
            document, rows = self._load_table(table)
            record = self._prepare_row(row, rows, table)
            rows.append(record)
            self._engine.save(document)
        return record

    def insert_many(self, rows: Iterable[Record], table: str) -> List[Record]:
        """Insert several rows in a single load/save cycle."""
        with self._engine.lock():
            document, existing = self._load_table(table)
            inserted = []
            for row in rows:
                record = self._prepare_row(row, existing, table)
                existing.append(record)
                inserted.append(record)
            if inserted:
                self._engine.save(document)
        return inserted

    def get_all(self, table: str) -> List[Record]:
        """Return every row of a table in stored order."""
        with self._engine.lock():
            _, rows = self._load_table(table)
        return rows

    def get(self, row_id: int, table: str) -> Optional[Record]:
        """
        Find the row with the given id.

        Returns:
            The record, or None if no row has that id

        Raises:
            TableNotFoundError: If the table does not exist
            MultipleMatchError: If more than one row has that id
        """
        with self._engine.lock():
            _, rows = self._load_table(table)
        index = self._unique_index(rows, row_id, table)
        return rows[index] if index is not None else None

    def delete(self, row_id: int, table: str) -> None:
        """
        Remove the row with the given id.

        Deleting an id that does not exist is not an error; nothing is written.

        Raises:
            TableNotFoundError: If the table does not exist
            MultipleMatchError: If more than one row has that id
        """
        with self._engine.lock():
            document, rows = self._load_table(table)
            index = self._unique_index(rows, row_id, table)
            if index is None:
                logger.debug("No row with id %r in table '%s'; nothing deleted", row_id, table)
                return
            del rows[index]
            self._engine.save(document)

    def update(self, row: Record, table: str) -> Record:
        """
        Replace the row that has the same id as ``row``.

        The stored row becomes exactly ``row``: fields missing from ``row``
        are dropped, not carried over from the previous version.

        Returns:
            The stored record, as read back from disk

        Raises:
            TableNotFoundError: If the table does not exist
            RowNotFoundError: If no row has that id
            MultipleMatchError: If more than one row has that id
            ValueError: If ``row`` is not a dict with an integer id
        """
        if not isinstance(row, dict):
            raise ValueError(f"Row must be a dict, got {type(row).__name__}")
        row_id = row.get('id')
        if not _is_int_id(row_id):
            raise ValueError(f"Row to update must carry an integer id, got {row_id!r}")

        with self._engine.lock():
            document, rows = self._load_table(table)
            index = self._unique_index(rows, row_id, table)
            if index is None:
                raise RowNotFoundError(row_id, table)
            rows[index] = dict(row)
            self._engine.save(document)

            stored = self.get(row_id, table)
        if stored is None:
            raise RowNotFoundError(row_id, table)
        return stored

    def clear(self, table: str) -> None:
        """Remove every row of a table."""
        with self._engine.lock():
            document, _ = self._load_table(table)
            document[table] = []
            self._engine.save(document)

    def count(self, table: str) -> int:
        """Number of rows in a table."""
        return len(self.get_all(table))

    # Filters

    def get_rows(self, where: Dict[str, Any], table: str) -> List[Record]:
        """
        Rows whose fields equal every value in ``where``.

        Examples:
            db.get_rows({'name': 'Alice', 'active': True}, 'users')

        Raises:
            ValueError: If ``where`` is not a dict or is empty
        """
        predicate = where_predicate(where)
        return filter_records(self.get_all(table), predicate)

    def search(self, table: str, field: str, keyword: Any) -> List[Record]:
        """Rows whose ``field`` contains ``keyword``, ignoring case."""
        return filter_records(self.get_all(table), lambda record: contains_text(record, field, keyword))

    def get_field(self, table: str, key: str) -> List[Record]:
        """Rows that have ``key`` set."""
        return filter_records(self.get_all(table), lambda record: has_field(record, key))

    def table_exists(self, table: str) -> bool:
        """Whether the table is declared and present in the file."""
        if table not in self.schema.tables:
            return False
        with self._engine.lock():
            document = self._engine.load()
        return isinstance(document.get(table), list)

    def valid(self) -> bool:
        """Whether the database file parses as a JSON object."""
        return self._engine.valid()


def connect(tables: Sequence[str], dbname: str, location: Optional[str | os.PathLike] = None,
            one_indexed: Optional[bool] = None, compact: Optional[bool] = None,
            resolver: Optional[LocationResolver] = None) -> Database:
    """
    Open (creating if needed) a JsonDB database.

    Examples:
        db = jsondb.connect(['users'], 'app', location='./data')
        db = jsondb.connect(['users'], 'app', one_indexed=True, compact=True)
    """
    return Database(tables, dbname, location, one_indexed, compact, resolver)


def open_existing(dbname: str, location: Optional[str | os.PathLike] = None,
                  resolver: Optional[LocationResolver] = None, **kwargs: Any) -> Database:
    """
    Open a database that already exists, declaring the tables found in its file.

    Raises:
        ConfigurationError: If the location cannot be resolved or the file
            declares no tables
        PersistenceError: If the file is missing or malformed
    """
    # Resolve with a placeholder table; the real list comes from the file.
    probe = Schema.build(['_'], dbname, location)
    _, path = resolve_paths(probe, resolver)
    tables = PersistenceEngine(path, ()).read_table_names()
    if not tables:
        raise ConfigurationError(
            f"Database file '{path}' declares no tables",
            ["Create it with: jdb db init <name> --table <table>"],
            {'path': path}
        )
    return Database(tables, dbname, location, resolver=resolver, **kwargs)

"""Whole-document persistence for JsonDB database files."""

import json
import logging
import os
import tempfile
import threading
import weakref
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Sequence

from .errors import PersistenceError

logger = logging.getLogger(__name__)

Document = Dict[str, List[Dict[str, Any]]]

# Entries disappear once no engine holds the lock
_locks: "weakref.WeakValueDictionary[str, Any]" = weakref.WeakValueDictionary()
_locks_guard = threading.Lock()


def get_lock(path: str) -> threading.RLock:
    """Return the reentrant lock shared by every open engine on a database file."""
    key = os.path.normcase(os.path.abspath(path))
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = threading.RLock()
            _locks[key] = lock
        return lock


def dumps(document: Any, compact: bool = False) -> str:
    """Serialize a document the way it is written to disk."""
    if compact:
        return json.dumps(document, ensure_ascii=False, separators=(',', ':'))
    return json.dumps(document, ensure_ascii=False, indent=2)


class PersistenceEngine:
    """
    Reads and writes one database document as a whole.

    There are no partial or append writes: ``save`` serializes the entire
    document to a temporary file in the same directory and renames it over
    the target, so readers see either the old or the new document.

    Examples:
        engine = PersistenceEngine('/data/app.json', ['users'])
        engine.initialize()
        with engine.lock():
            document = engine.load()
            document['users'].append({'id': 0})
            engine.save(document)
    """

    def __init__(self, path: str, tables: Sequence[str], compact: bool = False):
        self.path = path
        self.tables = tuple(tables)
        self.compact = compact
        self._lock = get_lock(path)

    @contextmanager
    def lock(self) -> Generator[None, None, None]:
        """Hold the file's lock for one load-mutate-save cycle."""
        with self._lock:
            yield

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def empty_document(self) -> Document:
        return {table: [] for table in self.tables}

    def initialize(self) -> bool:
        """
        Create the database file with one empty array per table.

        Returns:
            True if the file was created, False if it already existed
        """
        with self.lock():
            if self.exists():
                return False
            self.save(self.empty_document())
            logger.info("Created database file %s with tables %s", self.path, ", ".join(self.tables))
            return True

    def load(self) -> Document:
        """
        Read and parse the whole document.

        Raises:
            PersistenceError: If the file cannot be read, is not valid JSON,
                or is not a JSON object
        """
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(self.path, "load", e) from e

        if not isinstance(document, dict):
            raise PersistenceError(
                self.path, "load",
                f"expected a JSON object at top level, found {type(document).__name__}"
            )

        logger.debug("Loaded %s", self.path)
        return document

    def save(self, document: Document) -> None:
        """
        Serialize and atomically replace the database file.

        Raises:
            PersistenceError: If serialization or any file operation fails
        """
        try:
            payload = dumps(document, self.compact)
        except (TypeError, ValueError) as e:
            raise PersistenceError(self.path, "serialize", e) from e

        directory = os.path.dirname(self.path) or "."
        fd, tmp_path = None, None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{os.path.basename(self.path)}.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                fd = None
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise PersistenceError(self.path, "save", e) from e
        finally:
            if fd is not None:
                os.close(fd)
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

        logger.debug("Saved %s (%d bytes)", self.path, len(payload))

    def read_table_names(self) -> List[str]:
        """Keys of the document on disk that map to arrays."""
        document = self.load()
        return [name for name, rows in document.items() if isinstance(rows, list)]

    def valid(self) -> bool:
        """Whether the file exists and parses as a JSON object."""
        try:
            self.load()
        except PersistenceError:
            return False
        return True

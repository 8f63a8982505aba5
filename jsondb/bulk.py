"""Bulk import and export for JsonDB tables."""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .database import Database
from .errors import FileNotFoundError

logger = logging.getLogger(__name__)


def _select(db: Database, table: str, where: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if where:
        return db.get_rows(where, table)
    return db.get_all(table)


def load_json(db: Database, file_path: str, table: str, json_key: Optional[str] = None) -> Dict[str, Any]:
    """
    Insert the objects of a JSON array file into a table.

    Objects without an id get one assigned; all rows are written in one save.

    Args:
        db: Target database
        file_path: Path to a JSON file holding an array of objects
        table: Target table
        json_key: Key of the array when the file holds an object

    Returns:
        Dictionary with statistics: {'table_name', 'rows_processed', 'inserted'}
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(str(path), "json")

    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if json_key:
        if not isinstance(data, dict) or json_key not in data:
            raise ValueError(f"Key '{json_key}' not found in JSON file")
        data = data[json_key]

    if not isinstance(data, list):
        raise ValueError("JSON data must be an array of objects")
    if not all(isinstance(item, dict) for item in data):
        raise ValueError("Every item of the JSON array must be an object")

    inserted = db.insert_many(data, table)
    logger.info("Loaded %d rows from %s into '%s'", len(inserted), path, table)

    return {
        'table_name': table,
        'rows_processed': len(data),
        'inserted': len(inserted),
    }


def export_json(db: Database, table: str, file_path: str, where: Optional[Dict[str, Any]] = None,
                indent: int = 2) -> Dict[str, Any]:
    """
    Write a table's rows to a JSON array file.

    Returns:
        Dictionary with statistics: {'table_name', 'file_path', 'rows_exported'}
    """
    rows = _select(db, table, where)

    with open(file_path, 'w', encoding='utf-8') as f:
        json.dump(rows, f, indent=indent, ensure_ascii=False)

    return {
        'table_name': table,
        'file_path': file_path,
        'rows_exported': len(rows),
    }


def export_csv(db: Database, table: str, file_path: str, where: Optional[Dict[str, Any]] = None,
               delimiter: str = ',') -> Dict[str, Any]:
    """
    Write a table's rows to a CSV file.

    The header is the union of all record keys in first-seen order. Nested
    values are written as JSON text.

    Returns:
        Dictionary with statistics: {'table_name', 'file_path', 'rows_exported'}
    """
    rows = _select(db, table, where)

    fieldnames: List[str] = []
    for row in rows:
        for key in row:
            if key not in fieldnames:
                fieldnames.append(key)

    with open(file_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames, delimiter=delimiter)
        writer.writeheader()
        for row in rows:
            writer.writerow({
                key: json.dumps(value, ensure_ascii=False) if isinstance(value, (dict, list)) else value
                for key, value in row.items()
            })

    return {
        'table_name': table,
        'file_path': file_path,
        'rows_exported': len(rows),
    }

"""Error types with helpful suggestions for JsonDB."""

from typing import List, Dict, Any, Optional
from difflib import get_close_matches


class JsonDBError(Exception):
    """Base exception for JsonDB with enhanced error messages."""

    def __init__(self, message: str, suggestions: List[str] | None = None, context: Dict[str, Any] | None = None):
        self.message = message
        self.suggestions = suggestions or []
        self.context = context or {}
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the error message with suggestions."""
        formatted = self.message

        if self.suggestions:
            formatted += "\n\nSuggestions:"
            for suggestion in self.suggestions:
                formatted += f"\n  • {suggestion}"

        if self.context:
            formatted += "\n\nContext:"
            for key, value in self.context.items():
                formatted += f"\n  • {key}: {value}"

        return formatted


class ConfigurationError(JsonDBError):
    """Exception for an unusable schema or storage location."""

    def __init__(self, message: str, suggestions: List[str] | None = None, context: Dict[str, Any] | None = None):
        super().__init__(message, suggestions, context)


class PersistenceError(JsonDBError):
    """Exception for failures reading or writing the database file."""

    def __init__(self, path: str, operation: str, original_error: Exception | str | None = None):
        self.path = path
        self.operation = operation
        self.original_error = original_error

        suggestions = []
        if isinstance(original_error, ValueError):
            # json.JSONDecodeError is a ValueError
            suggestions.append("The file is not valid JSON; restore it from a backup or fix it by hand")
        elif isinstance(original_error, PermissionError):
            suggestions.append("Verify you have read/write permissions for the file and its directory")
        elif isinstance(original_error, OSError):
            suggestions.extend([
                "Check that the file path is accessible",
                "Make sure the disk is not full",
            ])

        error_msg = f"Failed to {operation} database file '{path}'"
        if original_error:
            error_msg += f": {original_error}"

        super().__init__(
            error_msg,
            suggestions,
            {'path': path, 'operation': operation}
        )


class TableNotFoundError(JsonDBError):
    """Exception for when a table is not declared or missing from the document."""

    def __init__(self, table_name: str, available_tables: List[str] | None = None, reason: Optional[str] = None):
        self.table_name = table_name
        suggestions = []

        if available_tables:
            # Find similar table names
            similar = get_close_matches(table_name, available_tables, n=3, cutoff=0.6)
            if similar and table_name not in similar:
                suggestions.append(f"Did you mean: {', '.join(similar)}?")

            suggestions.append(f"Declared tables: {', '.join(available_tables)}")

        message = f"Table '{table_name}' not found"
        if reason:
            message += f" ({reason})"

        super().__init__(
            message,
            suggestions,
            {'table_name': table_name, 'available_tables': available_tables}
        )


class RowNotFoundError(JsonDBError):
    """Exception for an update whose target id has no matching record."""

    def __init__(self, row_id: Any, table_name: str):
        self.row_id = row_id
        self.table_name = table_name
        super().__init__(
            f"No row with id {row_id!r} in table '{table_name}'",
            [f"Insert the row first, or check the id with: jdb get {table_name} {row_id}"],
            {'row_id': row_id, 'table_name': table_name}
        )


class MultipleMatchError(JsonDBError):
    """Exception for an id shared by more than one record in a table.

    Duplicate ids mean the document is corrupt; JsonDB never picks one of
    the candidates on its own.
    """

    def __init__(self, row_id: Any, table_name: str, count: int):
        self.row_id = row_id
        self.table_name = table_name
        self.count = count
        super().__init__(
            f"{count} rows share id {row_id!r} in table '{table_name}'",
            [
                "Ids must be unique within a table",
                "Repair the database file so every record has a distinct id",
            ],
            {'row_id': row_id, 'table_name': table_name, 'matches': count}
        )


class FileNotFoundError(JsonDBError):
    """Exception for import files that cannot be found."""

    def __init__(self, file_path: str, operation: str = "access"):
        suggestions = [
            "Check that the file path is correct",
            "Verify the file exists and is readable",
        ]

        if operation == "json":
            suggestions.extend([
                "Ensure the file contains a JSON array of objects",
                "For nested data, use --key option to specify array location",
            ])

        super().__init__(
            f"File not found or inaccessible: {file_path}",
            suggestions,
            {'file_path': file_path, 'operation': operation}
        )

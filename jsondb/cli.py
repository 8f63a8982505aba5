"""CLI interface for JsonDB using Typer with noun-first structure."""

import json
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from .bulk import export_csv, export_json, load_json
from .config_file import config_manager
from .database import Database, connect, open_existing
from .errors import JsonDBError
from .logging_config import configure_logging
from .schema import Schema, resolve_paths


app = typer.Typer(
    name="jsondb",
    help="JsonDB - JSON file tables for small local applications",
    invoke_without_command=True,
    add_completion=False,
)
console = Console()


NAME_OPTION = typer.Option(None, "--name", "-n", help="Database name (file is <name>.json)")
LOCATION_OPTION = typer.Option(None, "--location", "-l", help="Storage directory or database file")
DATABASE_OPTION = typer.Option(None, "--database", "-d", help="Named database from the config file")


def _fail(message: str, error: Optional[Exception] = None) -> NoReturn:
    if error is not None:
        message = f"{message}: {error}"
    console.print(f"[red]{escape(message)}[/red]")
    raise typer.Exit(1)


def _database_options(database: Optional[str]) -> Dict[str, Any]:
    try:
        return config_manager.get_database_options(database)
    except ValueError as e:
        if database:
            _fail(f"Could not load database '{database}'", e)
        console.print(f"[yellow]Warning: ignoring config file: {escape(str(e))}[/yellow]")
        return config_manager.get_default_config()['database']


def _schema_flags(options: Dict[str, Any]) -> Dict[str, Optional[bool]]:
    # Unset flags fall through to JSONDB_ONE_INDEXED and JSONDB_COMPACT
    return {
        'one_indexed': options.get('one_indexed'),
        'compact': options.get('compact'),
    }


def open_db(name: Optional[str], location: Optional[str], database: Optional[str] = None) -> Database:
    """Open a database from CLI parameters and the config file."""
    options = _database_options(database)
    dbname = name or options.get('name') or 'db'
    location = location or options.get('location')
    tables = options.get('tables')
    flags = _schema_flags(options)

    if tables:
        return connect(tables, dbname, location, **flags)
    return open_existing(dbname, location, **flags)


def parse_json_row(data: str) -> Dict[str, Any]:
    """Parse a JSON object given on the command line."""
    try:
        row = json.loads(data)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}") from e
    if not isinstance(row, dict):
        raise ValueError("Row must be a JSON object")
    return row


def parse_where(conditions: Optional[List[str]]) -> Dict[str, Any]:
    """Turn ``key=value`` strings into an equality filter.

    Values are read as JSON when possible, so ``age=30`` matches the number
    30 and ``name=Alice`` the string 'Alice'.
    """
    where: Dict[str, Any] = {}
    for condition in conditions or []:
        key, sep, raw = condition.partition('=')
        if not sep or not key:
            raise ValueError(f"Filter '{condition}' must look like key=value")
        try:
            where[key] = json.loads(raw)
        except json.JSONDecodeError:
            where[key] = raw
    return where


def _print_rows(rows: List[Dict[str, Any]], title: str, format: str) -> None:
    if format == "json":
        console.print_json(data=rows)
        return

    max_rows = config_manager.get_config()['cli'].get('max_rows_display', 100)
    columns: List[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)

    table_display = Table(title=title)
    for column in columns:
        table_display.add_column(column, style="cyan")
    for row in rows[:max_rows]:
        table_display.add_row(*[escape(str(row.get(column, ""))) for column in columns])

    console.print(table_display)
    if len(rows) > max_rows:
        console.print(f"[yellow]Showing {max_rows} of {len(rows)} rows[/yellow]")


# Main app callback to show help when no command is provided
@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """JsonDB - JSON file tables for small local applications"""
    configure_logging("DEBUG" if verbose else None)
    if ctx.invoked_subcommand is None:
        print(ctx.get_help())
        raise typer.Exit()

# Create noun-based subcommands
database_app = typer.Typer(
    name="database",
    help="Database operations",
    invoke_without_command=True
)
table_app = typer.Typer(
    name="table",
    help="Table operations",
    invoke_without_command=True
)
config_app = typer.Typer(
    name="config",
    help="Configuration management",
    invoke_without_command=True
)


@database_app.callback()
def database_callback(ctx: typer.Context) -> None:
    """Database operations"""
    if ctx.invoked_subcommand is None:
        print(ctx.get_help())
        raise typer.Exit()


@table_app.callback()
def table_callback(ctx: typer.Context) -> None:
    """Table operations"""
    if ctx.invoked_subcommand is None:
        print(ctx.get_help())
        raise typer.Exit()


@config_app.callback()
def config_callback(ctx: typer.Context) -> None:
    """Configuration management"""
    if ctx.invoked_subcommand is None:
        print(ctx.get_help())
        raise typer.Exit()


app.add_typer(database_app, name="db", help="Database operations")
app.add_typer(table_app, name="table", help="Table operations")
app.add_typer(config_app, name="config")


# Database commands
@database_app.command("init")
def database_init(
    name: str = typer.Argument(..., help="Database name"),
    tables: List[str] = typer.Option(..., "--table", "-t", help="Table to declare (repeatable)"),
    location: Optional[str] = LOCATION_OPTION,
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing database"),
) -> None:
    """Initialize a new JsonDB database.

    Id numbering and JSON layout are not stored in the file. They come from
    JSONDB_ONE_INDEXED and JSONDB_COMPACT, or from the config file, for this
    and every later command.
    """
    try:
        flags = _schema_flags(_database_options(None))
        schema = Schema.build(tables, name, location)
        _, path = resolve_paths(schema)

        if Path(path).exists():
            if not force:
                _fail(f"Database file '{path}' already exists. Use --force to overwrite.")
            Path(path).unlink()

        db = connect(tables, name, location, **flags)
        console.print(f"[green]Successfully initialized database at '{escape(db.path)}'[/green]")
        console.print(f"[blue]Tables: {escape(', '.join(db.tables))}[/blue]")
    except JsonDBError as e:
        _fail("Error initializing database", e)


@database_app.command("info")
def database_info(
    name: Optional[str] = NAME_OPTION,
    location: Optional[str] = LOCATION_OPTION,
    database: Optional[str] = DATABASE_OPTION,
) -> None:
    """Show database information."""
    try:
        db = open_db(name, location, database)

        console.print(f"[bold]Database:[/bold] {escape(db.schema.dbname)}")
        console.print(f"[bold]File:[/bold] {escape(db.path)}")
        console.print(f"[bold]Ids start at:[/bold] {db.schema.floor}")
        console.print(f"[bold]Format:[/bold] {'compact' if db.schema.compact else 'indented'}")
        console.print(f"[bold]Tables:[/bold] {len(db.tables)}")

        table_display = Table(title="Tables Overview")
        table_display.add_column("Name", style="green")
        table_display.add_column("Rows", style="cyan")
        for table in db.tables:
            table_display.add_row(escape(table), str(db.count(table)))
        console.print(table_display)
    except JsonDBError as e:
        _fail("Error getting database info", e)


# Table commands
@table_app.command("list")
def table_list(
    name: Optional[str] = NAME_OPTION,
    location: Optional[str] = LOCATION_OPTION,
    database: Optional[str] = DATABASE_OPTION,
) -> None:
    """List all tables with their row counts."""
    try:
        db = open_db(name, location, database)

        table_display = Table(title="Tables")
        table_display.add_column("Name", style="green")
        table_display.add_column("Rows", style="magenta")
        table_display.add_column("Present", style="yellow")
        for table in db.tables:
            present = db.table_exists(table)
            table_display.add_row(
                escape(table),
                str(db.count(table)) if present else "-",
                "yes" if present else "missing",
            )
        console.print(table_display)
    except JsonDBError as e:
        _fail("Error listing tables", e)


@table_app.command("count")
def table_count(
    table: str = typer.Argument(..., help="Table name"),
    name: Optional[str] = NAME_OPTION,
    location: Optional[str] = LOCATION_OPTION,
    database: Optional[str] = DATABASE_OPTION,
) -> None:
    """Print the number of rows in a table."""
    try:
        db = open_db(name, location, database)
        console.print(str(db.count(table)))
    except JsonDBError as e:
        _fail("Error counting rows", e)


@table_app.command("show")
def table_show(
    table: str = typer.Argument(..., help="Table name"),
    name: Optional[str] = NAME_OPTION,
    location: Optional[str] = LOCATION_OPTION,
    database: Optional[str] = DATABASE_OPTION,
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
) -> None:
    """Show every row of a table."""
    _query_implementation(table, None, format, name, location, database)


@table_app.command("clear")
def table_clear(
    table: str = typer.Argument(..., help="Table name"),
    name: Optional[str] = NAME_OPTION,
    location: Optional[str] = LOCATION_OPTION,
    database: Optional[str] = DATABASE_OPTION,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete every row of a table."""
    try:
        db = open_db(name, location, database)
        rows = db.count(table)
        if not yes:
            typer.confirm(f"Delete all {rows} rows from '{table}'?", abort=True)
        db.clear(table)
        console.print(f"[green]Cleared table '{escape(table)}' ({rows} rows removed)[/green]")
    except JsonDBError as e:
        _fail("Error clearing table", e)


# Row commands
@app.command("insert")
def insert_cmd(
    table: str = typer.Argument(..., help="Table name"),
    data: str = typer.Argument(..., help='Row as JSON, e.g. \'{"name": "Alice"}\''),
    name: Optional[str] = NAME_OPTION,
    location: Optional[str] = LOCATION_OPTION,
    database: Optional[str] = DATABASE_OPTION,
) -> None:
    """Insert a row; an id is assigned when the row has none."""
    try:
        row = parse_json_row(data)
        db = open_db(name, location, database)
        record = db.insert(row, table)
        console.print(f"[green]Inserted row with id {record['id']} into '{escape(table)}'[/green]")
    except (JsonDBError, ValueError) as e:
        _fail("Error inserting row", e)


@app.command("get")
def get_cmd(
    table: str = typer.Argument(..., help="Table name"),
    id: int = typer.Argument(..., help="Row id"),
    name: Optional[str] = NAME_OPTION,
    location: Optional[str] = LOCATION_OPTION,
    database: Optional[str] = DATABASE_OPTION,
) -> None:
    """Show the row with the given id."""
    try:
        db = open_db(name, location, database)
        record = db.get(id, table)
        if record is None:
            _fail(f"No row with id {id} in table '{table}'")
        console.print_json(data=record)
    except JsonDBError as e:
        _fail("Error reading row", e)


@app.command("update")
def update_cmd(
    table: str = typer.Argument(..., help="Table name"),
    data: str = typer.Argument(..., help="Complete replacement row as JSON, including its id"),
    name: Optional[str] = NAME_OPTION,
    location: Optional[str] = LOCATION_OPTION,
    database: Optional[str] = DATABASE_OPTION,
) -> None:
    """Replace a row (fields left out are removed)."""
    try:
        row = parse_json_row(data)
        db = open_db(name, location, database)
        record = db.update(row, table)
        console.print(f"[green]Updated row {record['id']} in '{escape(table)}'[/green]")
    except (JsonDBError, ValueError) as e:
        _fail("Error updating row", e)


@app.command("delete")
def delete_cmd(
    table: str = typer.Argument(..., help="Table name"),
    id: int = typer.Argument(..., help="Row id"),
    name: Optional[str] = NAME_OPTION,
    location: Optional[str] = LOCATION_OPTION,
    database: Optional[str] = DATABASE_OPTION,
) -> None:
    """Delete the row with the given id (no error if it does not exist)."""
    try:
        db = open_db(name, location, database)
        db.delete(id, table)
        console.print(f"[green]Deleted row {id} from '{escape(table)}'[/green]")
    except JsonDBError as e:
        _fail("Error deleting row", e)


@app.command("query")
def query_cmd(
    table: str = typer.Argument(..., help="Table name to query"),
    where: Optional[List[str]] = typer.Option(None, "--where", "-w", help="Filter as key=value (repeatable)"),
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
    name: Optional[str] = NAME_OPTION,
    location: Optional[str] = LOCATION_OPTION,
    database: Optional[str] = DATABASE_OPTION,
) -> None:
    """Query rows, optionally filtered by exact field values."""
    try:
        conditions = parse_where(where)
    except ValueError as e:
        _fail("Error parsing filter", e)
    _query_implementation(table, conditions, format, name, location, database)


def _query_implementation(table: str, where: Optional[Dict[str, Any]], format: str,
                          name: Optional[str], location: Optional[str], database: Optional[str]) -> None:
    """Query data from a table."""
    try:
        db = open_db(name, location, database)
        rows = db.get_rows(where, table) if where else db.get_all(table)

        if not rows:
            console.print(f"[yellow]No results found in table '{escape(table)}'[/yellow]")
            return

        _print_rows(rows, f"Data from '{table}'", format)
    except (JsonDBError, ValueError) as e:
        _fail("Error querying table", e)


@app.command("search")
def search_cmd(
    table: str = typer.Argument(..., help="Table name"),
    field: str = typer.Argument(..., help="Field to search"),
    keyword: str = typer.Argument(..., help="Text to look for (case-insensitive)"),
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json"),
    name: Optional[str] = NAME_OPTION,
    location: Optional[str] = LOCATION_OPTION,
    database: Optional[str] = DATABASE_OPTION,
) -> None:
    """Find rows whose field contains the keyword."""
    try:
        db = open_db(name, location, database)
        rows = db.search(table, field, keyword)
        if not rows:
            console.print(f"[yellow]No rows in '{escape(table)}' where {escape(field)} contains '{escape(keyword)}'[/yellow]")
            return
        _print_rows(rows, f"Search results from '{table}'", format)
    except (JsonDBError, ValueError) as e:
        _fail("Error searching table", e)


# Import / export commands
@app.command("load-json")
def load_json_cmd(
    file_path: str = typer.Argument(..., help="Path to JSON file"),
    table: str = typer.Option(..., "--table", "-t", help="Target table"),
    json_key: Optional[str] = typer.Option(None, "--key", "-k", help="JSON key containing array data"),
    name: Optional[str] = NAME_OPTION,
    location: Optional[str] = LOCATION_OPTION,
    database: Optional[str] = DATABASE_OPTION,
) -> None:
    """Load rows from a JSON array file into a table."""
    try:
        db = open_db(name, location, database)

        with console.status("[bold green]Loading JSON file..."):
            stats = load_json(db, file_path, table, json_key)

        console.print("[green]Successfully loaded JSON file![/green]")
        console.print(f"[blue]Table: {escape(stats['table_name'])}[/blue]")
        console.print(f"[blue]Rows processed: {stats['rows_processed']}[/blue]")
        console.print(f"[blue]Rows inserted: {stats['inserted']}[/blue]")
    except (JsonDBError, ValueError) as e:
        _fail("Error loading JSON", e)


@app.command("export-json")
def export_json_cmd(
    table: str = typer.Argument(..., help="Table name to export"),
    file_path: str = typer.Argument(..., help="Output JSON file path"),
    where: Optional[List[str]] = typer.Option(None, "--where", "-w", help="Filter as key=value (repeatable)"),
    indent: int = typer.Option(2, "--indent", help="JSON indentation"),
    name: Optional[str] = NAME_OPTION,
    location: Optional[str] = LOCATION_OPTION,
    database: Optional[str] = DATABASE_OPTION,
) -> None:
    """Export table data to a JSON file."""
    try:
        db = open_db(name, location, database)

        with console.status("[bold green]Exporting to JSON..."):
            stats = export_json(db, table, file_path, parse_where(where), indent)

        console.print("[green]Successfully exported to JSON![/green]")
        console.print(f"[blue]File: {escape(stats['file_path'])}[/blue]")
        console.print(f"[blue]Rows exported: {stats['rows_exported']}[/blue]")
    except (JsonDBError, ValueError, OSError) as e:
        _fail("Error exporting JSON", e)


@app.command("export-csv")
def export_csv_cmd(
    table: str = typer.Argument(..., help="Table name to export"),
    file_path: str = typer.Argument(..., help="Output CSV file path"),
    where: Optional[List[str]] = typer.Option(None, "--where", "-w", help="Filter as key=value (repeatable)"),
    delimiter: str = typer.Option(",", "--delimiter", help="CSV delimiter"),
    name: Optional[str] = NAME_OPTION,
    location: Optional[str] = LOCATION_OPTION,
    database: Optional[str] = DATABASE_OPTION,
) -> None:
    """Export table data to a CSV file."""
    try:
        db = open_db(name, location, database)

        with console.status("[bold green]Exporting to CSV..."):
            stats = export_csv(db, table, file_path, parse_where(where), delimiter)

        console.print("[green]Successfully exported to CSV![/green]")
        console.print(f"[blue]File: {escape(stats['file_path'])}[/blue]")
        console.print(f"[blue]Rows exported: {stats['rows_exported']}[/blue]")
    except (JsonDBError, ValueError, OSError) as e:
        _fail("Error exporting CSV", e)


# Config commands
@config_app.command("init")
def config_init(
    path: str = typer.Option(".jsondb.json", "--path", "-p", help="Config file path"),
    format: str = typer.Option("json", "--format", "-f", help="Config format (json, yaml, toml)"),
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create a sample configuration file."""
    try:
        config_path = Path(path)
        if config_path.exists() and not force:
            _fail(f"Config file '{path}' already exists. Use --force to overwrite.")

        created = config_manager.create_sample_config(config_path, format)
        console.print(f"[green]Created sample config file: {escape(str(created))}[/green]")
        console.print("[blue]Edit the file to customize your settings[/blue]")
    except (OSError, ValueError) as e:
        _fail("Error creating config", e)


@config_app.command("show")
def config_show(
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Specific config file to show"),
) -> None:
    """Show current configuration."""
    try:
        if config_path:
            config = config_manager.load_config(config_path)
            console.print(f"[blue]Configuration from: {escape(config_path)}[/blue]")
        else:
            config = config_manager.get_config()
            config_file = config_manager.find_config_file()
            if config_file:
                console.print(f"[blue]Configuration from: {escape(str(config_file))}[/blue]")
            else:
                console.print("[blue]Using default configuration (no config file found)[/blue]")

        config_json = json.dumps(config, indent=2, default=str)
        syntax = Syntax(config_json, "json", theme="monokai", line_numbers=False)
        console.print(syntax)
    except ValueError as e:
        _fail("Error showing config", e)


@config_app.command("databases")
def config_databases() -> None:
    """List named databases from the config file."""
    try:
        config = config_manager.get_config()
    except ValueError as e:
        _fail("Error reading config", e)

    databases = config.get('databases', {})
    if not databases:
        console.print("[yellow]No named databases configured[/yellow]")
        console.print("[blue]Use 'jdb config init' to create a sample config[/blue]")
        return

    table_display = Table(title="Named Databases")
    table_display.add_column("Name", style="green")
    table_display.add_column("File", style="cyan")
    table_display.add_column("Location", style="yellow")
    table_display.add_column("Tables", style="magenta")

    for key, options in databases.items():
        table_display.add_row(
            escape(key),
            escape(str(options.get('name', key))),
            escape(str(options.get('location') or 'default')),
            escape(', '.join(options.get('tables') or []) or 'from file'),
        )

    console.print(table_display)


if __name__ == "__main__":
    app()

"""Tests for the CLI interface."""

import json
import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from jsondb.cli import app, parse_where
from jsondb.config import config
from jsondb.config_file import config_manager

runner = CliRunner()


@pytest.fixture(autouse=True)
def default_cli_config(monkeypatch):
    """Ignore config files on the machine running the tests."""
    monkeypatch.setattr(config_manager, '_config_cache', config_manager.get_default_config())


def test_cli_workflow(temp_dir):
    """Test a complete CLI workflow."""
    where = ["-n", "app", "-l", temp_dir]

    # Initialize database
    result = runner.invoke(app, ["db", "init", "app", "-t", "users", "-t", "posts", "-l", temp_dir])
    assert result.exit_code == 0
    assert "Successfully initialized" in result.stdout
    assert os.path.exists(os.path.join(temp_dir, "app.json"))

    # Insert rows
    result = runner.invoke(app, ["insert", "users", '{"name": "Alice", "age": 30}', *where])
    assert result.exit_code == 0
    assert "Inserted row with id 0" in result.stdout

    result = runner.invoke(app, ["insert", "users", '{"name": "Bob", "age": 25}', *where])
    assert result.exit_code == 0
    assert "Inserted row with id 1" in result.stdout

    # List tables
    result = runner.invoke(app, ["table", "list", *where])
    assert result.exit_code == 0
    assert "users" in result.stdout
    assert "posts" in result.stdout

    # Count rows
    result = runner.invoke(app, ["table", "count", "users", *where])
    assert result.exit_code == 0
    assert result.stdout.strip() == "2"

    # Get a row
    result = runner.invoke(app, ["get", "users", "0", *where])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"name": "Alice", "age": 30, "id": 0}

    # Query with a filter
    result = runner.invoke(app, ["query", "users", "-w", "age=25", "-f", "json", *where])
    assert result.exit_code == 0
    assert [row["name"] for row in json.loads(result.stdout)] == ["Bob"]

    # Search
    result = runner.invoke(app, ["search", "users", "name", "ALI", *where])
    assert result.exit_code == 0
    assert "Alice" in result.stdout
    assert "Bob" not in result.stdout

    # Update
    result = runner.invoke(app, ["update", "users", '{"id": 1, "name": "Robert"}', *where])
    assert result.exit_code == 0
    assert "Updated row 1" in result.stdout

    # Delete
    result = runner.invoke(app, ["delete", "users", "0", *where])
    assert result.exit_code == 0
    assert "Deleted row 0" in result.stdout

    # Show table
    result = runner.invoke(app, ["table", "show", "users", *where])
    assert result.exit_code == 0
    assert "Robert" in result.stdout
    assert "Alice" not in result.stdout

    # Database info
    result = runner.invoke(app, ["db", "info", *where])
    assert result.exit_code == 0
    assert "Database:" in result.stdout
    assert "posts" in result.stdout

    with open(os.path.join(temp_dir, "app.json")) as f:
        assert json.load(f) == {"users": [{"id": 1, "name": "Robert"}], "posts": []}


def test_init_refuses_existing_database(temp_dir):
    result = runner.invoke(app, ["db", "init", "app", "-t", "users", "-l", temp_dir])
    assert result.exit_code == 0

    result = runner.invoke(app, ["db", "init", "app", "-t", "users", "-l", temp_dir])
    assert result.exit_code == 1
    assert "already" in result.stdout

    result = runner.invoke(app, ["db", "init", "app", "-t", "posts", "-l", temp_dir, "--force"])
    assert result.exit_code == 0
    with open(os.path.join(temp_dir, "app.json")) as f:
        assert json.load(f) == {"posts": []}


def test_environment_flags_reach_every_command(temp_dir, monkeypatch):
    monkeypatch.setattr(config, '_one_indexed', True)
    monkeypatch.setattr(config, '_compact', True)
    where = ["-n", "app", "-l", temp_dir]

    result = runner.invoke(app, ["db", "init", "app", "-t", "users", "-l", temp_dir])
    assert result.exit_code == 0
    with open(os.path.join(temp_dir, "app.json")) as f:
        assert f.read() == '{"users":[]}'

    result = runner.invoke(app, ["insert", "users", '{"name": "Alice"}', *where])
    assert result.exit_code == 0
    assert "Inserted row with id 1" in result.stdout

    result = runner.invoke(app, ["db", "info", *where])
    assert result.exit_code == 0
    assert "Ids start at: 1" in result.stdout

    with open(os.path.join(temp_dir, "app.json")) as f:
        assert f.read() == '{"users":[{"name":"Alice","id":1}]}'


def test_config_file_flags_override_environment(temp_dir, monkeypatch):
    loaded = config_manager.get_default_config()
    loaded['database'].update(one_indexed=True, compact=False)
    monkeypatch.setattr(config_manager, '_config_cache', loaded)
    monkeypatch.setattr(config, '_compact', True)

    runner.invoke(app, ["db", "init", "app", "-t", "users", "-l", temp_dir])
    result = runner.invoke(app, ["insert", "users", '{"name": "Alice"}', "-n", "app", "-l", temp_dir])

    assert result.exit_code == 0
    assert "Inserted row with id 1" in result.stdout
    with open(os.path.join(temp_dir, "app.json")) as f:
        assert json.load(f) == {"users": [{"name": "Alice", "id": 1}]}
        f.seek(0)
        assert "\n" in f.read()


def test_error_handling(temp_dir):
    """Test CLI error handling."""
    where = ["-n", "app", "-l", temp_dir]

    # No database yet
    result = runner.invoke(app, ["table", "list", *where])
    assert result.exit_code == 1
    assert "Error" in result.stdout

    runner.invoke(app, ["db", "init", "app", "-t", "users", "-l", temp_dir])

    # Unknown table
    result = runner.invoke(app, ["insert", "nope", '{"name": "x"}', *where])
    assert result.exit_code == 1
    assert "not found" in result.stdout

    # Invalid JSON
    result = runner.invoke(app, ["insert", "users", "{broken", *where])
    assert result.exit_code == 1
    assert "Invalid JSON" in result.stdout

    # Missing row
    result = runner.invoke(app, ["get", "users", "7", *where])
    assert result.exit_code == 1
    assert "No row with id 7" in result.stdout

    # Update without id
    result = runner.invoke(app, ["update", "users", '{"name": "x"}', *where])
    assert result.exit_code == 1

    # Bad filter
    result = runner.invoke(app, ["query", "users", "-w", "broken", *where])
    assert result.exit_code == 1


def test_clear_requires_confirmation(temp_dir):
    where = ["-n", "app", "-l", temp_dir]
    runner.invoke(app, ["db", "init", "app", "-t", "users", "-l", temp_dir])
    runner.invoke(app, ["insert", "users", '{"name": "Alice"}', *where])

    result = runner.invoke(app, ["table", "clear", "users", *where], input="n\n")
    assert result.exit_code != 0

    result = runner.invoke(app, ["table", "clear", "users", "-y", *where])
    assert result.exit_code == 0
    assert "Cleared table" in result.stdout


def test_load_and_export(temp_dir):
    where = ["-n", "app", "-l", temp_dir]
    runner.invoke(app, ["db", "init", "app", "-t", "users", "-l", temp_dir])

    source = os.path.join(temp_dir, "people.json")
    with open(source, "w") as f:
        json.dump({"people": [{"name": "Alice"}, {"name": "Bob"}]}, f)

    result = runner.invoke(app, ["load-json", source, "-t", "users", "-k", "people", *where])
    assert result.exit_code == 0
    assert "Rows inserted: 2" in result.stdout

    json_out = os.path.join(temp_dir, "out.json")
    result = runner.invoke(app, ["export-json", "users", json_out, "-w", "name=Bob", *where])
    assert result.exit_code == 0
    with open(json_out) as f:
        assert json.load(f) == [{"name": "Bob", "id": 1}]

    csv_out = os.path.join(temp_dir, "out.csv")
    result = runner.invoke(app, ["export-csv", "users", csv_out, *where])
    assert result.exit_code == 0
    assert "Rows exported: 2" in result.stdout


def test_config_init_and_databases(temp_dir, monkeypatch):
    config_path = os.path.join(temp_dir, "jsondb.yaml")

    result = runner.invoke(app, ["config", "init", "--path", config_path, "--format", "yaml"])
    assert result.exit_code == 0
    assert "Created sample config file" in result.stdout

    result = runner.invoke(app, ["config", "show", "--config", config_path])
    assert result.exit_code == 0
    assert "preferences" in result.stdout

    monkeypatch.setattr(config_manager, '_config_cache', config_manager.load_config(config_path))
    result = runner.invoke(app, ["config", "databases"])
    assert result.exit_code == 0
    assert "settings" in result.stdout


def test_named_database_from_config(temp_dir, monkeypatch):
    loaded = config_manager.get_default_config()
    loaded['databases'] = {'inventory': {'location': temp_dir, 'tables': ['items']}}
    monkeypatch.setattr(config_manager, '_config_cache', loaded)

    result = runner.invoke(app, ["insert", "items", '{"sku": "A-1"}', "-d", "inventory"])
    assert result.exit_code == 0

    with open(os.path.join(temp_dir, "inventory.json")) as f:
        assert json.load(f) == {"items": [{"sku": "A-1", "id": 0}]}


def test_parse_where():
    assert parse_where(["age=30", "name=Alice", "active=true"]) == {
        "age": 30,
        "name": "Alice",
        "active": True,
    }
    assert parse_where(None) == {}
    with pytest.raises(ValueError):
        parse_where(["missing-separator"])


def test_named_database_one_indexed(temp_dir, monkeypatch):
    loaded = config_manager.get_default_config()
    loaded['databases'] = {'settings': {'location': temp_dir, 'tables': ['preferences'], 'one_indexed': True}}
    monkeypatch.setattr(config_manager, '_config_cache', loaded)

    result = runner.invoke(app, ["insert", "preferences", '{"theme": "dark"}', "-d", "settings"])
    assert result.exit_code == 0
    assert "Inserted row with id 1" in result.stdout


def test_search_reports_broken_config(temp_dir, monkeypatch):
    where = ["-n", "app", "-l", temp_dir]
    runner.invoke(app, ["db", "init", "app", "-t", "users", "-l", temp_dir])
    runner.invoke(app, ["insert", "users", '{"name": "Alice"}', *where])

    broken = os.path.join(temp_dir, ".jsondb.json")
    with open(broken, "w") as f:
        f.write("{broken")
    monkeypatch.setattr(config_manager, '_config_cache', None)
    monkeypatch.setattr(config_manager, 'config_search_paths', [Path(broken)])

    result = runner.invoke(app, ["search", "users", "name", "ali", *where])

    assert result.exit_code == 1
    assert "Error searching table" in result.stdout

"""Tests for configuration files and environment defaults."""

import json
import os
from pathlib import Path

import pytest
import toml
import yaml

from jsondb.config import Config, set_default_location, get_default_location
from jsondb.config_file import ConfigManager


class TestConfigManager:
    """Test discovery and parsing of config files."""

    def test_defaults_without_file(self, temp_dir):
        manager = ConfigManager(Path(temp_dir))
        manager.config_search_paths = manager.config_search_paths[:8]

        config = manager.get_config()

        assert config['database']['name'] == 'db'
        assert config['databases'] == {}

    def test_json_file(self, temp_dir):
        Path(temp_dir, '.jsondb.json').write_text(json.dumps({
            'database': {'name': 'main', 'location': './data'},
            'databases': {'app': {'tables': ['users']}},
        }))
        manager = ConfigManager(Path(temp_dir))

        config = manager.get_config()

        assert config['database']['name'] == 'main'
        assert config['database']['compact'] is None
        assert manager.find_config_file() == Path(temp_dir, '.jsondb.json')

    def test_yaml_file(self, temp_dir):
        Path(temp_dir, '.jsondb.yaml').write_text(yaml.dump({
            'databases': {'app': {'tables': ['users'], 'one_indexed': True}},
        }))
        manager = ConfigManager(Path(temp_dir))

        options = manager.get_database_options('app')

        assert options['tables'] == ['users']
        assert options['one_indexed'] is True
        assert options['name'] == 'app'

    def test_toml_file(self, temp_dir):
        Path(temp_dir, 'jsondb.config.toml').write_text(toml.dumps({
            'database': {'name': 'settings', 'compact': True},
        }))
        manager = ConfigManager(Path(temp_dir))

        assert manager.get_database_options() == {
            'name': 'settings',
            'location': None,
            'one_indexed': None,
            'compact': True,
        }

    def test_named_database_defaults_name(self, temp_dir):
        Path(temp_dir, '.jsondb.json').write_text(json.dumps({
            'database': {'name': None},
            'databases': {'inventory': {'tables': ['items']}},
        }))
        manager = ConfigManager(Path(temp_dir))

        assert manager.get_database_options('inventory')['name'] == 'inventory'

    def test_unknown_named_database(self, temp_dir):
        manager = ConfigManager(Path(temp_dir))
        manager.config_search_paths = manager.config_search_paths[:8]

        with pytest.raises(ValueError):
            manager.get_database_options('missing')

    def test_env_vars_resolved(self, temp_dir, monkeypatch):
        monkeypatch.setenv('JSONDB_TEST_DIR', temp_dir)
        Path(temp_dir, '.jsondb.json').write_text(json.dumps({
            'databases': {'app': {'location': '${JSONDB_TEST_DIR}', 'tables': ['users']}},
        }))
        manager = ConfigManager(Path(temp_dir))

        assert manager.get_database_options('app')['location'] == temp_dir

    def test_invalid_file(self, temp_dir):
        Path(temp_dir, '.jsondb.json').write_text('{broken')
        manager = ConfigManager(Path(temp_dir))

        with pytest.raises(ValueError):
            manager.get_config()

    def test_unsupported_explicit_file(self, temp_dir):
        path = Path(temp_dir, 'config.ini')
        path.write_text('[database]')
        with pytest.raises(ValueError):
            ConfigManager(Path(temp_dir)).load_config(path)

    @pytest.mark.parametrize('format', ['json', 'yaml', 'toml'])
    def test_sample_config_round_trip(self, temp_dir, format):
        manager = ConfigManager(Path(temp_dir))

        created = manager.create_sample_config(Path(temp_dir, 'sample'), format)
        loaded = manager.load_config(created)

        assert created.suffix in ('.json', '.yaml', '.toml')
        assert loaded['databases']['app']['tables'] == ['users', 'posts']
        assert loaded['database']['location'] == './data'


class TestEnvironmentConfig:
    """Test environment variable defaults."""

    def test_reads_environment(self, temp_dir, monkeypatch):
        monkeypatch.setenv('JSONDB_LOCATION', temp_dir)
        monkeypatch.setenv('JSONDB_COMPACT', 'yes')
        monkeypatch.setenv('JSONDB_ONE_INDEXED', '1')
        monkeypatch.setenv('JSONDB_LOG_LEVEL', 'debug')

        config = Config()

        assert config.location == temp_dir
        assert config.compact is True
        assert config.one_indexed is True
        assert config.log_level == 'DEBUG'

    def test_defaults(self, monkeypatch):
        for name in ('JSONDB_LOCATION', 'JSONDB_COMPACT', 'JSONDB_ONE_INDEXED', 'JSONDB_LOG_LEVEL'):
            monkeypatch.delenv(name, raising=False)

        config = Config()

        assert config.location is None
        assert config.compact is False
        assert config.one_indexed is False
        assert config.log_level == 'WARNING'

    def test_set_default_location(self, temp_dir):
        set_default_location(temp_dir)
        assert get_default_location() == temp_dir

        with pytest.raises(ValueError):
            set_default_location('  ')

    def test_environment_flags_apply_to_new_databases(self, temp_dir, monkeypatch):
        import jsondb
        from jsondb.config import config

        monkeypatch.setattr(config, '_one_indexed', True)
        monkeypatch.setattr(config, '_compact', True)

        db = jsondb.connect(['users'], 'env', location=temp_dir)
        db.insert({'name': 'Alice'}, 'users')

        with open(os.path.join(temp_dir, 'env.json')) as f:
            assert f.read() == '{"users":[{"name":"Alice","id":1}]}'

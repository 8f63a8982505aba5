"""Configuration file support for JsonDB.

A config file names a default database and, optionally, a set of named
databases the CLI can open with ``--database``:

    database:
      name: app
      location: ./data
    databases:
      settings:
        location: ${JSONDB_LOCATION}
        tables: [preferences]
        one_indexed: true
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import toml
import yaml

logger = logging.getLogger(__name__)

CONFIG_NAMES = (".jsondb", "jsondb.config")
CONFIG_SUFFIXES = (".json", ".yaml", ".yml", ".toml")
SECTIONS = ("database", "databases", "cli")

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

_LOADERS: Dict[str, Callable[[Any], Any]] = {
    ".json": json.load,
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".toml": toml.load,
}


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    return value


class ConfigManager:
    """Manages JsonDB configuration files."""

    def __init__(self, base_dir: Optional[Path] = None):
        base = Path(base_dir) if base_dir else Path.cwd()
        user_dir = Path.home() / ".config" / "jsondb"

        self.config_search_paths: List[Path] = [
            base / f"{name}{suffix}" for name in CONFIG_NAMES for suffix in CONFIG_SUFFIXES
        ]
        self.config_search_paths += [user_dir / f"config{suffix}" for suffix in CONFIG_SUFFIXES]
        self._config_cache: Optional[Dict[str, Any]] = None

    def find_config_file(self) -> Optional[Path]:
        """First existing file in the search order, or None."""
        return next((path for path in self.config_search_paths if path.is_file()), None)

    def load_config(self, config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
        """
        Read a config file merged over the defaults.

        Without ``config_path`` the search paths are tried in order and the
        defaults are returned when none exists.

        Raises:
            ValueError: If an explicit file is missing, or a file cannot be
                parsed or has the wrong shape
        """
        if config_path is None:
            found = self.find_config_file()
            if found is None:
                return self.get_default_config()
            config_file = found
        else:
            config_file = Path(config_path)
            if not config_file.exists():
                raise ValueError(f"Config file not found: {config_file}")

        loader = _LOADERS.get(config_file.suffix.lower())
        if loader is None:
            raise ValueError(f"Unsupported config file format: {config_file.suffix}")

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                raw = loader(f)
        except (OSError, ValueError, yaml.YAMLError, toml.TomlDecodeError) as e:
            raise ValueError(f"Error loading config file {config_file}: {e}") from e

        logger.debug("Loaded config file %s", config_file)
        return self._merge_defaults(raw or {}, config_file)

    def _merge_defaults(self, raw: Any, source: Path) -> Dict[str, Any]:
        if not isinstance(raw, dict):
            raise ValueError(f"Config file {source} must contain a mapping")

        merged = self.get_default_config()
        for section in SECTIONS:
            value = raw.get(section)
            if value is None:
                continue
            if not isinstance(value, dict):
                raise ValueError(f"Config section '{section}' in {source} must be a mapping")
            merged[section].update(value)
        return merged

    def get_default_config(self) -> Dict[str, Any]:
        return {
            'database': {
                'name': 'db',
                'location': None,
                # None defers to JSONDB_ONE_INDEXED / JSONDB_COMPACT
                'one_indexed': None,
                'compact': None,
            },
            'databases': {},
            'cli': {
                'max_rows_display': 100,
            },
        }

    def get_config(self) -> Dict[str, Any]:
        """Configuration from the first config file found, loaded once."""
        if self._config_cache is None:
            self._config_cache = self.load_config()
        return self._config_cache

    def get_database_options(self, name: Optional[str] = None) -> Dict[str, Any]:
        """
        Options for opening a database.

        A named entry is layered over the ``database`` section and takes its
        key as the database name unless it sets one. ``${VAR}`` references
        are replaced from the environment.

        Raises:
            ValueError: If ``name`` is not a configured database
        """
        config = self.get_config()
        options = dict(config['database'])

        if name:
            named = config['databases'].get(name)
            if named is None:
                raise ValueError(f"Database '{name}' not found in config")
            options['name'] = name
            options.update(named)

        return self.resolve_env_vars(options)

    def save_config(self, config: Dict[str, Any], config_path: Union[str, Path, None] = None) -> Path:
        """Write ``config`` in the format given by the file suffix (JSON by default)."""
        config_file = Path(config_path) if config_path else Path.cwd() / ".jsondb.json"
        config_file.parent.mkdir(parents=True, exist_ok=True)

        suffix = config_file.suffix.lower()
        with open(config_file, 'w', encoding='utf-8') as f:
            if suffix in ('.yaml', '.yml'):
                yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
            elif suffix == '.toml':
                # TOML has no null
                toml.dump(_drop_none(config), f)
            else:
                json.dump(config, f, indent=2)

        logger.info("Wrote config file %s", config_file)
        return config_file

    def create_sample_config(self, config_path: Union[str, Path], format: str = 'json') -> Path:
        """Write an example config with two named databases and return its path."""
        suffixes = {'json': '.json', 'yaml': '.yaml', 'toml': '.toml'}
        if format not in suffixes:
            raise ValueError(f"Unsupported config format '{format}', expected one of: {', '.join(suffixes)}")

        config = self.get_default_config()
        config['database'].update(name='app', location='./data')
        config['databases'] = {
            'app': {
                'location': './data',
                'tables': ['users', 'posts'],
            },
            'settings': {
                'location': '${JSONDB_LOCATION}',
                'tables': ['preferences'],
                'one_indexed': True,
            },
        }

        return self.save_config(config, Path(config_path).with_suffix(suffixes[format]))

    def resolve_env_vars(self, value: Any) -> Any:
        """Replace ``${VAR}`` references; unset variables are left as written."""
        if isinstance(value, str):
            return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)
        if isinstance(value, dict):
            return {k: self.resolve_env_vars(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self.resolve_env_vars(item) for item in value]
        return value


# Global config manager instance
config_manager = ConfigManager()

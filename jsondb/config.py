"""Configuration management for JsonDB."""

import os
from typing import Optional


_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


class Config:
    """Configuration class for JsonDB."""

    def __init__(self) -> None:
        self._location: Optional[str] = None
        self._compact: bool = False
        self._one_indexed: bool = False
        self._log_level: str = "WARNING"
        self._load_from_env()

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        self._location = os.getenv("JSONDB_LOCATION") or None
        self._compact = _env_flag("JSONDB_COMPACT")
        self._one_indexed = _env_flag("JSONDB_ONE_INDEXED")
        self._log_level = os.getenv("JSONDB_LOG_LEVEL", "WARNING").upper()

    def reload(self) -> None:
        """Re-read the environment."""
        self._load_from_env()

    @property
    def location(self) -> Optional[str]:
        """Default storage directory, used when no location is passed."""
        return self._location

    @location.setter
    def location(self, value: Optional[str]) -> None:
        if value is not None and not str(value).strip():
            raise ValueError("Default location cannot be blank")
        self._location = str(value) if value is not None else None

    @property
    def compact(self) -> bool:
        """Whether new databases serialize without indentation by default."""
        return self._compact

    @property
    def one_indexed(self) -> bool:
        """Whether new databases number ids from 1 by default."""
        return self._one_indexed

    @property
    def log_level(self) -> str:
        return self._log_level


# Global configuration instance
config = Config()


def set_default_location(location: Optional[str]) -> None:
    """Set the default storage directory globally."""
    config.location = location


def get_default_location() -> Optional[str]:
    """Get the default storage directory."""
    return config.location

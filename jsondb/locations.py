"""Default storage locations for JsonDB databases."""

import logging
import os
import sys
from importlib import metadata
from pathlib import Path
from typing import Optional, Protocol

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class LocationResolver(Protocol):
    """Anything that can name a directory for database files."""

    def resolve(self) -> str:
        ...


def package_name(distribution: str = "jsondb") -> str:
    """Return the installed name of ``distribution``, or '' when unavailable."""
    try:
        return metadata.metadata(distribution)["Name"] or ""
    except metadata.PackageNotFoundError:
        logger.debug("Distribution %s is not installed", distribution)
        return ""


class DefaultLocationResolver:
    """Per-platform application data directory.

    Windows uses ``%APPDATA%``, macOS ``~/Library/Application Support`` and
    everything else ``$XDG_DATA_HOME`` (falling back to ``~/.local/share``).
    The application name is appended as the last path component.
    """

    def __init__(self, app_name: Optional[str] = None, distribution: str = "jsondb",
                 platform: Optional[str] = None):
        self.app_name = app_name
        self.distribution = distribution
        self.platform = platform or sys.platform

    def _base_dir(self) -> Path:
        if self.platform == "win32":
            appdata = os.getenv("APPDATA")
            if not appdata:
                raise ConfigurationError(
                    "Cannot resolve a default location: APPDATA is not set",
                    ["Pass an explicit location", "Set JSONDB_LOCATION"],
                )
            return Path(appdata)

        try:
            home = Path.home()
        except RuntimeError as e:
            raise ConfigurationError(
                f"Cannot resolve a default location: {e}",
                ["Pass an explicit location", "Set JSONDB_LOCATION"],
            ) from e

        if self.platform == "darwin":
            return home / "Library" / "Application Support"

        xdg = os.getenv("XDG_DATA_HOME")
        if xdg:
            return Path(xdg)
        return home / ".local" / "share"

    def resolve(self) -> str:
        app_name = self.app_name if self.app_name is not None else package_name(self.distribution)
        location = self._base_dir() / app_name
        logger.debug("Resolved default location %s", location)
        return str(location)


class FixedLocationResolver:
    """Always returns the same directory."""

    def __init__(self, path: str | os.PathLike):
        self.path = os.fspath(path)

    def resolve(self) -> str:
        return self.path

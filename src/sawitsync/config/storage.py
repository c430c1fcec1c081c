"""Where the local SQLite store lives.

``DATABASE_URI`` wins outright. Otherwise the database file sits in
``SAWITSYNC_DATA_DIR`` or, failing that, in the per-user data directory of the
platform.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

DATA_DIR_ENV = "SAWITSYNC_DATA_DIR"
DATABASE_URI_ENV = "DATABASE_URI"
DATABASE_FILENAME = "sawitsync.db"


def _platform_data_home() -> Path:
    if sys.platform == "win32":
        local = os.getenv("LOCALAPPDATA")
        return Path(local) if local else Path.home() / "AppData" / "Local"
    xdg = os.getenv("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DATABASE_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def sqlite_uri(self) -> str:
        """URI of the database file; creates the data directory on the way."""

        directory = self.resolve_data_dir()
        directory.mkdir(parents=True, exist_ok=True)
        return "sqlite+pysqlite:///" + str(directory / self.database_filename)


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def get_storage_config() -> StorageConfig:
    configured = os.getenv(DATA_DIR_ENV)
    if configured:
        return StorageConfig(data_dir=Path(configured))
    return StorageConfig(data_dir=_platform_data_home() / "sawitsync")


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    uri = os.getenv(DATABASE_URI_ENV)
    if not uri:
        uri = (storage or get_storage_config()).sqlite_uri()
    return DatabaseConfig(uri=uri)

"""Where doofpy keeps its catalog database and geocoding cache."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_flag

CATALOG_DATABASE: Final[str] = "catalog.db"
GEOCODE_CACHE_DATABASE: Final[str] = "geocode_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path

    def path_for(self, filename: str) -> Path:
        """Absolute path of ``filename`` in the data dir; the dir is created on demand."""

        directory = self.data_dir.expanduser().resolve()
        directory.mkdir(parents=True, exist_ok=True)
        return directory / filename

    @property
    def catalog_database(self) -> Path:
        return self.path_for(CATALOG_DATABASE)

    @property
    def geocode_cache(self) -> Path:
        return self.path_for(GEOCODE_CACHE_DATABASE)


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False


def get_storage_config() -> StorageConfig:
    configured = os.getenv("DOOFPY_DATA_DIR")
    if configured:
        return StorageConfig(data_dir=Path(configured))
    xdg_data_home = os.getenv("XDG_DATA_HOME")
    base = Path(xdg_data_home) if xdg_data_home else Path.home() / ".local" / "share"
    return StorageConfig(data_dir=base / "doofpy")


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise a sqlite file in the data dir."""

    uri = os.getenv("DATABASE_URI")
    if not uri:
        uri = f"sqlite+pysqlite:///{(storage or get_storage_config()).catalog_database}"
    return DatabaseConfig(uri=uri, echo=env_flag("DOOFPY_SQL_ECHO"))

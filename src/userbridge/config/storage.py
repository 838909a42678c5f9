"""Where the local account store lives and how to connect to it."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "userbridge"
DEFAULT_DB_FILENAME: Final[str] = "userbridge.db"
TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def database_uri(self) -> str:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{data_dir / DEFAULT_DB_FILENAME}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False
    engine_options: dict[str, object] = field(default_factory=dict)


def _platform_data_home() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        return Path(base) if base else (Path.home() / "AppData" / "Local")
    base = os.getenv("XDG_DATA_HOME")
    return Path(base) if base else (Path.home() / ".local" / "share")


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("USERBRIDGE_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _platform_data_home() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir)


def get_database_config(
    *, uri: str | None = None, storage: StorageConfig | None = None
) -> DatabaseConfig:
    """Resolve the local store connection.

    An explicit ``uri`` wins over ``DATABASE_URI``, which wins over the data
    directory. SQLite connections may be used from request threads other than
    the one that opened them.
    """

    uri = uri or os.getenv("DATABASE_URI") or (storage or get_storage_config()).database_uri()
    echo = (os.getenv("USERBRIDGE_DB_ECHO") or "").strip().lower() in TRUTHY
    options: dict[str, object] = {}
    if uri.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_pre_ping"] = True
    return DatabaseConfig(uri=uri, echo=echo, engine_options=options)

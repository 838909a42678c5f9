"""Alembic entry points for the local account store schema."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext

from userbridge.config import get_database_config

PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parents[5]
PYPROJECT_PATH: Final[Path] = PROJECT_ROOT / "pyproject.toml"
MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def _script_location() -> Path:
    """Return ``[tool.alembic] script_location`` from a source checkout.

    Installed packages have no pyproject next to them and use the migrations
    shipped beside this module.
    """

    try:
        with PYPROJECT_PATH.open("rb") as pyproject_file:
            document = tomllib.load(pyproject_file)
    except FileNotFoundError:
        return MIGRATIONS_PATH
    configured = document.get("tool", {}).get("alembic", {}).get("script_location")
    if not configured:
        return MIGRATIONS_PATH
    candidate = Path(configured)
    if not candidate.is_absolute():
        candidate = PROJECT_ROOT / candidate
    return candidate if (candidate / "env.py").exists() else MIGRATIONS_PATH


def _build_config(database_uri: str | None = None) -> Config:
    config = Config()
    config.set_main_option("script_location", str(_script_location()))
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Upgrade the local store to the latest revision.

    With ``engine`` the upgrade runs on one of its connections, which keeps
    in-memory SQLite databases usable afterwards.
    """

    if engine is not None:
        config = _build_config()
        with engine.begin() as connection:
            config.attributes["connection"] = connection
            command.upgrade(config, "head")
        return
    command.upgrade(_build_config(database_uri or get_database_config().uri), "head")


def current_revision(engine: Engine) -> str | None:
    """Return the revision the database is stamped with, if any."""

    with engine.connect() as connection:
        return MigrationContext.configure(connection).get_current_revision()

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import create_engine, inspect

from userbridge.adapters.sqlalchemy.migrations import (
    MIGRATIONS_PATH,
    current_revision,
    upgrade_head,
)

if TYPE_CHECKING:
    from pathlib import Path


def test_migrations_ship_with_the_package() -> None:
    assert (MIGRATIONS_PATH / "env.py").exists()
    assert any((MIGRATIONS_PATH / "versions").glob("0001_*.py"))


def test_upgrade_head_creates_schema_in_file_database(tmp_path: Path) -> None:
    uri = f"sqlite+pysqlite:///{tmp_path / 'directory.db'}"

    upgrade_head(database_uri=uri)
    # running twice is a no-op
    upgrade_head(database_uri=uri)

    engine = create_engine(uri, future=True)
    try:
        inspector = inspect(engine)
        assert "directory_account" in inspector.get_table_names()
        assert current_revision(engine) == "0001"
    finally:
        engine.dispose()


def test_fresh_database_has_no_revision(tmp_path: Path) -> None:
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'empty.db'}", future=True)
    try:
        assert current_revision(engine) is None
    finally:
        engine.dispose()

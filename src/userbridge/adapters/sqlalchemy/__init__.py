"""SQLAlchemy adapter package for the local account store."""

from __future__ import annotations

from .filters import where_clause
from .mappings import (
    account_table,
    create_all_tables,
    mapper_registry,
    start_mappers,
)
from .repositories import SqlAlchemyLocalAccountRepository

__all__ = [
    "SqlAlchemyLocalAccountRepository",
    "account_table",
    "create_all_tables",
    "mapper_registry",
    "start_mappers",
    "where_clause",
]

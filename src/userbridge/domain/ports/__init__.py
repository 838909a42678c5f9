"""Domain port definitions for adapters."""

from __future__ import annotations

from .identity import IdentityDirectory
from .persistence import LocalAccountRepository, Repository
from .unit_of_work import (
    DirectoryRepositories,
    DirectoryUnitOfWork,
    DirectoryUnitOfWorkFactory,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "DirectoryRepositories",
    "DirectoryUnitOfWork",
    "DirectoryUnitOfWorkFactory",
    "IdentityDirectory",
    "LocalAccountRepository",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
]

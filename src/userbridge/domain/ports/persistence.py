"""Ports for persisting local account records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from userbridge.domain.model import LocalAccount

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from userbridge.domain.filtering import CompiledPredicate


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def save(self, entity: TEntity) -> None: ...

    def delete(self, entity: TEntity) -> None: ...


@runtime_checkable
class LocalAccountRepository(Repository[LocalAccount], Protocol):
    """Persistence contract for the locally owned half of accounts."""

    def find_by_id(self, account_id: UUID) -> LocalAccount | None: ...

    def find_by_username(self, username: str) -> LocalAccount | None: ...

    def find_by_email(self, email: str) -> LocalAccount | None: ...

    def find_all_by_external_id_in(self, external_ids: Iterable[str]) -> list[LocalAccount]: ...

    def save_all(self, entities: Iterable[LocalAccount]) -> None: ...

    def query(
        self, predicate: CompiledPredicate, *, offset: int = 0, limit: int | None = None
    ) -> Sequence[LocalAccount]: ...

    def count(self, predicate: CompiledPredicate) -> int: ...

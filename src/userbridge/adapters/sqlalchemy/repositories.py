"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from userbridge.adapters.sqlalchemy.filters import where_clause
from userbridge.adapters.sqlalchemy.mappings import account_table
from userbridge.domain.model import LocalAccount

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from sqlalchemy.orm import Session

    from userbridge.domain.filtering import CompiledPredicate


class SqlAlchemyLocalAccountRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def save(self, entity: LocalAccount) -> None:
        self.session.add(entity)

    def save_all(self, entities: Iterable[LocalAccount]) -> None:
        self.session.add_all(list(entities))

    def delete(self, entity: LocalAccount) -> None:
        self.session.delete(entity)

    def find_by_id(self, account_id: UUID) -> LocalAccount | None:
        return self.session.get(LocalAccount, account_id)

    def find_by_username(self, username: str) -> LocalAccount | None:
        stmt = select(LocalAccount).where(account_table.c.username == username)
        return self.session.execute(stmt).scalar_one_or_none()

    def find_by_email(self, email: str) -> LocalAccount | None:
        stmt = select(LocalAccount).where(account_table.c.email == email)
        return self.session.execute(stmt).scalar_one_or_none()

    def find_all_by_external_id_in(self, external_ids: Iterable[str]) -> list[LocalAccount]:
        distinct_ids = list(dict.fromkeys(external_ids))
        if not distinct_ids:
            return []
        stmt = select(LocalAccount).where(account_table.c.external_id.in_(distinct_ids))
        return list(self.session.scalars(stmt))

    def query(
        self, predicate: CompiledPredicate, *, offset: int = 0, limit: int | None = None
    ) -> list[LocalAccount]:
        stmt = (
            select(LocalAccount)
            .where(where_clause(predicate, account_table))
            .order_by(account_table.c.username, account_table.c.id)
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt))

    def count(self, predicate: CompiledPredicate) -> int:
        stmt = (
            select(func.count())
            .select_from(account_table)
            .where(where_clause(predicate, account_table))
        )
        return self.session.execute(stmt).scalar_one()

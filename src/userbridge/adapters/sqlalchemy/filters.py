"""Translate compiled filter predicates into SQL ``WHERE`` clauses."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String, and_, func, true

from userbridge.domain.filtering import Clause, CompiledPredicate, Operator

from .mappings import TABLE_BY_ENTITY

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement, Table


def _translate(clause: Clause, table: Table) -> ColumnElement[bool]:  # noqa: PLR0911
    column = table.c[clause.field.attribute]
    value = clause.value
    if clause.operator is Operator.EQ:
        return column == value
    if clause.operator is Operator.LIKE:
        return func.lower(column, type_=String).contains(value, autoescape=True)
    if clause.operator is Operator.GTE:
        return column >= value
    if clause.operator is Operator.LTE:
        return column <= value
    if clause.operator is Operator.GT:
        return column > value
    if clause.operator is Operator.LT:
        return column < value
    if clause.operator is Operator.IN:
        return column.in_(value)
    low, high = value
    return column.between(low, high)


def where_clause(predicate: CompiledPredicate, table: Table | None = None) -> ColumnElement[bool]:
    """Return the SQL equivalent of ``predicate``; the identity predicate becomes ``TRUE``."""

    target = table if table is not None else TABLE_BY_ENTITY.get(predicate.entity_type)
    if target is None:
        raise LookupError(f"No table mapped for {predicate.entity_type.__name__}")
    if predicate.is_identity:
        return true()
    return and_(*(_translate(clause, target) for clause in predicate.clauses))

"""Compile string-keyed filter maps into typed predicates.

A filter map looks like ``{"dateOfBirth_gte": "1990-01-01", "username_like": "ann"}``.
Each key is split on its first underscore into a field name and an operator. The
field is looked up in the entity's static registry and the raw value is cast to
the field's declared type. Entries that cannot be compiled (unknown field or
operator, uncastable value, operator not valid for the type) are dropped; they
never raise. The surviving clauses are AND-combined.

The resulting :class:`CompiledPredicate` is callable on entities and is also
walked by the SQLAlchemy adapter to build a ``WHERE`` clause, so both must agree.
Missing attribute values never satisfy a clause, as with SQL ``NULL``.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Any

from .casting import CastError, cast_value
from .fields import registry_for

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from .fields import FieldSpec

log = getLogger(__name__)


class Operator(StrEnum):
    EQ = "eq"
    LIKE = "like"
    GTE = "gte"
    LTE = "lte"
    GT = "gt"
    LT = "lt"
    IN = "in"
    BETWEEN = "between"


_COMPARATORS: dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQ: operator.eq,
    Operator.GTE: operator.ge,
    Operator.LTE: operator.le,
    Operator.GT: operator.gt,
    Operator.LT: operator.lt,
}
COMPARISON_OPERATORS = frozenset({Operator.GTE, Operator.LTE, Operator.GT, Operator.LT})


@dataclass(frozen=True, slots=True)
class Clause:
    """One compiled ``field operator value`` test.

    ``value`` holds a single cast value for ``eq`` and comparisons, the lower-cased
    needle for ``like``, a tuple of values for ``in`` and a ``(low, high)`` pair for
    ``between``.
    """

    field: FieldSpec
    operator: Operator
    value: Any

    def matches(self, entity: object) -> bool:
        actual = self.field.read(entity)
        if actual is None:
            return False
        try:
            return self._test(actual)
        except TypeError:
            return False

    def _test(self, actual: Any) -> bool:
        if self.operator is Operator.LIKE:
            return self.value in str(actual).lower()
        if self.operator is Operator.IN:
            return actual in self.value
        if self.operator is Operator.BETWEEN:
            low, high = self.value
            return low <= actual <= high
        return _COMPARATORS[self.operator](actual, self.value)


@dataclass(frozen=True, slots=True)
class CompiledPredicate:
    """AND of compiled clauses for one entity type."""

    entity_type: type
    clauses: tuple[Clause, ...] = ()
    dropped: tuple[str, ...] = field(default=(), compare=False)

    def __call__(self, entity: object) -> bool:
        return all(clause.matches(entity) for clause in self.clauses)

    @property
    def is_identity(self) -> bool:
        """True when no clause survived and every record matches."""
        return not self.clauses


def match_all(entity_type: type) -> CompiledPredicate:
    return CompiledPredicate(entity_type=entity_type)


def _split_list(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",")]


def _compile_clause(spec: FieldSpec, op: Operator, raw: str) -> Clause | None:  # noqa: PLR0911
    if op is Operator.EQ:
        return Clause(spec, op, cast_value(raw, spec))

    if op is Operator.LIKE:
        if not spec.textual:
            return None
        return Clause(spec, op, raw.lower())

    if op in COMPARISON_OPERATORS:
        if not spec.orderable:
            return None
        return Clause(spec, op, cast_value(raw, spec))

    if op is Operator.IN:
        values: list[object] = []
        for element in _split_list(raw):
            if not element:
                continue
            try:
                values.append(cast_value(element, spec))
            except CastError:
                continue
        if not values:
            return None
        return Clause(spec, op, tuple(values))

    # between
    if not spec.orderable:
        return None
    bounds = _split_list(raw)
    if len(bounds) != 2:  # noqa: PLR2004
        return None
    low, high = (cast_value(bound, spec) for bound in bounds)
    return Clause(spec, op, (low, high))


def compile_filters(
    entity_type: type, filters: Mapping[str, str | None] | None
) -> CompiledPredicate:
    """Compile ``filters`` against the registry of ``entity_type``.

    Raises ``LookupError`` when ``entity_type`` has no registry; every other
    problem drops the offending entry.
    """

    registry = registry_for(entity_type)
    clauses: list[Clause] = []
    dropped: list[str] = []

    for key, raw in (filters or {}).items():
        field_name, separator, operator_name = key.partition("_")
        spec = registry.get(field_name) if separator else None
        try:
            op: Operator | None = Operator(operator_name)
        except ValueError:
            op = None

        clause: Clause | None = None
        if spec is not None and op is not None and raw is not None:
            try:
                clause = _compile_clause(spec, op, raw)
            except CastError:
                clause = None

        if clause is None:
            dropped.append(key)
        else:
            clauses.append(clause)

    if dropped:
        log.debug(
            "Dropped filter entries for %s: %s",
            entity_type.__name__,
            ", ".join(sorted(dropped)),
        )
    return CompiledPredicate(
        entity_type=entity_type, clauses=tuple(clauses), dropped=tuple(dropped)
    )

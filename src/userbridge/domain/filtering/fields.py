"""Static per-entity field registries consulted by the filter compiler."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, StrEnum
from operator import attrgetter
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator


class FieldType(StrEnum):
    INTEGER = "integer"
    LONG = "long"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DECIMAL = "decimal"
    DATE = "date"
    DATETIME = "datetime"
    UUID = "uuid"
    ENUM = "enum"
    STRING = "string"


ORDERABLE_TYPES: Final[frozenset[FieldType]] = frozenset(
    {
        FieldType.INTEGER,
        FieldType.LONG,
        FieldType.FLOAT,
        FieldType.DECIMAL,
        FieldType.DATE,
        FieldType.DATETIME,
        FieldType.STRING,
    }
)
TEXT_TYPES: Final[frozenset[FieldType]] = frozenset({FieldType.STRING})


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """A filterable field: its public name, declared type and where to read it.

    ``attribute`` names the entity attribute (and the mapped column for the SQL
    translation); ``accessor`` reads the value in-process and defaults to
    ``attrgetter(attribute)``.
    """

    name: str
    field_type: FieldType
    attribute: str
    enum_type: type[Enum] | None = None
    accessor: Callable[[object], object] | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.field_type is FieldType.ENUM and self.enum_type is None:
            raise ValueError(f"Enum field {self.name!r} requires an enum_type")

    def read(self, entity: object) -> object:
        getter = self.accessor or attrgetter(self.attribute)
        return getter(entity)

    @property
    def orderable(self) -> bool:
        return self.field_type in ORDERABLE_TYPES

    @property
    def textual(self) -> bool:
        return self.field_type in TEXT_TYPES


class FieldRegistry:
    """Filterable fields of one entity type, keyed by filter field name."""

    def __init__(self, entity_type: type, specs: Iterable[FieldSpec]) -> None:
        self.entity_type = entity_type
        self._specs: dict[str, FieldSpec] = {}
        for spec in specs:
            if spec.name in self._specs:
                raise ValueError(f"Duplicate filter field {spec.name!r} for {entity_type.__name__}")
            self._specs[spec.name] = spec

    def get(self, name: str) -> FieldSpec | None:
        return self._specs.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)


_REGISTRIES: dict[type, FieldRegistry] = {}


def register_fields(entity_type: type, specs: Iterable[FieldSpec]) -> FieldRegistry:
    """Register the filterable fields of ``entity_type``, replacing any previous entry."""

    registry = FieldRegistry(entity_type, specs)
    _REGISTRIES[entity_type] = registry
    return registry


def registry_for(entity_type: type) -> FieldRegistry:
    try:
        return _REGISTRIES[entity_type]
    except KeyError:
        raise LookupError(f"No filter fields registered for {entity_type.__name__}") from None

"""Conversion of raw filter strings into typed values."""

from __future__ import annotations

import re
from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Final
from uuid import UUID

from .fields import FieldType

if TYPE_CHECKING:
    from collections.abc import Callable

    from .fields import FieldSpec

INT32_MIN: Final[int] = -(2**31)
INT32_MAX: Final[int] = 2**31 - 1
INT64_MIN: Final[int] = -(2**63)
INT64_MAX: Final[int] = 2**63 - 1

_INTEGER_PATTERN = re.compile(r"[+-]?\d+")


class CastError(ValueError):
    """A raw filter value cannot be converted to the field's declared type."""


def _parse_integer(raw: str, lower: int, upper: int) -> int:
    if not _INTEGER_PATTERN.fullmatch(raw):
        raise CastError(f"Not an integer: {raw!r}")
    value = int(raw)
    if not lower <= value <= upper:
        raise CastError(f"Integer out of range: {raw!r}")
    return value


def _parse_float(raw: str) -> float:
    try:
        return float(raw)
    except ValueError as exc:
        raise CastError(f"Not a number: {raw!r}") from exc


def _parse_decimal(raw: str) -> Decimal:
    try:
        value = Decimal(raw)
    except InvalidOperation as exc:
        raise CastError(f"Not a decimal: {raw!r}") from exc
    if not value.is_finite():
        raise CastError(f"Not a finite decimal: {raw!r}")
    return value


def _parse_datetime(raw: str) -> datetime:
    try:
        value = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise CastError(f"Not an ISO date-time: {raw!r}") from exc
    # stored timestamps are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _parse_date(raw: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise CastError(f"Not an ISO date: {raw!r}") from exc


def _parse_uuid(raw: str) -> UUID:
    try:
        return UUID(raw)
    except ValueError as exc:
        raise CastError(f"Not a UUID: {raw!r}") from exc


def _parse_boolean(raw: str) -> bool:
    return raw.lower() == "true"


def _parse_string(raw: str) -> str:
    return raw


_PARSERS: Final[dict[FieldType, Callable[[str], object]]] = {
    FieldType.INTEGER: lambda raw: _parse_integer(raw, INT32_MIN, INT32_MAX),
    FieldType.LONG: lambda raw: _parse_integer(raw, INT64_MIN, INT64_MAX),
    FieldType.FLOAT: _parse_float,
    FieldType.BOOLEAN: _parse_boolean,
    FieldType.DECIMAL: _parse_decimal,
    FieldType.DATE: _parse_date,
    FieldType.DATETIME: _parse_datetime,
    FieldType.UUID: _parse_uuid,
    FieldType.STRING: _parse_string,
}


def cast_value(raw: str, spec: FieldSpec) -> object:
    """Cast ``raw`` to the type declared by ``spec`` or raise ``CastError``."""

    if spec.field_type is FieldType.ENUM:
        if spec.enum_type is None:
            raise CastError(f"Enum field {spec.name!r} has no enum type")
        try:
            return spec.enum_type[raw]
        except KeyError as exc:
            raise CastError(f"Not a member of {spec.enum_type.__name__}: {raw!r}") from exc
    return _PARSERS[spec.field_type](raw)

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID

import pytest

from userbridge.domain.filtering import CastError, FieldSpec, FieldType, cast_value


class Role(Enum):
    ADMIN = "admin"
    MEMBER = "member"


def _spec(field_type: FieldType, enum_type: type[Enum] | None = None) -> FieldSpec:
    return FieldSpec("value", field_type, "value", enum_type=enum_type)


@pytest.mark.parametrize(
    ("field_type", "raw", "expected"),
    [
        (FieldType.INTEGER, "42", 42),
        (FieldType.INTEGER, "-7", -7),
        (FieldType.LONG, str(2**40), 2**40),
        (FieldType.FLOAT, "1.5", 1.5),
        (FieldType.DECIMAL, "19.99", Decimal("19.99")),
        (FieldType.DATE, "1990-05-17", date(1990, 5, 17)),
        (FieldType.STRING, "Ann", "Ann"),
        (
            FieldType.UUID,
            "12345678-1234-5678-1234-567812345678",
            UUID("12345678-1234-5678-1234-567812345678"),
        ),
    ],
)
def test_cast_value_parses_declared_type(field_type: FieldType, raw: str, expected: object) -> None:
    assert cast_value(raw, _spec(field_type)) == expected


@pytest.mark.parametrize(
    ("field_type", "raw"),
    [
        (FieldType.INTEGER, str(2**31)),
        (FieldType.INTEGER, "4.2"),
        (FieldType.LONG, str(2**63)),
        (FieldType.FLOAT, "abc"),
        (FieldType.DECIMAL, "NaN"),
        (FieldType.DECIMAL, "twelve"),
        (FieldType.DATE, "17/05/1990"),
        (FieldType.DATETIME, "yesterday"),
        (FieldType.UUID, "not-a-uuid"),
    ],
)
def test_cast_value_rejects_unparseable_input(field_type: FieldType, raw: str) -> None:
    with pytest.raises(CastError):
        cast_value(raw, _spec(field_type))


def test_boolean_cast_only_accepts_true_case_insensitively() -> None:
    spec = _spec(FieldType.BOOLEAN)

    assert cast_value("TRUE", spec) is True
    assert cast_value("true", spec) is True
    assert cast_value("yes", spec) is False
    assert cast_value("1", spec) is False


def test_datetime_cast_normalises_to_utc() -> None:
    spec = _spec(FieldType.DATETIME)

    naive = cast_value("2024-03-01T12:00:00", spec)
    aware = cast_value("2024-03-01T14:00:00+02:00", spec)

    assert naive == datetime(2024, 3, 1, 12, tzinfo=UTC)
    assert aware == datetime(2024, 3, 1, 12, tzinfo=UTC)
    assert isinstance(aware, datetime)
    assert aware.utcoffset() == timedelta(0)


def test_enum_cast_uses_exact_member_name() -> None:
    spec = _spec(FieldType.ENUM, Role)

    assert cast_value("ADMIN", spec) is Role.ADMIN
    with pytest.raises(CastError):
        cast_value("admin", spec)


def test_enum_field_requires_enum_type() -> None:
    with pytest.raises(ValueError, match="enum_type"):
        FieldSpec("role", FieldType.ENUM, "role")


def test_enum_cast_without_enum_type_is_a_cast_error() -> None:
    spec = _spec(FieldType.ENUM, Role)
    object.__setattr__(spec, "enum_type", None)

    with pytest.raises(CastError, match="no enum type"):
        cast_value("ADMIN", spec)

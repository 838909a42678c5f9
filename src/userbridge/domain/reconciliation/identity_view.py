"""In-process filtering and ordering of one identity-store page."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from userbridge.domain.model import SortDirection, SortField

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from userbridge.domain.model import IdentityRecord


def _parse_flag(value: str) -> bool:
    return value.lower() == "true"


def _contains(actual: str | None, needle: str) -> bool:
    if actual is None:
        return False
    return needle.lower() in actual.lower()


def _identity_test(key: str, value: str) -> Callable[[IdentityRecord], bool] | None:
    if key == "enabled":
        flag = _parse_flag(value)
        return lambda record: record.enabled == flag
    if key == "emailverified":
        flag = _parse_flag(value)
        return lambda record: record.email_verified == flag
    if key == "firstname":
        return lambda record: _contains(record.first_name, value)
    if key == "lastname":
        return lambda record: _contains(record.last_name, value)
    return None


def filter_identities(
    records: Sequence[IdentityRecord], filters: Mapping[str, str | None] | None
) -> list[IdentityRecord]:
    """Apply the identity-side filters (``enabled``, ``emailVerified``, ``firstName``, ``lastName``).

    Keys are case-insensitive; empty values and unrecognised keys are ignored.
    """

    tests: list[Callable[[IdentityRecord], bool]] = []
    for key, value in (filters or {}).items():
        if not value:
            continue
        test = _identity_test(key.lower(), value)
        if test is not None:
            tests.append(test)
    return [record for record in records if all(test(record) for test in tests)]


def _sort_key(field: SortField) -> Callable[[IdentityRecord], Any]:
    if field is SortField.EMAIL:
        return lambda record: record.email.lower() if record.email is not None else None
    if field is SortField.FIRST_NAME:
        return lambda record: record.first_name.lower() if record.first_name is not None else None
    if field is SortField.LAST_NAME:
        return lambda record: record.last_name.lower() if record.last_name is not None else None
    if field is SortField.CREATED:
        return lambda record: record.created_at
    return lambda record: record.username.lower()


def sort_identities(
    records: Sequence[IdentityRecord], sort_field: str | None, sort_direction: str | None
) -> list[IdentityRecord]:
    """Stable sort; records without a value for the sort field go last either way.

    An unknown sort field falls back to username; the direction still applies.
    """

    field = SortField.parse(sort_field) or SortField.USERNAME
    direction = SortDirection.parse(sort_direction)

    key = _sort_key(field)
    present = [record for record in records if key(record) is not None]
    missing = [record for record in records if key(record) is None]
    present.sort(key=key, reverse=direction is SortDirection.DESC)
    return present + missing

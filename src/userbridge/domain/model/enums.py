"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class SortField(StrEnum):
    USERNAME = "username"
    EMAIL = "email"
    FIRST_NAME = "firstname"
    LAST_NAME = "lastname"
    CREATED = "createdtimestamp"

    @classmethod
    def parse(cls, value: str | None) -> SortField | None:
        """Return the matching field (case-insensitive) or ``None`` when unknown."""

        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: str | None) -> SortDirection:
        if value is not None and value.strip().lower() == cls.DESC:
            return cls.DESC
        return cls.ASC


class StepStatus(StrEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

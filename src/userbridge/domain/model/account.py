"""Account entities for the local store, the identity store and the merged view."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Final

from userbridge.domain.model.base import Entity, utcnow

if TYPE_CHECKING:
    from datetime import date, datetime
    from uuid import UUID

# Stored in the local password column; credentials live in the identity store.
EXTERNAL_CREDENTIAL_SENTINEL: Final[str] = "EXTERNALLY_MANAGED"


@dataclass(eq=False, kw_only=True)
class LocalAccount(Entity):
    """Locally owned half of an account, joined to the identity store by ``external_id``."""

    first_name: str
    username: str
    last_name: str | None = None
    email: str | None = None
    hashed_password: str = EXTERNAL_CREDENTIAL_SENTINEL
    date_of_birth: date | None = None
    external_id: str | None = None
    enabled: bool = True

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None

    @classmethod
    def from_identity(cls, record: IdentityRecord) -> LocalAccount:
        """Build the local half for an identity seen for the first time."""

        return cls(
            external_id=record.external_id,
            username=record.username,
            email=record.email,
            first_name=record.first_name or "",
            last_name=record.last_name,
            enabled=record.enabled,
        )

    @property
    def is_linked(self) -> bool:
        return self.external_id is not None

    def apply_identity(self, record: IdentityRecord) -> None:
        """Copy identity-store-authoritative fields onto this record."""

        self.username = record.username
        self.email = record.email
        self.first_name = record.first_name or ""
        self.last_name = record.last_name
        self.enabled = record.enabled
        self.touch()

    def touch(self) -> None:
        self.updated_at = utcnow()


@dataclass(frozen=True, slots=True, kw_only=True)
class IdentityRecord:
    """User as represented by the external identity store."""

    external_id: str
    username: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    enabled: bool = True
    email_verified: bool = False
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class IdentityDraft:
    """Writable identity fields used when creating an account in the identity store."""

    username: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    enabled: bool = True
    email_verified: bool = False

    def as_record(self, external_id: str) -> IdentityRecord:
        return IdentityRecord(
            external_id=external_id,
            username=self.username,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            enabled=self.enabled,
            email_verified=self.email_verified,
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class MergedAccount:
    """Externally visible account, synthesised per request from both stores."""

    external_id: str | None
    username: str
    local_id: UUID | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: date | None = None
    enabled: bool | None = None
    email_verified: bool | None = None
    created_at: datetime | None = None

    @classmethod
    def from_local(cls, account: LocalAccount) -> MergedAccount:
        """View of an account when only the local half is at hand."""

        return cls(
            local_id=account.id,
            external_id=account.external_id,
            username=account.username,
            email=account.email,
            first_name=account.first_name,
            last_name=account.last_name,
            date_of_birth=account.date_of_birth,
            enabled=account.enabled,
            created_at=account.created_at,
        )


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


@dataclass(slots=True, kw_only=True)
class AccountInput:
    """Incoming account fields for create, full update and patch.

    Strings are trimmed and blank strings become ``None`` so that "non-empty" and
    "present" mean the same thing downstream. The password is never trimmed.
    """

    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    password: str | None = None
    date_of_birth: date | None = None

    def __post_init__(self) -> None:
        self.username = _clean(self.username)
        self.first_name = _clean(self.first_name)
        self.last_name = _clean(self.last_name)
        self.email = _clean(self.email)
        if self.password is not None and not self.password:
            self.password = None

    def provided(self) -> dict[str, object]:
        """Return the non-empty fields, excluding the password."""

        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if item.name != "password" and getattr(self, item.name) is not None
        }


@dataclass(frozen=True, slots=True)
class AccountPage:
    """One page of merged accounts with the total reported by the identity store."""

    items: tuple[MergedAccount, ...]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total / self.page_size)

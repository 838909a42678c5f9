"""Translate Keycloak user representations to and from identity records."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from userbridge.domain.model import IdentityRecord

from .schema import CredentialRepresentation, UserRepresentation

if TYPE_CHECKING:
    from userbridge.domain.model import IdentityDraft


def _from_epoch_millis(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=UTC)


def parse_identity(user: UserRepresentation) -> IdentityRecord:
    if user.id is None:
        raise ValueError(f"Keycloak user {user.username!r} has no id")
    return IdentityRecord(
        external_id=user.id,
        username=user.username,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        enabled=user.enabled,
        email_verified=user.email_verified,
        created_at=_from_epoch_millis(user.created_timestamp),
    )


def draft_payload(draft: IdentityDraft, credential: str) -> dict[str, object]:
    """Body for creating a user with a non-temporary password."""

    user = UserRepresentation(
        username=draft.username,
        email=draft.email,
        first_name=draft.first_name,
        last_name=draft.last_name,
        enabled=draft.enabled,
        email_verified=draft.email_verified,
        credentials=[CredentialRepresentation(value=credential)],
    )
    return user.model_dump(by_alias=True, exclude_none=True)


def record_payload(record: IdentityRecord) -> dict[str, object]:
    """Body for replacing a user's writable fields; ``None`` fields are left out."""

    user = UserRepresentation(
        id=record.external_id,
        username=record.username,
        email=record.email,
        first_name=record.first_name,
        last_name=record.last_name,
        enabled=record.enabled,
        email_verified=record.email_verified,
    )
    return user.model_dump(by_alias=True, exclude_none=True)


def credential_payload(secret: str) -> dict[str, object]:
    return CredentialRepresentation(value=secret).model_dump()

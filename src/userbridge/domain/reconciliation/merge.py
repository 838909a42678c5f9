"""Pairing of identity records with their local halves."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from userbridge.domain.errors import InvariantViolationError
from userbridge.domain.model import MergedAccount

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from userbridge.domain.model import IdentityRecord, LocalAccount

log = getLogger(__name__)


def merge_account(identity: IdentityRecord, local: LocalAccount | None) -> MergedAccount:
    """Build the merged view; identity fields win except for local-only data."""

    if local is not None and local.external_id != identity.external_id:
        raise InvariantViolationError(
            f"Local account {local.id} is linked to {local.external_id!r}, "
            f"not {identity.external_id!r}"
        )
    return MergedAccount(
        local_id=local.id if local is not None else None,
        external_id=identity.external_id,
        username=identity.username,
        email=identity.email,
        first_name=identity.first_name,
        last_name=identity.last_name,
        date_of_birth=local.date_of_birth if local is not None else None,
        enabled=identity.enabled,
        email_verified=identity.email_verified,
        created_at=identity.created_at
        or (local.created_at if local is not None else None),
    )


def index_by_external_id(accounts: Iterable[LocalAccount]) -> dict[str, LocalAccount]:
    indexed: dict[str, LocalAccount] = {}
    for account in accounts:
        if account.external_id is None:
            continue
        if account.external_id in indexed:
            raise InvariantViolationError(
                f"External id {account.external_id!r} is linked to more than one local account"
            )
        indexed[account.external_id] = account
    return indexed


def merge_page(
    identities: Sequence[IdentityRecord], locals_by_external_id: dict[str, LocalAccount]
) -> list[MergedAccount]:
    """Merge in the order of ``identities``."""

    merged: list[MergedAccount] = []
    for identity in identities:
        local = locals_by_external_id.get(identity.external_id)
        if local is None:
            log.warning(
                "No local account for identity %s (%s) after provisioning",
                identity.external_id,
                identity.username,
            )
        merged.append(merge_account(identity, local))
    return merged

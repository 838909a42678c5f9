"""Just-in-time creation of local records for identities seen for the first time."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from userbridge.domain.errors import ConflictError
from userbridge.domain.model import LocalAccount

if TYPE_CHECKING:
    from collections.abc import Sequence

    from userbridge.domain.model import IdentityRecord
    from userbridge.domain.ports import DirectoryUnitOfWorkFactory, LocalAccountRepository

log = getLogger(__name__)

PROVISIONING_ATTEMPTS = 2
# A clash on these columns comes from another local row, not a concurrent search.
LOCAL_ONLY_COLUMNS = frozenset({"username", "email"})


def _distinct(identities: Sequence[IdentityRecord]) -> list[IdentityRecord]:
    seen: set[str] = set()
    distinct: list[IdentityRecord] = []
    for identity in identities:
        if identity.external_id in seen:
            continue
        seen.add(identity.external_id)
        distinct.append(identity)
    return distinct


def _missing_accounts(
    accounts: LocalAccountRepository, identities: Sequence[IdentityRecord]
) -> list[LocalAccount]:
    existing = accounts.find_all_by_external_id_in(
        [identity.external_id for identity in identities]
    )
    known = {account.external_id for account in existing}
    return [
        LocalAccount.from_identity(identity)
        for identity in identities
        if identity.external_id not in known
    ]


def _provision_once(
    unit_of_work_factory: DirectoryUnitOfWorkFactory, identities: list[IdentityRecord]
) -> int:
    with unit_of_work_factory() as uow:
        accounts = uow.repositories.accounts
        missing = _missing_accounts(accounts, identities)
        if not missing:
            return 0
        accounts.save_all(missing)
        uow.commit()
    return len(missing)


def _provision_individually(
    unit_of_work_factory: DirectoryUnitOfWorkFactory, identities: list[IdentityRecord]
) -> int:
    created = 0
    for identity in identities:
        with unit_of_work_factory() as uow:
            accounts = uow.repositories.accounts
            missing = _missing_accounts(accounts, [identity])
            if not missing:
                continue
            accounts.save_all(missing)
            try:
                uow.commit()
            except ConflictError as exc:
                if exc.column in LOCAL_ONLY_COLUMNS:
                    log.warning(
                        "Cannot provision identity %s (%s): local %s already in use",
                        identity.username,
                        identity.external_id,
                        exc.column,
                    )
                # otherwise another search linked this identity first
                continue
        created += 1
    return created


def provision_missing(
    unit_of_work_factory: DirectoryUnitOfWorkFactory, identities: Sequence[IdentityRecord]
) -> int:
    """Create local records for identities that have none and return how many were created.

    A concurrent search may provision the same identities first; the losing
    transaction is rolled back and the missing set is computed once more. When
    a username or email is already held by another local row the batch is
    provisioned one identity at a time and the clashing identities stay unlinked.
    """

    distinct = _distinct(identities)
    if not distinct:
        return 0

    for attempt in range(1, PROVISIONING_ATTEMPTS + 1):
        try:
            created = _provision_once(unit_of_work_factory, distinct)
        except ConflictError as exc:
            if exc.column in LOCAL_ONLY_COLUMNS:
                created = _provision_individually(unit_of_work_factory, distinct)
            elif attempt == PROVISIONING_ATTEMPTS:
                raise
            else:
                log.info(
                    "Concurrent provisioning detected, re-evaluating %d identities", len(distinct)
                )
                continue
        if created:
            log.info("Provisioned %d local accounts", created)
        return created
    return 0

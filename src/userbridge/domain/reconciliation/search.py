"""Account queries spanning the identity store and the local store."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from userbridge.domain.errors import InvariantViolationError, NotFoundError
from userbridge.domain.filtering import compile_filters
from userbridge.domain.model import AccountPage, LocalAccount, MergedAccount

from .identity_view import filter_identities, sort_identities
from .merge import index_by_external_id, merge_account, merge_page
from .provisioning import provision_missing

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from userbridge.domain.ports import DirectoryUnitOfWorkFactory, IdentityDirectory

log = getLogger(__name__)

SEARCH_KEY = "search"


def _offset(page: int, page_size: int) -> int:
    if page < 0:
        raise ValueError(f"page must not be negative, got {page}")
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    return page * page_size


def search_accounts(  # noqa: PLR0913
    *,
    identity: IdentityDirectory,
    unit_of_work_factory: DirectoryUnitOfWorkFactory,
    filters: Mapping[str, str | None] | None = None,
    page: int = 0,
    page_size: int = 10,
    sort_field: str | None = None,
    sort_direction: str | None = None,
) -> AccountPage:
    """Return one page of merged accounts.

    The identity store decides the page boundary. Filtering and sorting are then
    applied to that page only, unknown identities get a local record, and local
    data is merged in. ``total`` is the identity store's unfiltered user count,
    so it ignores every filter applied here.
    """

    offset = _offset(page, page_size)
    filters = filters or {}

    term = (filters.get(SEARCH_KEY) or "").strip()
    if term:
        records = identity.search_users(term, offset, page_size)
    else:
        records = identity.list_users(offset, page_size)

    records = sort_identities(filter_identities(records, filters), sort_field, sort_direction)

    provision_missing(unit_of_work_factory, records)

    with unit_of_work_factory() as uow:
        local_accounts = uow.repositories.accounts.find_all_by_external_id_in(
            [record.external_id for record in records]
        )
    merged = merge_page(records, index_by_external_id(local_accounts))

    local_predicate = compile_filters(MergedAccount, filters)
    if not local_predicate.is_identity:
        merged = [account for account in merged if local_predicate(account)]

    total = identity.count_users()
    log.debug(
        "Search page=%d size=%d returned %d of %d identities", page, page_size, len(merged), total
    )
    return AccountPage(items=tuple(merged), page=page, page_size=page_size, total=total)


def get_account(
    *,
    identity: IdentityDirectory,
    unit_of_work_factory: DirectoryUnitOfWorkFactory,
    local_id: UUID,
) -> MergedAccount:
    """Return one account by local id, merged with its identity record when linked."""

    with unit_of_work_factory() as uow:
        local = uow.repositories.accounts.find_by_id(local_id)
    if local is None:
        raise NotFoundError(f"Account {local_id} not found")
    if local.external_id is None:
        return MergedAccount.from_local(local)
    try:
        record = identity.get_user(local.external_id)
    except NotFoundError as exc:
        raise InvariantViolationError(
            f"Account {local_id} is linked to missing identity {local.external_id!r}"
        ) from exc
    return merge_account(record, local)


def find_local_accounts(
    *,
    unit_of_work_factory: DirectoryUnitOfWorkFactory,
    filters: Mapping[str, str | None] | None = None,
    page: int = 0,
    page_size: int = 10,
) -> AccountPage:
    """Query the local store with compiled filters, ordered by username."""

    offset = _offset(page, page_size)
    predicate = compile_filters(LocalAccount, filters)
    with unit_of_work_factory() as uow:
        accounts = uow.repositories.accounts
        items = accounts.query(predicate, offset=offset, limit=page_size)
        total = accounts.count(predicate)
    return AccountPage(
        items=tuple(MergedAccount.from_local(account) for account in items),
        page=page,
        page_size=page_size,
        total=total,
    )

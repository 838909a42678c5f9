"""Application entry points wiring the directory to its configured adapters."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from userbridge.adapters.keycloak import KeycloakIdentityDirectory
from userbridge.adapters.sqlalchemy.migrations import upgrade_head
from userbridge.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyDirectoryUnitOfWork,
    is_started,
    startup,
)
from userbridge.config import get_directory_config, get_keycloak_config
from userbridge.domain import reconciliation
from userbridge.domain.lifecycle import AccountLifecycle, log_saga

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from userbridge.config import DirectoryConfig
    from userbridge.domain.lifecycle import SagaSink
    from userbridge.domain.model import AccountInput, AccountPage, MergedAccount
    from userbridge.domain.ports import DirectoryUnitOfWorkFactory, IdentityDirectory


log = getLogger(__name__)


def _identity(identity: IdentityDirectory | None) -> IdentityDirectory:
    return identity or KeycloakIdentityDirectory(config=get_keycloak_config())


def _unit_of_work_factory(
    unit_of_work_factory: DirectoryUnitOfWorkFactory | None,
) -> DirectoryUnitOfWorkFactory:
    if unit_of_work_factory is not None:
        return unit_of_work_factory
    if not is_started():
        startup()
    return SqlAlchemyDirectoryUnitOfWork


def _lifecycle(
    identity: IdentityDirectory | None,
    unit_of_work_factory: DirectoryUnitOfWorkFactory | None,
    saga_sink: SagaSink | None,
) -> AccountLifecycle:
    return AccountLifecycle(
        _identity(identity),
        _unit_of_work_factory(unit_of_work_factory),
        saga_sink or log_saga,
    )


def migrate_database(*, database_uri: str | None = None) -> None:
    """Upgrade the local store schema to the latest revision."""

    log.info("Upgrading database schema")
    upgrade_head(database_uri=database_uri)


def search_accounts(  # noqa: PLR0913
    *,
    filters: Mapping[str, str | None] | None = None,
    page: int = 0,
    page_size: int | None = None,
    sort_field: str | None = None,
    sort_direction: str | None = None,
    identity: IdentityDirectory | None = None,
    unit_of_work_factory: DirectoryUnitOfWorkFactory | None = None,
    directory_config: DirectoryConfig | None = None,
) -> AccountPage:
    """Search merged accounts; the page size is capped by the directory config."""

    config = directory_config or get_directory_config()
    result = reconciliation.search_accounts(
        identity=_identity(identity),
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        filters=filters,
        page=page,
        page_size=config.clamp_page_size(page_size),
        sort_field=sort_field or config.default_sort_field,
        sort_direction=sort_direction or config.default_sort_direction,
    )
    log.info(
        "Search returned %d accounts (page %d of %d, total=%d)",
        len(result.items),
        result.page,
        result.total_pages,
        result.total,
    )
    return result


def get_account(
    local_id: UUID,
    *,
    identity: IdentityDirectory | None = None,
    unit_of_work_factory: DirectoryUnitOfWorkFactory | None = None,
) -> MergedAccount:
    return reconciliation.get_account(
        identity=_identity(identity),
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        local_id=local_id,
    )


def find_local_accounts(
    *,
    filters: Mapping[str, str | None] | None = None,
    page: int = 0,
    page_size: int | None = None,
    unit_of_work_factory: DirectoryUnitOfWorkFactory | None = None,
    directory_config: DirectoryConfig | None = None,
) -> AccountPage:
    """Query the local store only, with compiled filters."""

    config = directory_config or get_directory_config()
    return reconciliation.find_local_accounts(
        unit_of_work_factory=_unit_of_work_factory(unit_of_work_factory),
        filters=filters,
        page=page,
        page_size=config.clamp_page_size(page_size),
    )


def create_account(
    data: AccountInput,
    *,
    identity: IdentityDirectory | None = None,
    unit_of_work_factory: DirectoryUnitOfWorkFactory | None = None,
    saga_sink: SagaSink | None = None,
) -> MergedAccount:
    return _lifecycle(identity, unit_of_work_factory, saga_sink).create(data)


def update_account(
    local_id: UUID,
    data: AccountInput,
    *,
    identity: IdentityDirectory | None = None,
    unit_of_work_factory: DirectoryUnitOfWorkFactory | None = None,
    saga_sink: SagaSink | None = None,
) -> MergedAccount:
    return _lifecycle(identity, unit_of_work_factory, saga_sink).update(local_id, data)


def patch_account(
    local_id: UUID,
    data: AccountInput,
    *,
    identity: IdentityDirectory | None = None,
    unit_of_work_factory: DirectoryUnitOfWorkFactory | None = None,
    saga_sink: SagaSink | None = None,
) -> MergedAccount:
    return _lifecycle(identity, unit_of_work_factory, saga_sink).patch(local_id, data)


def delete_account(
    local_id: UUID,
    *,
    identity: IdentityDirectory | None = None,
    unit_of_work_factory: DirectoryUnitOfWorkFactory | None = None,
    saga_sink: SagaSink | None = None,
) -> MergedAccount:
    return _lifecycle(identity, unit_of_work_factory, saga_sink).delete(local_id)


def sync_account(
    local_id: UUID,
    *,
    identity: IdentityDirectory | None = None,
    unit_of_work_factory: DirectoryUnitOfWorkFactory | None = None,
    saga_sink: SagaSink | None = None,
) -> MergedAccount:
    return _lifecycle(identity, unit_of_work_factory, saga_sink).sync_to_local(local_id)


def set_account_enabled(
    local_id: UUID,
    enabled: bool,  # noqa: FBT001
    *,
    identity: IdentityDirectory | None = None,
    unit_of_work_factory: DirectoryUnitOfWorkFactory | None = None,
    saga_sink: SagaSink | None = None,
) -> MergedAccount:
    return _lifecycle(identity, unit_of_work_factory, saga_sink).set_enabled(local_id, enabled)


def reset_account_credential(
    local_id: UUID,
    secret: str,
    *,
    identity: IdentityDirectory | None = None,
    unit_of_work_factory: DirectoryUnitOfWorkFactory | None = None,
    saga_sink: SagaSink | None = None,
) -> None:
    _lifecycle(identity, unit_of_work_factory, saga_sink).reset_credential(local_id, secret)

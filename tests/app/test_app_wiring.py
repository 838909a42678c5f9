from __future__ import annotations

import pytest

from userbridge import app
from userbridge.adapters.sqlalchemy.unit_of_work import SqlAlchemyDirectoryUnitOfWork
from userbridge.config import DirectoryConfig
from userbridge.domain.model import AccountInput
from tests.helpers.accounts import (
    FakeIdentityDirectory,
    InMemoryAccountStore,
    SagaCollector,
    make_identity,
)


@pytest.fixture
def identity() -> FakeIdentityDirectory:
    return FakeIdentityDirectory(
        [make_identity("carol"), make_identity("alice"), make_identity("bob")]
    )


@pytest.fixture
def store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


def test_search_caps_page_size_and_applies_default_sort(
    identity: FakeIdentityDirectory, store: InMemoryAccountStore
) -> None:
    result = app.search_accounts(
        page_size=500,
        identity=identity,
        unit_of_work_factory=store.unit_of_work,
        directory_config=DirectoryConfig(max_page_size=2),
    )

    assert result.page_size == 2
    assert identity.calls[0] == ("list_users", (0, 2))
    # the identity store's page is sorted by username ascending
    assert [account.username for account in result.items] == ["alice", "carol"]
    assert result.total == 3
    assert result.total_pages == 2


def test_search_uses_configured_default_page_size(
    identity: FakeIdentityDirectory, store: InMemoryAccountStore
) -> None:
    result = app.search_accounts(
        sort_direction="desc",
        identity=identity,
        unit_of_work_factory=store.unit_of_work,
        directory_config=DirectoryConfig(default_page_size=5),
    )

    assert result.page_size == 5
    assert [account.username for account in result.items] == ["carol", "bob", "alice"]
    assert len(store.accounts) == 3


def test_search_rejects_non_positive_page_size(
    identity: FakeIdentityDirectory, store: InMemoryAccountStore
) -> None:
    with pytest.raises(ValueError, match="page_size"):
        app.search_accounts(
            page_size=0,
            identity=identity,
            unit_of_work_factory=store.unit_of_work,
            directory_config=DirectoryConfig(),
        )


def test_find_local_accounts_caps_page_size(store: InMemoryAccountStore) -> None:
    result = app.find_local_accounts(
        page_size=1000,
        unit_of_work_factory=store.unit_of_work,
        directory_config=DirectoryConfig(max_page_size=50),
    )

    assert result.page_size == 50
    assert result.items == ()


def test_lifecycle_entry_points_share_injected_ports(
    identity: FakeIdentityDirectory, store: InMemoryAccountStore
) -> None:
    sagas = SagaCollector()

    created = app.create_account(
        AccountInput(username="dave", first_name="Dave", email="dave@example.com", password="pw"),
        identity=identity,
        unit_of_work_factory=store.unit_of_work,
        saga_sink=sagas,
    )
    assert created.local_id is not None

    disabled = app.set_account_enabled(
        created.local_id,
        False,  # noqa: FBT003
        identity=identity,
        unit_of_work_factory=store.unit_of_work,
        saga_sink=sagas,
    )
    assert disabled.enabled is False

    deleted = app.delete_account(
        created.local_id,
        identity=identity,
        unit_of_work_factory=store.unit_of_work,
        saga_sink=sagas,
    )
    assert deleted.username == "dave"
    assert store.get(created.local_id) is None
    assert [record.operation for record in sagas.records] == ["create", "set_enabled", "delete"]


def test_default_unit_of_work_starts_adapter_once(monkeypatch: pytest.MonkeyPatch) -> None:
    started: list[bool] = []
    monkeypatch.setattr(app, "is_started", lambda: bool(started))
    monkeypatch.setattr(app, "startup", lambda: started.append(True))

    first = app._unit_of_work_factory(None)  # noqa: SLF001
    second = app._unit_of_work_factory(None)  # noqa: SLF001

    assert first is SqlAlchemyDirectoryUnitOfWork
    assert second is SqlAlchemyDirectoryUnitOfWork
    assert started == [True]


def test_migrate_database_upgrades_given_uri(monkeypatch: pytest.MonkeyPatch) -> None:
    received: list[str | None] = []

    def fake_upgrade_head(*, database_uri: str | None = None) -> None:
        received.append(database_uri)

    monkeypatch.setattr(app, "upgrade_head", fake_upgrade_head)

    app.migrate_database(database_uri="sqlite:///x.db")

    assert received == ["sqlite:///x.db"]

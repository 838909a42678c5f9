from __future__ import annotations

from datetime import date
from uuid import uuid4

import pytest

from userbridge.domain.errors import InvariantViolationError, NotFoundError
from userbridge.domain.reconciliation import find_local_accounts, get_account, search_accounts
from tests.helpers.accounts import (
    FakeIdentityDirectory,
    InMemoryAccountStore,
    make_identity,
    make_local,
)


def _directory(*usernames: str) -> FakeIdentityDirectory:
    return FakeIdentityDirectory(make_identity(name) for name in usernames)


def test_search_provisions_and_merges_one_identity_page() -> None:
    identity = _directory("carl", "ann", "bob")
    store = InMemoryAccountStore([make_local("ann", external_id="kc-ann")])

    page = search_accounts(
        identity=identity, unit_of_work_factory=store.unit_of_work, page=0, page_size=10
    )

    assert [account.username for account in page.items] == ["ann", "bob", "carl"]
    assert all(account.local_id is not None for account in page.items)
    assert len(store.accounts) == 3
    assert page.total == 3
    assert page.total_pages == 1
    assert identity.count_calls("list_users") == 1
    # one lookup while provisioning, one for the merge
    assert store.batch_lookups == 2


def test_search_provisions_only_the_missing_identities_in_one_batch() -> None:
    usernames = [f"user{index:02d}" for index in range(10)]
    identity = _directory(*usernames)
    store = InMemoryAccountStore(
        [make_local(name, external_id=f"kc-{name}") for name in usernames[:7]]
    )

    page = search_accounts(
        identity=identity, unit_of_work_factory=store.unit_of_work, page=0, page_size=10
    )

    assert len(page.items) == 10
    assert all(account.local_id is not None for account in page.items)
    assert store.save_all_calls == 1
    assert len(store.accounts) == 10
    new_rows = {a.username for a in store.accounts.values()} - set(usernames[:7])
    assert new_rows == set(usernames[7:])
    assert store.batch_lookups == 2


def test_search_uses_identity_store_page_boundary() -> None:
    identity = _directory("a1", "a2", "a3", "a4", "a5")
    store = InMemoryAccountStore()

    page = search_accounts(
        identity=identity, unit_of_work_factory=store.unit_of_work, page=1, page_size=2
    )

    assert identity.calls[0] == ("list_users", (2, 2))
    assert [account.username for account in page.items] == ["a3", "a4"]
    assert page.total == 5
    assert page.total_pages == 3


def test_search_term_goes_to_identity_search() -> None:
    identity = _directory("ann", "bob")
    store = InMemoryAccountStore()

    page = search_accounts(
        identity=identity,
        unit_of_work_factory=store.unit_of_work,
        filters={"search": "  bo "},
    )

    assert identity.calls[0] == ("search_users", ("bo", 0, 10))
    assert [account.username for account in page.items] == ["bob"]


def test_blank_search_term_lists_users() -> None:
    identity = _directory("ann")
    store = InMemoryAccountStore()

    search_accounts(
        identity=identity, unit_of_work_factory=store.unit_of_work, filters={"search": "  "}
    )

    assert identity.count_calls("list_users") == 1
    assert identity.count_calls("search_users") == 0


def test_search_filters_and_sorts_within_the_page() -> None:
    identity = FakeIdentityDirectory(
        [
            make_identity("ann", first_name="Ann", enabled=False),
            make_identity("bob", first_name="Bob"),
            make_identity("cat", first_name="Annika"),
        ]
    )
    store = InMemoryAccountStore()

    page = search_accounts(
        identity=identity,
        unit_of_work_factory=store.unit_of_work,
        filters={"firstName": "ann"},
        sort_field="username",
        sort_direction="desc",
    )

    assert [account.username for account in page.items] == ["cat", "ann"]
    # filtered identities are never provisioned
    assert {account.username for account in store.accounts.values()} == {"ann", "cat"}
    assert page.total == 3


def test_search_applies_local_only_filters_after_merge() -> None:
    identity = _directory("ann", "bob")
    store = InMemoryAccountStore(
        [
            make_local("ann", external_id="kc-ann", date_of_birth=date(1985, 1, 1)),
            make_local("bob", external_id="kc-bob", date_of_birth=date(1999, 1, 1)),
        ]
    )

    page = search_accounts(
        identity=identity,
        unit_of_work_factory=store.unit_of_work,
        filters={"dateOfBirth_gte": "1990-01-01", "bogus_eq": "x"},
    )

    assert [account.username for account in page.items] == ["bob"]
    # total ignores in-process filtering
    assert page.total == 2


def test_search_rejects_invalid_paging() -> None:
    store = InMemoryAccountStore()

    with pytest.raises(ValueError, match="page"):
        search_accounts(identity=_directory(), unit_of_work_factory=store.unit_of_work, page=-1)
    with pytest.raises(ValueError, match="page_size"):
        search_accounts(
            identity=_directory(), unit_of_work_factory=store.unit_of_work, page_size=0
        )


def test_repeated_search_does_not_provision_twice() -> None:
    identity = _directory("ann", "bob")
    store = InMemoryAccountStore()

    first = search_accounts(identity=identity, unit_of_work_factory=store.unit_of_work)
    second = search_accounts(identity=identity, unit_of_work_factory=store.unit_of_work)

    assert len(store.accounts) == 2
    assert [a.local_id for a in first.items] == [a.local_id for a in second.items]
    assert store.save_all_calls == 1
    assert first == second


def test_get_account_merges_linked_identity() -> None:
    local = make_local("ann", external_id="kc-ann", date_of_birth=date(1990, 1, 1))
    store = InMemoryAccountStore([local])
    identity = FakeIdentityDirectory([make_identity("ann", first_name="Annie")])

    account = get_account(
        identity=identity, unit_of_work_factory=store.unit_of_work, local_id=local.id
    )

    assert account.first_name == "Annie"
    assert account.date_of_birth == date(1990, 1, 1)
    assert account.local_id == local.id


def test_get_account_for_unlinked_local_record() -> None:
    local = make_local("ann")
    store = InMemoryAccountStore([local])
    identity = FakeIdentityDirectory()

    account = get_account(
        identity=identity, unit_of_work_factory=store.unit_of_work, local_id=local.id
    )

    assert account.external_id is None
    assert identity.calls == []


def test_get_account_missing_local_record() -> None:
    store = InMemoryAccountStore()

    with pytest.raises(NotFoundError):
        get_account(
            identity=FakeIdentityDirectory(),
            unit_of_work_factory=store.unit_of_work,
            local_id=uuid4(),
        )


def test_get_account_with_vanished_identity_is_an_invariant_violation() -> None:
    local = make_local("ann", external_id="kc-gone")
    store = InMemoryAccountStore([local])

    with pytest.raises(InvariantViolationError):
        get_account(
            identity=FakeIdentityDirectory(),
            unit_of_work_factory=store.unit_of_work,
            local_id=local.id,
        )


def test_find_local_accounts_pages_in_username_order() -> None:
    store = InMemoryAccountStore(
        [
            make_local("carl", date_of_birth=date(1980, 1, 1)),
            make_local("ann", date_of_birth=date(1992, 1, 1)),
            make_local("bob", date_of_birth=date(1995, 1, 1)),
        ]
    )

    page = find_local_accounts(
        unit_of_work_factory=store.unit_of_work,
        filters={"dateOfBirth_gte": "1990-01-01"},
        page=0,
        page_size=1,
    )

    assert [account.username for account in page.items] == ["ann"]
    assert page.total == 2
    assert page.total_pages == 2

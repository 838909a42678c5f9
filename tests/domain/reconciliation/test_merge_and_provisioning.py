from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from userbridge.domain.errors import ConflictError, InvariantViolationError
from userbridge.domain.model import EXTERNAL_CREDENTIAL_SENTINEL, IdentityRecord
from userbridge.domain.reconciliation import (
    index_by_external_id,
    merge_account,
    merge_page,
    provision_missing,
    search_accounts,
)
from tests.helpers.accounts import (
    FakeIdentityDirectory,
    InMemoryAccountStore,
    make_identity,
    make_local,
)


def test_merge_account_takes_identity_fields_and_local_only_data() -> None:
    identity = make_identity("ann", external_id="kc-1", first_name="Ann", email="ann@id.example")
    local = make_local(
        "old-ann",
        external_id="kc-1",
        first_name="Stale",
        email="ann@local.example",
        date_of_birth=date(1990, 5, 17),
    )

    merged = merge_account(identity, local)

    assert merged.local_id == local.id
    assert merged.external_id == "kc-1"
    assert merged.username == "ann"
    assert merged.first_name == "Ann"
    assert merged.email == "ann@id.example"
    assert merged.date_of_birth == date(1990, 5, 17)
    assert merged.created_at == identity.created_at


def test_merge_account_falls_back_to_local_creation_time() -> None:
    identity = IdentityRecord(external_id="kc-1", username="ann", created_at=None)
    local = make_local("ann", external_id="kc-1")
    local.created_at = datetime(2020, 1, 1, tzinfo=UTC)

    assert merge_account(identity, local).created_at == datetime(2020, 1, 1, tzinfo=UTC)


def test_merge_account_refuses_mismatched_external_ids() -> None:
    with pytest.raises(InvariantViolationError):
        merge_account(
            make_identity("ann", external_id="kc-1"), make_local("ann", external_id="kc-2")
        )


def test_merge_account_without_local_half() -> None:
    merged = merge_account(make_identity("ann"), None)

    assert merged.local_id is None
    assert merged.date_of_birth is None


def test_index_by_external_id_rejects_duplicates() -> None:
    accounts = [
        make_local("ann", external_id="kc-1"),
        make_local("bob", external_id="kc-1"),
    ]

    with pytest.raises(InvariantViolationError):
        index_by_external_id(accounts)


def test_index_by_external_id_skips_unlinked_accounts() -> None:
    linked = make_local("ann", external_id="kc-1")

    assert index_by_external_id([linked, make_local("bob")]) == {"kc-1": linked}


def test_merge_page_preserves_identity_order() -> None:
    identities = [make_identity("zed"), make_identity("amy")]
    locals_by_id = {
        identity.external_id: make_local(identity.username, external_id=identity.external_id)
        for identity in identities
    }

    merged = merge_page(identities, locals_by_id)

    assert [account.username for account in merged] == ["zed", "amy"]
    assert all(account.local_id is not None for account in merged)


def test_merge_page_logs_missing_local_record(caplog: pytest.LogCaptureFixture) -> None:
    merged = merge_page([make_identity("ann")], {})

    assert merged[0].local_id is None
    assert "No local account for identity kc-ann" in caplog.text


def test_provision_missing_creates_records_for_new_identities_only() -> None:
    known = make_local("ann", external_id="kc-ann")
    store = InMemoryAccountStore([known])
    identities = [
        make_identity("ann"),
        make_identity("bob", first_name=None, enabled=False),
        make_identity("bob"),
    ]

    created = provision_missing(store.unit_of_work, identities)

    assert created == 1
    assert store.batch_lookups == 1
    assert store.save_all_calls == 1
    assert store.commits == 1
    (bob,) = [a for a in store.accounts.values() if a.external_id == "kc-bob"]
    assert bob.username == "bob"
    assert bob.first_name == ""
    assert bob.enabled is False
    assert bob.hashed_password == EXTERNAL_CREDENTIAL_SENTINEL


def test_provision_missing_is_a_noop_when_everything_is_known() -> None:
    store = InMemoryAccountStore([make_local("ann", external_id="kc-ann")])

    assert provision_missing(store.unit_of_work, [make_identity("ann")]) == 0
    assert store.commits == 0
    assert store.save_all_calls == 0


def test_provision_missing_without_identities_touches_nothing() -> None:
    store = InMemoryAccountStore()

    assert provision_missing(store.unit_of_work, []) == 0
    assert store.batch_lookups == 0


def test_provision_missing_retries_once_after_concurrent_insert() -> None:
    store = InMemoryAccountStore()
    store.conflicts_to_raise = 1

    created = provision_missing(store.unit_of_work, [make_identity("ann")])

    assert created == 1
    assert store.batch_lookups == 2
    assert len(store.accounts) == 1


def test_provision_missing_gives_up_after_second_conflict() -> None:
    store = InMemoryAccountStore()
    store.conflicts_to_raise = 2

    with pytest.raises(ConflictError):
        provision_missing(store.unit_of_work, [make_identity("ann")])

    assert store.accounts == {}


def test_provision_missing_skips_identity_whose_username_is_held_locally(
    caplog: pytest.LogCaptureFixture,
) -> None:
    # a local row renamed to "bob" while linked to another identity
    renamed = make_local("bob", external_id="kc-old", email="old@example.com")
    store = InMemoryAccountStore([renamed])

    created = provision_missing(store.unit_of_work, [make_identity("bob"), make_identity("cat")])

    assert created == 1
    assert {a.external_id for a in store.accounts.values()} == {"kc-old", "kc-cat"}
    assert "Cannot provision identity bob (kc-bob): local username already in use" in caplog.text


def test_search_page_keeps_identity_whose_local_half_cannot_be_provisioned() -> None:
    identity = FakeIdentityDirectory([make_identity("bob"), make_identity("cat")])
    store = InMemoryAccountStore([make_local("cat", external_id="kc-old", email="x@example.com")])

    page = search_accounts(identity=identity, unit_of_work_factory=store.unit_of_work)

    assert [(a.username, a.local_id is None) for a in page.items] == [
        ("bob", False),
        ("cat", True),
    ]

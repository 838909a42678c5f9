"""Create, update and delete accounts across the identity store and the local store.

Each operation records its steps on a :class:`SagaRecord`. The record is handed to
the saga sink when the operation ends and is attached as ``saga`` to any
``DirectoryError`` that escapes.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

from userbridge.domain.errors import (
    ConflictError,
    DirectoryError,
    InvariantViolationError,
    NotFoundError,
)
from userbridge.domain.model import (
    EXTERNAL_CREDENTIAL_SENTINEL,
    IdentityDraft,
    LocalAccount,
    MergedAccount,
    StepStatus,
)
from userbridge.domain.reconciliation import merge_account

from .saga import SagaRecord, log_saga

if TYPE_CHECKING:
    from collections.abc import Iterator
    from uuid import UUID

    from userbridge.domain.model import AccountInput, IdentityRecord
    from userbridge.domain.ports import (
        DirectoryUnitOfWorkFactory,
        IdentityDirectory,
        LocalAccountRepository,
    )

    from .saga import SagaSink

log = getLogger(__name__)

IDENTITY_FIELDS = ("first_name", "last_name", "email")


def _require_account(accounts: LocalAccountRepository, local_id: UUID) -> LocalAccount:
    account = accounts.find_by_id(local_id)
    if account is None:
        raise NotFoundError(f"Account {local_id} not found")
    return account


def _view(account: LocalAccount, record: IdentityRecord | None) -> MergedAccount:
    if record is None:
        return MergedAccount.from_local(account)
    return merge_account(record, account)


class AccountLifecycle:
    """Coordinates account writes that span both stores."""

    def __init__(
        self,
        identity: IdentityDirectory,
        unit_of_work_factory: DirectoryUnitOfWorkFactory,
        saga_sink: SagaSink = log_saga,
    ) -> None:
        self.identity = identity
        self.unit_of_work_factory = unit_of_work_factory
        self.saga_sink = saga_sink

    @contextmanager
    def _saga(
        self, operation: str, *, local_id: UUID | None = None, username: str | None = None
    ) -> Iterator[SagaRecord]:
        saga = SagaRecord(operation, local_id=local_id, username=username)
        try:
            yield saga
        except DirectoryError as exc:
            exc.saga = saga
            raise
        finally:
            self.saga_sink(saga)

    def create(self, data: AccountInput) -> MergedAccount:
        """Create the identity (or link an existing one by email) and the local record."""

        if not data.username or not data.first_name or not data.password:
            raise ValueError("username, first_name and password are required")
        username = data.username
        password = data.password

        with self._saga("create", username=username) as saga, self.unit_of_work_factory() as uow:
            accounts = uow.repositories.accounts
            self._check_unique(accounts, username=username, email=data.email, saga=saga)

            record = self._resolve_identity(
                accounts, data, saga, username=username, password=password
            )
            saga.external_id = record.external_id

            account = LocalAccount(
                username=username,
                first_name=data.first_name,
                last_name=data.last_name,
                email=data.email,
                date_of_birth=data.date_of_birth,
                external_id=record.external_id,
                hashed_password=EXTERNAL_CREDENTIAL_SENTINEL,
                enabled=True,
            )
            accounts.save(account)
            try:
                uow.commit()
            except ConflictError as exc:
                saga.failed("insert_local", str(exc))
                if saga.status_of("create_identity") is StepStatus.SUCCEEDED:
                    log.error(
                        "Orphaned identity %s for username %s: local insert failed",
                        record.external_id,
                        username,
                    )
                raise
            saga.local_id = account.id
            saga.succeeded("insert_local")
            log.info("Created account %s for %s (%s)", account.id, username, record.external_id)
            return merge_account(record, account)

    def _check_unique(
        self,
        accounts: LocalAccountRepository,
        *,
        username: str,
        email: str | None,
        saga: SagaRecord,
        current: LocalAccount | None = None,
    ) -> None:
        by_username = accounts.find_by_username(username)
        if by_username is not None and by_username is not current:
            saga.failed("check_local", "username taken")
            raise ConflictError(f"Username {username!r} is already taken")
        if email is not None:
            by_email = accounts.find_by_email(email)
            if by_email is not None and by_email is not current:
                saga.failed("check_local", "email taken")
                raise ConflictError(f"Email {email!r} is already registered")
        saga.succeeded("check_local")

    def _resolve_identity(
        self,
        accounts: LocalAccountRepository,
        data: AccountInput,
        saga: SagaRecord,
        *,
        username: str,
        password: str,
    ) -> IdentityRecord:
        existing = self.identity.find_by_email(data.email, exact=True) if data.email else []
        if existing:
            record = existing[0]
            if accounts.find_all_by_external_id_in([record.external_id]):
                saga.failed("link_identity", "identity already linked")
                raise ConflictError(
                    f"Identity {record.external_id!r} is already linked to a local account"
                )
            log.info("Identity with email %s exists, linking %s", data.email, record.external_id)
            saga.succeeded("link_identity", record.external_id)
            return record

        draft = IdentityDraft(
            username=username,
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
            enabled=True,
            email_verified=False,
        )
        try:
            external_id = self.identity.create_user(draft, password)
        except DirectoryError as exc:
            saga.failed("create_identity", str(exc))
            raise
        saga.succeeded("create_identity", external_id)
        return draft.as_record(external_id)

    def update(self, local_id: UUID, data: AccountInput) -> MergedAccount:
        """Replace the account's editable fields, then push name and email to the identity."""

        if not data.username or not data.first_name:
            raise ValueError("username and first_name are required")
        changes = {name: getattr(data, name) for name in IDENTITY_FIELDS}
        return self._write(
            "update",
            local_id,
            data,
            local_changes={
                **changes,
                "username": data.username,
                "date_of_birth": data.date_of_birth,
            },
            identity_changes=changes,
        )

    def patch(self, local_id: UUID, data: AccountInput) -> MergedAccount:
        """Overwrite only the non-empty fields of ``data``."""

        provided = data.provided()
        return self._write(
            "patch",
            local_id,
            data,
            local_changes=provided,
            identity_changes={
                name: value for name, value in provided.items() if name in IDENTITY_FIELDS
            },
        )

    def _write(
        self,
        operation: str,
        local_id: UUID,
        data: AccountInput,
        *,
        local_changes: dict[str, object],
        identity_changes: dict[str, object],
    ) -> MergedAccount:
        with self._saga(operation, local_id=local_id) as saga:
            with self.unit_of_work_factory() as uow:
                accounts = uow.repositories.accounts
                account = _require_account(accounts, local_id)
                saga.external_id = account.external_id
                saga.username = account.username

                username = local_changes.get("username", account.username)
                email = local_changes.get("email", account.email)
                self._check_unique(
                    accounts,
                    username=str(username),
                    email=None if email is None else str(email),
                    saga=saga,
                    current=account,
                )
                for name, value in local_changes.items():
                    setattr(account, name, value)
                account.touch()
                accounts.save(account)
                uow.commit()
            saga.username = account.username
            saga.succeeded("write_local")

            record = self._push_identity(account, identity_changes, data.password, saga)
            return _view(account, record)

    def _push_identity(
        self,
        account: LocalAccount,
        changes: dict[str, object],
        password: str | None,
        saga: SagaRecord,
    ) -> IdentityRecord | None:
        if account.external_id is None:
            saga.skipped("update_identity", "not linked")
            return None
        external_id = account.external_id

        try:
            record = self._fetch_identity(external_id, account.id)
        except DirectoryError as exc:
            saga.failed("update_identity", str(exc))
            self._log_partial(saga)
            raise

        if changes:
            record = replace(record, **changes)
            try:
                self.identity.update_user(external_id, record)
            except DirectoryError as exc:
                saga.failed("update_identity", str(exc))
                self._log_partial(saga)
                raise
            saga.succeeded("update_identity")
        else:
            saga.skipped("update_identity", "no identity fields changed")

        if password:
            try:
                self.identity.reset_credential(external_id, password)
            except DirectoryError as exc:
                saga.failed("reset_credential", str(exc))
                self._log_partial(saga)
                raise
            saga.succeeded("reset_credential")
        return record

    def _fetch_identity(self, external_id: str, local_id: UUID) -> IdentityRecord:
        try:
            return self.identity.get_user(external_id)
        except NotFoundError as exc:
            raise InvariantViolationError(
                f"Account {local_id} is linked to missing identity {external_id!r}"
            ) from exc

    def _log_partial(self, saga: SagaRecord) -> None:
        log.warning(
            "Local account %s updated but identity %s (%s) was not",
            saga.local_id,
            saga.external_id,
            saga.username,
        )

    def delete(self, local_id: UUID) -> MergedAccount:
        """Delete from both stores; a failed identity delete does not block the local one."""

        with self._saga("delete", local_id=local_id) as saga, self.unit_of_work_factory() as uow:
            accounts = uow.repositories.accounts
            account = _require_account(accounts, local_id)
            saga.external_id = account.external_id
            saga.username = account.username
            last_view = MergedAccount.from_local(account)

            if account.external_id is None:
                saga.skipped("delete_identity", "not linked")
            else:
                try:
                    self.identity.delete_user(account.external_id)
                except DirectoryError as exc:
                    saga.failed("delete_identity", str(exc))
                    log.error(
                        "Failed to delete identity %s for account %s (%s): %s",
                        account.external_id,
                        local_id,
                        account.username,
                        exc,
                    )
                else:
                    saga.succeeded("delete_identity")

            accounts.delete(account)
            uow.commit()
            saga.succeeded("delete_local")
            return last_view

    def sync_to_local(self, local_id: UUID) -> MergedAccount:
        """Re-pull username, email, names and the enabled flag from the identity store."""

        with self._saga("sync", local_id=local_id) as saga, self.unit_of_work_factory() as uow:
            accounts = uow.repositories.accounts
            account = _require_account(accounts, local_id)
            saga.username = account.username
            if account.external_id is None:
                saga.failed("fetch_identity", "not linked")
                raise NotFoundError(f"Account {local_id} is not linked to an identity")
            saga.external_id = account.external_id

            try:
                record = self._fetch_identity(account.external_id, local_id)
            except DirectoryError as exc:
                saga.failed("fetch_identity", str(exc))
                raise
            saga.succeeded("fetch_identity")

            account.apply_identity(record)
            accounts.save(account)
            uow.commit()
            saga.succeeded("write_local")
            return merge_account(record, account)

    def set_enabled(self, local_id: UUID, enabled: bool) -> MergedAccount:
        """Enable or disable in the identity store first, then mirror the flag locally."""

        with (
            self._saga("set_enabled", local_id=local_id) as saga,
            self.unit_of_work_factory() as uow,
        ):
            accounts = uow.repositories.accounts
            account = _require_account(accounts, local_id)
            saga.external_id = account.external_id
            saga.username = account.username

            if account.external_id is None:
                saga.skipped("set_identity_enabled", "not linked")
            else:
                try:
                    self.identity.set_enabled(account.external_id, enabled)
                except DirectoryError as exc:
                    saga.failed("set_identity_enabled", str(exc))
                    raise
                saga.succeeded("set_identity_enabled")

            account.enabled = enabled
            account.touch()
            accounts.save(account)
            uow.commit()
            saga.succeeded("write_local")
            return MergedAccount.from_local(account)

    def reset_credential(self, local_id: UUID, secret: str) -> None:
        """Replace the account's password in the identity store."""

        if not secret:
            raise ValueError("secret must not be empty")
        with self._saga("reset_credential", local_id=local_id) as saga:
            with self.unit_of_work_factory() as uow:
                account = _require_account(uow.repositories.accounts, local_id)
            saga.username = account.username
            if account.external_id is None:
                saga.failed("reset_credential", "not linked")
                raise NotFoundError(f"Account {local_id} is not linked to an identity")
            saga.external_id = account.external_id
            try:
                self.identity.reset_credential(account.external_id, secret)
            except DirectoryError as exc:
                saga.failed("reset_credential", str(exc))
                raise
            saga.succeeded("reset_credential")

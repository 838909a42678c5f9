"""Port for the external identity store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from userbridge.domain.model import IdentityDraft, IdentityRecord


@runtime_checkable
class IdentityDirectory(Protocol):
    """Admin-level access to the identity store.

    Implementations raise only ``NotFoundError``, ``ConflictError`` or
    ``ExternalUnavailableError``.
    """

    def list_users(self, offset: int, limit: int) -> Sequence[IdentityRecord]: ...

    def search_users(self, term: str, offset: int, limit: int) -> Sequence[IdentityRecord]: ...

    def get_user(self, external_id: str) -> IdentityRecord: ...

    def create_user(self, draft: IdentityDraft, credential: str) -> str: ...

    def update_user(self, external_id: str, record: IdentityRecord) -> None: ...

    def delete_user(self, external_id: str) -> None: ...

    def count_users(self) -> int: ...

    def find_by_username(
        self, username: str, *, exact: bool = True
    ) -> Sequence[IdentityRecord]: ...

    def find_by_email(self, email: str, *, exact: bool = True) -> Sequence[IdentityRecord]: ...

    def reset_credential(self, external_id: str, secret: str) -> None: ...

    def set_enabled(self, external_id: str, enabled: bool) -> None: ...

"""Domain errors raised across the account directory."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from userbridge.domain.lifecycle.saga import SagaRecord


class DirectoryError(Exception):
    """Base class for failures surfaced by the directory.

    Lifecycle operations attach the saga record of the failed run on ``saga`` so
    callers can see which store was changed before the failure.
    """

    def __init__(self, message: str, *, saga: SagaRecord | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.saga = saga


class NotFoundError(DirectoryError):
    """The referenced account does not exist in the store that was asked."""


class ConflictError(DirectoryError):
    """A uniqueness rule would be broken (username, email or external id).

    ``column`` names the local unique column when the store could tell which one.
    """

    def __init__(
        self, message: str, *, column: str | None = None, saga: SagaRecord | None = None
    ) -> None:
        super().__init__(message, saga=saga)
        self.column = column


class ExternalUnavailableError(DirectoryError):
    """The identity store could not be reached or answered with an unexpected error."""


class InvariantViolationError(DirectoryError):
    """The two stores disagree in a way that cannot be reconciled automatically."""


GENERIC_ERROR_MESSAGE: Final[str] = "An unexpected error occurred"


@dataclass(frozen=True, slots=True)
class ErrorDescription:
    status: int
    code: str
    message: str


def describe_error(exc: BaseException) -> ErrorDescription:
    """Turn an exception into a caller-facing description.

    Only validation-shaped failures keep their message; anything else collapses
    into a generic internal error.
    """

    if isinstance(exc, NotFoundError):
        return ErrorDescription(status=404, code="not_found", message=str(exc))
    if isinstance(exc, ConflictError):
        return ErrorDescription(status=409, code="conflict", message=str(exc))
    if isinstance(exc, ValueError):
        return ErrorDescription(status=400, code="bad_request", message=str(exc))
    return ErrorDescription(status=500, code="internal_error", message=GENERIC_ERROR_MESSAGE)

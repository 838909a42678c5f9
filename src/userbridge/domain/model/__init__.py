"""Domain model for the account directory."""

from __future__ import annotations

from .account import (
    EXTERNAL_CREDENTIAL_SENTINEL,
    AccountInput,
    AccountPage,
    IdentityDraft,
    IdentityRecord,
    LocalAccount,
    MergedAccount,
)
from .base import Entity, new_id, utcnow
from .enums import SortDirection, SortField, StepStatus

__all__ = [
    "EXTERNAL_CREDENTIAL_SENTINEL",
    "AccountInput",
    "AccountPage",
    "Entity",
    "IdentityDraft",
    "IdentityRecord",
    "LocalAccount",
    "MergedAccount",
    "SortDirection",
    "SortField",
    "StepStatus",
    "new_id",
    "utcnow",
]

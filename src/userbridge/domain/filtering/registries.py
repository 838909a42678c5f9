"""Filterable fields of the account entities."""

from __future__ import annotations

from userbridge.domain.model import LocalAccount, MergedAccount

from .fields import FieldSpec, FieldType, register_fields

LOCAL_ACCOUNT_FIELDS = register_fields(
    LocalAccount,
    (
        FieldSpec("id", FieldType.UUID, "id"),
        FieldSpec("firstName", FieldType.STRING, "first_name"),
        FieldSpec("lastName", FieldType.STRING, "last_name"),
        FieldSpec("username", FieldType.STRING, "username"),
        FieldSpec("email", FieldType.STRING, "email"),
        FieldSpec("dateOfBirth", FieldType.DATE, "date_of_birth"),
        FieldSpec("externalId", FieldType.STRING, "external_id"),
        FieldSpec("enabled", FieldType.BOOLEAN, "enabled"),
        FieldSpec("createdAt", FieldType.DATETIME, "created_at"),
        FieldSpec("updatedAt", FieldType.DATETIME, "updated_at"),
    ),
)

# Only fields the local store is authoritative for; identity fields are filtered
# against the identity page before merging.
MERGED_ACCOUNT_FIELDS = register_fields(
    MergedAccount,
    (
        FieldSpec("localId", FieldType.UUID, "local_id"),
        FieldSpec("dateOfBirth", FieldType.DATE, "date_of_birth"),
    ),
)

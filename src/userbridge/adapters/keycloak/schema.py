"""Pydantic models describing the Keycloak admin API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class KeycloakBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CredentialRepresentation(KeycloakBaseModel):
    type: str = "password"
    value: str
    temporary: bool = False


class UserRepresentation(KeycloakBaseModel):
    id: str | None = None
    username: str
    email: str | None = None
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    enabled: bool = True
    email_verified: bool = Field(default=False, alias="emailVerified")
    created_timestamp: int | None = Field(default=None, alias="createdTimestamp")
    credentials: list[CredentialRepresentation] | None = None

    _normalize_email = field_validator("email", "first_name", "last_name", mode="before")(
        _blank_to_none
    )


class EnabledUpdate(KeycloakBaseModel):
    enabled: bool


class TokenResponse(KeycloakBaseModel):
    access_token: str
    expires_in: int = 60
    token_type: str | None = None


USER_LIST = TypeAdapter(list[UserRepresentation])

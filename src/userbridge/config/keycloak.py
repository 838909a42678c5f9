"""Keycloak admin API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError
from .http_resilience import ResilienceConfig, RetryPolicy

KEYCLOAK_TIMEOUT_SECONDS = 5.0
KEYCLOAK_MAX_RETRIES = 3


@dataclass(frozen=True, slots=True)
class KeycloakConfig:
    """Connection settings for the identity provider's admin API."""

    server_url: str
    realm: str
    client_id: str
    client_secret: str
    auth_realm: str
    resilience: ResilienceConfig

    @property
    def users_path(self) -> str:
        return f"/admin/realms/{self.realm}/users"

    @property
    def token_path(self) -> str:
        return f"/realms/{self.auth_realm}/protocol/openid-connect/token"


def _number[T: (int, float)](name: str, default: T, kind: type[T]) -> T:
    raw = optional_env_var(name)
    if raw is None:
        return default
    try:
        value = kind(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number: {raw!r}") from exc
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative")
    return value


def _default_resilience(server_url: str) -> ResilienceConfig:
    # Each port call opens its own client, so a rate limit would only span one call.
    return ResilienceConfig(
        name="keycloak",
        base_url=server_url,
        timeout_seconds=_number("KEYCLOAK_TIMEOUT_SECONDS", KEYCLOAK_TIMEOUT_SECONDS, float),
        retry=RetryPolicy(total=_number("KEYCLOAK_MAX_RETRIES", KEYCLOAK_MAX_RETRIES, int)),
    )


def get_keycloak_config(*, resilience: ResilienceConfig | None = None) -> KeycloakConfig:
    values = require_env_vars(
        ("KEYCLOAK_URL", "KEYCLOAK_REALM", "KEYCLOAK_CLIENT_ID", "KEYCLOAK_CLIENT_SECRET")
    )
    server_url = values["KEYCLOAK_URL"].rstrip("/")
    realm = values["KEYCLOAK_REALM"]
    return KeycloakConfig(
        server_url=server_url,
        realm=realm,
        client_id=values["KEYCLOAK_CLIENT_ID"],
        client_secret=values["KEYCLOAK_CLIENT_SECRET"],
        auth_realm=optional_env_var("KEYCLOAK_AUTH_REALM") or realm,
        resilience=resilience or _default_resilience(server_url),
    )

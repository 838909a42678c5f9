"""Identity directory backed by the Keycloak admin REST API."""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from userbridge.adapters.http_resilience import ResilientClient
from userbridge.domain.errors import ConflictError, ExternalUnavailableError, NotFoundError

from .schema import USER_LIST, EnabledUpdate, TokenResponse, UserRepresentation
from .translator import credential_payload, draft_payload, parse_identity, record_payload

if TYPE_CHECKING:
    from collections.abc import Callable

    from userbridge.config.http_resilience import ResilienceConfig
    from userbridge.config.keycloak import KeycloakConfig
    from userbridge.domain.model import IdentityDraft, IdentityRecord

log = getLogger(__name__)

TOKEN_EXPIRY_MARGIN_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class _AccessToken:
    value: str
    expires_at: float

    def usable_at(self, now: float) -> bool:
        return now < self.expires_at - TOKEN_EXPIRY_MARGIN_SECONDS


def _raise_for_status(response: httpx.Response, what: str) -> None:
    if response.is_success:
        return
    status = response.status_code
    if status == httpx.codes.NOT_FOUND:
        raise NotFoundError(f"{what}: not found")
    if status == httpx.codes.CONFLICT:
        raise ConflictError(f"{what}: conflict ({_error_detail(response)})")
    raise ExternalUnavailableError(f"{what}: HTTP {status} ({_error_detail(response)})")


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        for key in ("errorMessage", "error_description", "error"):
            if key in payload:
                return str(payload[key])
    return str(payload)[:200]


def _id_from_location(response: httpx.Response) -> str:
    location = response.headers.get("Location")
    if not location:
        raise ExternalUnavailableError("Keycloak created a user but sent no Location header")
    external_id = location.rstrip("/").rsplit("/", 1)[-1]
    if not external_id:
        raise ExternalUnavailableError(f"Cannot read user id from Location {location!r}")
    return external_id


class KeycloakIdentityDirectory:
    """Admin-level user operations against one Keycloak realm.

    Each call runs on its own event loop through ``asyncio.run`` and its own
    ``ResilientClient``. The service-account token is shared between calls and
    threads and refreshed shortly before it expires.
    """

    def __init__(
        self,
        *,
        config: KeycloakConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient
        self._clock = clock
        self._token: _AccessToken | None = None
        self._token_lock = threading.Lock()

    def list_users(self, offset: int, limit: int) -> list[IdentityRecord]:
        return asyncio.run(self._list_async({"first": str(offset), "max": str(limit)}))

    def search_users(self, term: str, offset: int, limit: int) -> list[IdentityRecord]:
        return asyncio.run(
            self._list_async({"search": term, "first": str(offset), "max": str(limit)})
        )

    def find_by_username(self, username: str, *, exact: bool = True) -> list[IdentityRecord]:
        return asyncio.run(self._list_async({"username": username, "exact": _flag(exact)}))

    def find_by_email(self, email: str, *, exact: bool = True) -> list[IdentityRecord]:
        return asyncio.run(self._list_async({"email": email, "exact": _flag(exact)}))

    def get_user(self, external_id: str) -> IdentityRecord:
        return asyncio.run(self._get_user_async(external_id))

    def count_users(self) -> int:
        return asyncio.run(self._count_async())

    def create_user(self, draft: IdentityDraft, credential: str) -> str:
        return asyncio.run(self._create_user_async(draft, credential))

    def update_user(self, external_id: str, record: IdentityRecord) -> None:
        asyncio.run(
            self._call_async(
                "PUT", self._user_path(external_id), json=record_payload(record)
            )
        )

    def delete_user(self, external_id: str) -> None:
        asyncio.run(self._call_async("DELETE", self._user_path(external_id)))

    def reset_credential(self, external_id: str, secret: str) -> None:
        asyncio.run(
            self._call_async(
                "PUT",
                f"{self._user_path(external_id)}/reset-password",
                json=credential_payload(secret),
            )
        )

    def set_enabled(self, external_id: str, enabled: bool) -> None:
        asyncio.run(
            self._call_async(
                "PUT",
                self._user_path(external_id),
                json=EnabledUpdate(enabled=enabled).model_dump(),
            )
        )

    def _user_path(self, external_id: str) -> str:
        return f"{self._config.users_path}/{quote(external_id, safe='')}"

    async def _list_async(self, params: dict[str, str]) -> list[IdentityRecord]:
        response = await self._call_async("GET", self._config.users_path, params=params)
        try:
            users = USER_LIST.validate_python(response.json())
            return [parse_identity(user) for user in users]
        except (ValidationError, ValueError) as exc:
            raise ExternalUnavailableError(f"Unexpected Keycloak user list: {exc}") from exc

    async def _get_user_async(self, external_id: str) -> IdentityRecord:
        response = await self._call_async("GET", self._user_path(external_id))
        try:
            return parse_identity(UserRepresentation.model_validate(response.json()))
        except (ValidationError, ValueError) as exc:
            raise ExternalUnavailableError(f"Unexpected Keycloak user payload: {exc}") from exc

    async def _count_async(self) -> int:
        response = await self._call_async("GET", f"{self._config.users_path}/count")
        try:
            return int(response.json())
        except (TypeError, ValueError) as exc:
            raise ExternalUnavailableError(f"Unexpected Keycloak user count: {exc}") from exc

    async def _create_user_async(self, draft: IdentityDraft, credential: str) -> str:
        response = await self._call_async(
            "POST", self._config.users_path, json=draft_payload(draft, credential)
        )
        external_id = _id_from_location(response)
        log.info("Created Keycloak user %s (%s)", external_id, draft.username)
        return external_id

    async def _call_async(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: object = None,
    ) -> httpx.Response:
        what = f"Keycloak {method} {path}"
        async with self._client_factory(self._resilience) as client:
            response = await self._authorized_request(client, method, path, params, json)
            if response.status_code == httpx.codes.UNAUTHORIZED:
                log.info("Keycloak rejected the cached token, requesting a new one")
                self._invalidate_token()
                response = await self._authorized_request(client, method, path, params, json)
        _raise_for_status(response, what)
        return response

    async def _authorized_request(
        self,
        client: ResilientClient,
        method: str,
        path: str,
        params: dict[str, str] | None,
        json: object,
    ) -> httpx.Response:
        token = await self._access_token(client)
        headers = {"Authorization": f"Bearer {token}"}
        try:
            if json is None:
                return await client.request(method, path, params=params, headers=headers)
            return await client.request(method, path, params=params, headers=headers, json=json)
        except httpx.HTTPError as exc:
            raise ExternalUnavailableError(f"Keycloak {method} {path} failed: {exc}") from exc

    async def _access_token(self, client: ResilientClient) -> str:
        # the lock only guards the cached value; fetching happens outside it
        with self._token_lock:
            token = self._token
        if token is not None and token.usable_at(self._clock()):
            return token.value
        token = await self._fetch_token(client)
        with self._token_lock:
            self._token = token
        return token.value

    def _invalidate_token(self) -> None:
        with self._token_lock:
            self._token = None

    async def _fetch_token(self, client: ResilientClient) -> _AccessToken:
        requested_at = self._clock()
        try:
            response = await client.post(
                self._config.token_path,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._config.client_id,
                    "client_secret": self._config.client_secret,
                },
            )
        except httpx.HTTPError as exc:
            raise ExternalUnavailableError(f"Keycloak token request failed: {exc}") from exc
        if not response.is_success:
            raise ExternalUnavailableError(
                f"Keycloak token request failed: HTTP {response.status_code} "
                f"({_error_detail(response)})"
            )
        try:
            payload = TokenResponse.model_validate(response.json())
        except (ValidationError, ValueError) as exc:
            raise ExternalUnavailableError(f"Unexpected Keycloak token payload: {exc}") from exc
        log.debug("Obtained Keycloak service-account token valid for %ss", payload.expires_in)
        return _AccessToken(value=payload.access_token, expires_at=requested_at + payload.expires_in)


def _flag(value: bool) -> str:
    return "true" if value else "false"

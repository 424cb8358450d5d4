"""HTTP client for the Zitadel management API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

import httpx
from pydantic import BaseModel, ValidationError

from idsync.adapters.http_resilience import (
    RateLimit,
    ResilienceConfig,
    ResilientClient,
    default_client_factory,
)
from idsync.domain.model import UserField
from idsync.domain.ports.provider import (
    ProviderAuthError,
    ProviderConflictError,
    ProviderError,
    ProviderNotFoundError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    ProviderValidationError,
)

from .schema import (
    ErrorResponse,
    GrantSearchResponse,
    IdpLinkSearchResponse,
    ImportUserResponse,
    MetadataSearchResponse,
    UserPayload,
    UserSearchResponse,
)
from .translator import (
    decode_metadata_value,
    email_request,
    encode_metadata_value,
    import_request,
    phone_request,
    profile_request,
    to_provider_user,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from idsync.config.zitadel import ZitadelConfig
    from idsync.domain.model import CanonicalUser, ProviderUser
    from idsync.domain.ports.provider import IdentityProvider

log = getLogger(__name__)

MANAGEMENT_PREFIX = "/management/v1"
# Metadata key whose value names the identity provider SSO login is enforced with.
SSO_MARKER_KEY = "sso_idp"
_PROFILE_FIELDS = frozenset({UserField.FIRST_NAME, UserField.LAST_NAME, UserField.DISPLAY_NAME})


def _resilience_from_config(config: ZitadelConfig) -> ResilienceConfig:
    return ResilienceConfig(
        name="zitadel",
        base_url=config.url,
        timeout_seconds=config.timeout_seconds,
        ratelimit=(
            RateLimit(max_calls=max(1, round(config.requests_per_second)), per_seconds=1.0)
            if config.requests_per_second
            else None
        ),
        default_headers={
            "Authorization": f"Bearer {config.token}",
            "x-zitadel-orgid": config.organization_id,
            "Accept": "application/json",
        },
    )


def _error_detail(response: httpx.Response) -> str:
    try:
        return ErrorResponse.model_validate(response.json()).message or response.reason_phrase
    except (ValueError, ValidationError):
        return response.text or response.reason_phrase


def raise_for_status(response: httpx.Response, action: str) -> None:
    """Translate an unsuccessful response into the matching ``ProviderError``."""

    if response.is_success:
        return
    status = response.status_code
    message = f"{action} failed with HTTP {status}: {_error_detail(response)}"
    if status == httpx.codes.CONFLICT:
        raise ProviderConflictError(message)
    if status == httpx.codes.NOT_FOUND:
        raise ProviderNotFoundError(message)
    if status in {
        httpx.codes.BAD_REQUEST,
        httpx.codes.PRECONDITION_FAILED,
        httpx.codes.UNPROCESSABLE_ENTITY,
    }:
        raise ProviderValidationError(message)
    if status in {httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN}:
        raise ProviderAuthError(message)
    if status >= httpx.codes.INTERNAL_SERVER_ERROR or status == httpx.codes.TOO_MANY_REQUESTS:
        raise ProviderUnavailableError(message)
    raise ProviderError(message)


def _parse[M: BaseModel](model: type[M], response: httpx.Response, action: str) -> M:
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise ProviderError(f"{action} returned an unexpected payload: {exc}") from exc


@dataclass(slots=True)
class ZitadelClient:
    """``IdentityProvider`` backed by one Zitadel organisation and project.

    Each port method is a self-contained call with its own HTTP client, so a
    failing call never poisons the next one.
    """

    config: ZitadelConfig
    resilience: ResilienceConfig | None = None
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=default_client_factory
    )

    def __post_init__(self) -> None:
        if self.resilience is None:
            self.resilience = _resilience_from_config(self.config)

    # -- IdentityProvider -------------------------------------------------

    def list_users(self) -> list[ProviderUser]:
        return asyncio.run(self._list_users())

    def create_user(
        self,
        user: CanonicalUser,
        *,
        reverify: frozenset[UserField],
        sso_link: bool = False,
    ) -> str:
        idp_id = self._require_idp() if sso_link else None
        return asyncio.run(self._create_user(user, reverify=reverify, idp_id=idp_id))

    def update_user(
        self,
        provider_user_id: str,
        user: CanonicalUser,
        changed_fields: frozenset[UserField],
        *,
        reverify: frozenset[UserField],
    ) -> None:
        asyncio.run(self._update_user(provider_user_id, user, changed_fields, reverify=reverify))

    def disable_user(self, provider_user_id: str) -> None:
        asyncio.run(
            self._call(
                "POST",
                f"{MANAGEMENT_PREFIX}/users/{provider_user_id}/_deactivate",
                action=f"deactivate {provider_user_id}",
                json={},
            )
        )

    def enable_user(self, provider_user_id: str) -> None:
        asyncio.run(
            self._call(
                "POST",
                f"{MANAGEMENT_PREFIX}/users/{provider_user_id}/_reactivate",
                action=f"reactivate {provider_user_id}",
                json={},
            )
        )

    def set_metadata(self, provider_user_id: str, key: str, value: str) -> None:
        asyncio.run(
            self._call(
                "POST",
                f"{MANAGEMENT_PREFIX}/users/{provider_user_id}/metadata/{key}",
                action=f"set metadata {key} of {provider_user_id}",
                json={"value": encode_metadata_value(value)},
            )
        )

    def remove_metadata(self, provider_user_id: str, key: str) -> None:
        asyncio.run(
            self._call(
                "DELETE",
                f"{MANAGEMENT_PREFIX}/users/{provider_user_id}/metadata/{key}",
                action=f"remove metadata {key} of {provider_user_id}",
            )
        )

    def add_grant(self, provider_user_id: str) -> None:
        asyncio.run(
            self._call(
                "POST",
                f"{MANAGEMENT_PREFIX}/users/{provider_user_id}/grants",
                action=f"grant {self.config.role} to {provider_user_id}",
                json={"projectId": self.config.project_id, "roleKeys": [self.config.role]},
            )
        )

    def mark_sso_linked(self, provider_user_id: str, user: CanonicalUser) -> None:
        self.set_metadata(provider_user_id, SSO_MARKER_KEY, self._require_idp())

    # -- implementation ---------------------------------------------------

    def _require_idp(self) -> str:
        if not self.config.idp_id:
            raise ProviderValidationError("SSO login needs an identity provider id")
        return self.config.idp_id

    def _client(self) -> ResilientClient:
        assert self.resilience is not None
        return self.client_factory(self.resilience)

    async def _call(
        self,
        method: str,
        path: str,
        *,
        action: str,
        json: Any = None,
        client: ResilientClient | None = None,
    ) -> httpx.Response:
        if client is None:
            async with self._client() as owned:
                return await self._call(method, path, action=action, json=json, client=owned)
        try:
            response = await client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(f"{action} timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise ProviderUnavailableError(f"{action} failed: {exc}") from exc
        raise_for_status(response, action)
        log.debug("%s -> HTTP %s", action, response.status_code)
        return response

    def _page(self, offset: int) -> dict[str, object]:
        # uint64 fields are sent as strings.
        return {"offset": str(offset), "limit": self.config.page_size, "asc": True}

    async def _list_users(self) -> list[ProviderUser]:
        async with self._client() as client:
            payloads = await self._search_users(client)
            granted = await self._granted_user_ids(client)
            users: list[ProviderUser] = []
            for payload in payloads:
                if payload.human is None:
                    continue
                metadata: dict[str, str] = {}
                sso_linked = sso_marked = False
                if payload.external_id is not None:
                    metadata = await self._metadata(client, payload.id)
                    if self.config.idp_id:
                        sso_linked = await self._linked_to_idp(client, payload.id)
                        sso_marked = metadata.get(SSO_MARKER_KEY) == self.config.idp_id
                users.append(
                    to_provider_user(
                        payload,
                        metadata=metadata,
                        granted=payload.id in granted,
                        sso_linked=sso_linked,
                        sso_marked=sso_marked,
                    )
                )
        log.info("Fetched %d human account(s) from Zitadel", len(users))
        return users

    async def _search_users(self, client: ResilientClient) -> list[UserPayload]:
        results: list[UserPayload] = []
        offset = 0
        while True:
            response = await self._call(
                "POST",
                f"{MANAGEMENT_PREFIX}/users/_search",
                action="search users",
                json={
                    "query": self._page(offset),
                    "queries": [{"typeQuery": {"type": "TYPE_HUMAN"}}],
                },
                client=client,
            )
            page = _parse(UserSearchResponse, response, "search users")
            results.extend(page.result)
            offset += len(page.result)
            if not page.result or offset >= page.details.total_result:
                return results

    async def _granted_user_ids(self, client: ResilientClient) -> set[str]:
        granted: set[str] = set()
        offset = 0
        while True:
            response = await self._call(
                "POST",
                f"{MANAGEMENT_PREFIX}/users/grants/_search",
                action="search grants",
                json={
                    "query": self._page(offset),
                    "queries": [{"projectIdQuery": {"projectId": self.config.project_id}}],
                },
                client=client,
            )
            page = _parse(GrantSearchResponse, response, "search grants")
            granted.update(grant.user_id for grant in page.result)
            offset += len(page.result)
            if not page.result or offset >= page.details.total_result:
                return granted

    async def _metadata(self, client: ResilientClient, provider_user_id: str) -> dict[str, str]:
        action = f"search metadata of {provider_user_id}"
        response = await self._call(
            "POST",
            f"{MANAGEMENT_PREFIX}/users/{provider_user_id}/metadata/_search",
            action=action,
            json={"query": self._page(0)},
            client=client,
        )
        page = _parse(MetadataSearchResponse, response, action)
        return {entry.key: decode_metadata_value(entry.value) for entry in page.result}

    async def _linked_to_idp(self, client: ResilientClient, provider_user_id: str) -> bool:
        action = f"search identity provider links of {provider_user_id}"
        response = await self._call(
            "POST",
            f"{MANAGEMENT_PREFIX}/users/{provider_user_id}/idps/_search",
            action=action,
            json={"query": self._page(0)},
            client=client,
        )
        page = _parse(IdpLinkSearchResponse, response, action)
        return any(link.idp_id == self.config.idp_id for link in page.result)

    async def _create_user(
        self,
        user: CanonicalUser,
        *,
        reverify: frozenset[UserField],
        idp_id: str | None,
    ) -> str:
        action = f"import user {user.key}"
        response = await self._call(
            "POST",
            f"{MANAGEMENT_PREFIX}/users/human/_import",
            action=action,
            json=import_request(user, reverify=reverify, idp_id=idp_id),
        )
        return _parse(ImportUserResponse, response, action).user_id

    async def _update_user(
        self,
        provider_user_id: str,
        user: CanonicalUser,
        changed_fields: frozenset[UserField],
        *,
        reverify: frozenset[UserField],
    ) -> None:
        base = f"{MANAGEMENT_PREFIX}/users/{provider_user_id}"
        async with self._client() as client:
            if changed_fields & _PROFILE_FIELDS:
                await self._call(
                    "PUT",
                    f"{base}/profile",
                    action=f"update profile of {provider_user_id}",
                    json=profile_request(user),
                    client=client,
                )
            if UserField.EMAIL in changed_fields:
                if user.email is None:
                    raise ProviderValidationError(
                        f"cannot remove the email of {provider_user_id}; Zitadel requires one"
                    )
                await self._call(
                    "PUT",
                    f"{base}/email",
                    action=f"update email of {provider_user_id}",
                    json=email_request(user, reverify=UserField.EMAIL in reverify),
                    client=client,
                )
                await self._call(
                    "PUT",
                    f"{base}/username",
                    action=f"update user name of {provider_user_id}",
                    json={"userName": user.login_name},
                    client=client,
                )
            if UserField.PHONE in changed_fields:
                if user.phone is None:
                    await self._call(
                        "DELETE",
                        f"{base}/phone",
                        action=f"remove phone of {provider_user_id}",
                        client=client,
                    )
                else:
                    await self._call(
                        "PUT",
                        f"{base}/phone",
                        action=f"update phone of {provider_user_id}",
                        json=phone_request(user, reverify=UserField.PHONE in reverify),
                        client=client,
                    )


if TYPE_CHECKING:
    _provider_check: IdentityProvider = ZitadelClient(config=cast("ZitadelConfig", None))

"""Custom HTTP endpoint source adapter.

A client-credentials token is requested first, then the user list for the current
UTC date is fetched with it.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from idsync.adapters.http_resilience import (
    ResilienceConfig,
    ResilientClient,
    default_client_factory,
)
from idsync.domain.model import RawRecord

from .schema import USER_LIST_ADAPTER, OAuth2Error, OAuth2Token, UserEntry

if TYPE_CHECKING:
    from pydantic import JsonValue

    from idsync.config.sources import EndpointSourceConfig

log = getLogger(__name__)

EMAIL_ATTRIBUTE = "email"


class EndpointSourceError(RuntimeError):
    """Raised when the token service or the user list endpoint misbehaves."""


def _today() -> date:
    return datetime.now(UTC).date()


def _values(value: JsonValue) -> tuple[str, ...]:
    if value is None or value == "":
        return ()
    if isinstance(value, list):
        return tuple(item for entry in value for item in _values(entry))
    if isinstance(value, dict):
        # Nested objects travel as compact JSON text.
        return (json.dumps(value, ensure_ascii=False, separators=(",", ":")),)
    return (value if isinstance(value, str) else str(value),)


def to_raw_record(source: str, index: int, entry: UserEntry) -> RawRecord:
    """A bare string stands for ``{"email": value}``."""

    identifier = f"#{index}"
    if isinstance(entry, str):
        return RawRecord(
            source=source, identifier=identifier, attributes={EMAIL_ATTRIBUTE: (entry,)}
        )
    attributes: dict[str, tuple[str, ...]] = {}
    for name, value in entry.items():
        values = _values(value)
        if values:
            attributes[name] = values
    return RawRecord(source=source, identifier=identifier, attributes=attributes)


def _check_response(response: httpx.Response, what: str) -> object:
    if response.status_code != httpx.codes.OK:
        raise EndpointSourceError(f"{what} failed with HTTP {response.status_code}")
    try:
        payload = response.json()
    except ValueError as exc:
        raise EndpointSourceError(f"{what} returned invalid JSON: {exc}") from exc
    if isinstance(payload, dict) and "error" in payload:
        try:
            error = OAuth2Error.model_validate(payload)
            detail = error.error_description or error.error
        except ValidationError:
            detail = str(payload["error"])
        raise EndpointSourceError(f"{what} returned an error: {detail}")
    return payload


@dataclass(slots=True)
class EndpointSource:
    config: EndpointSourceConfig
    resilience: ResilienceConfig | None = None
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=default_client_factory
    )
    clock: Callable[[], date] = field(default=_today)

    def __post_init__(self) -> None:
        if self.resilience is None:
            self.resilience = ResilienceConfig(
                name=f"endpoint:{self.config.name}",
                timeout_seconds=self.config.timeout_seconds,
            )

    @property
    def name(self) -> str:
        return self.config.name

    def fetch_all(self) -> list[RawRecord]:
        return asyncio.run(self._fetch_all())

    async def _fetch_all(self) -> list[RawRecord]:
        assert self.resilience is not None
        try:
            async with self.client_factory(self.resilience) as client:
                token = await self._request_token(client)
                entries = await self._request_users(client, token)
        except httpx.HTTPError as exc:
            raise EndpointSourceError(f"Request to {self.name} failed: {exc}") from exc

        records = [to_raw_record(self.name, index, entry) for index, entry in enumerate(entries)]
        log.info("Fetched %d user(s) from %s", len(records), self.name)
        return records

    async def _request_token(self, client: ResilientClient) -> OAuth2Token:
        response = await client.post(
            self.config.oauth2_url,
            data={
                "grant_type": self.config.grant_type,
                "scope": self.config.scope,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
        )
        payload = _check_response(response, "token request")
        try:
            return OAuth2Token.model_validate(payload)
        except ValidationError as exc:
            raise EndpointSourceError(f"Malformed token response: {exc}") from exc

    async def _request_users(self, client: ResilientClient, token: OAuth2Token) -> list[UserEntry]:
        headers = {"Authorization": f"Bearer {token.access_token}"}
        if token.id_token is not None:
            headers["x-participant-token"] = token.id_token
        response = await client.get(
            self.config.endpoint_url,
            params={"date": self.clock().strftime("%Y%m%d")},
            headers=headers,
        )
        payload = _check_response(response, "user list request")
        try:
            return USER_LIST_ADAPTER.validate_python(payload)
        except ValidationError as exc:
            raise EndpointSourceError(f"Malformed user list: {exc}") from exc

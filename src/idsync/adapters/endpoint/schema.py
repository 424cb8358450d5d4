"""Pydantic models for the OAuth2 token and user list payloads of the endpoint source."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, JsonValue, TypeAdapter


class EndpointBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class OAuth2Token(EndpointBaseModel):
    access_token: str
    # Forwarded as ``x-participant-token`` when the token service issues one.
    id_token: str | None = None


class OAuth2Error(EndpointBaseModel):
    error: str
    error_description: str | None = None


# Either bare email addresses or attribute objects.
UserEntry = str | dict[str, JsonValue]

USER_LIST_ADAPTER: TypeAdapter[list[UserEntry]] = TypeAdapter(list[UserEntry])

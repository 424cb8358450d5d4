"""Pydantic models describing the Zitadel management API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

USER_STATE_INACTIVE = "USER_STATE_INACTIVE"


def _blank_to_none(value: object) -> object:
    # Zitadel reports unset strings as "". Other values stay byte-exact for diffing.
    if value == "":
        return None
    return value


class ZitadelBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)


class ListDetails(ZitadelBaseModel):
    # uint64 values arrive as JSON strings.
    total_result: int = 0


class ProfilePayload(ZitadelBaseModel):
    first_name: str | None = None
    last_name: str | None = None
    display_name: str | None = None
    nick_name: str | None = None

    normalize_blank = field_validator(
        "first_name", "last_name", "display_name", "nick_name", mode="before"
    )(_blank_to_none)


class EmailPayload(ZitadelBaseModel):
    email: str | None = None
    is_email_verified: bool = False

    normalize_blank = field_validator("email", mode="before")(_blank_to_none)


class PhonePayload(ZitadelBaseModel):
    phone: str | None = None
    is_phone_verified: bool = False

    normalize_blank = field_validator("phone", mode="before")(_blank_to_none)


class HumanPayload(ZitadelBaseModel):
    profile: ProfilePayload = Field(default_factory=ProfilePayload)
    email: EmailPayload = Field(default_factory=EmailPayload)
    phone: PhonePayload = Field(default_factory=PhonePayload)


class UserPayload(ZitadelBaseModel):
    id: str
    state: str = "USER_STATE_UNSPECIFIED"
    user_name: str | None = None
    # Machine users carry ``machine`` instead and are never synced.
    human: HumanPayload | None = None

    @property
    def enabled(self) -> bool:
        return self.state != USER_STATE_INACTIVE

    @property
    def external_id(self) -> str | None:
        if self.human is None:
            return None
        return self.human.profile.nick_name


class UserSearchResponse(ZitadelBaseModel):
    details: ListDetails = Field(default_factory=ListDetails)
    result: list[UserPayload] = Field(default_factory=list["UserPayload"])


class MetadataPayload(ZitadelBaseModel):
    key: str
    # Base64 of the stored bytes.
    value: str = ""


class MetadataSearchResponse(ZitadelBaseModel):
    details: ListDetails = Field(default_factory=ListDetails)
    result: list[MetadataPayload] = Field(default_factory=list["MetadataPayload"])


class GrantPayload(ZitadelBaseModel):
    id: str | None = None
    user_id: str
    project_id: str | None = None
    role_keys: list[str] = Field(default_factory=list[str])


class GrantSearchResponse(ZitadelBaseModel):
    details: ListDetails = Field(default_factory=ListDetails)
    result: list[GrantPayload] = Field(default_factory=list["GrantPayload"])


class IdpLinkPayload(ZitadelBaseModel):
    idp_id: str
    user_id: str | None = None
    provided_user_id: str | None = None


class IdpLinkSearchResponse(ZitadelBaseModel):
    details: ListDetails = Field(default_factory=ListDetails)
    result: list[IdpLinkPayload] = Field(default_factory=list["IdpLinkPayload"])


class ImportUserResponse(ZitadelBaseModel):
    user_id: str


class ErrorResponse(ZitadelBaseModel):
    code: int | None = None
    message: str = ""

"""Pydantic models validating the YAML configuration file."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PositiveFloat,
    PositiveInt,
    field_validator,
    model_validator,
)

from idsync.common.logging import parse_level
from idsync.domain.model import FeatureFlag, UserField
from idsync.domain.reconciliation.filters import RecordFilter
from idsync.domain.reconciliation.mapping import AttributeMapping, AttributeMappings

from .sources import (
    DEFAULT_LDAP_PAGE_SIZE,
    DEFAULT_LDAP_USER_FILTER,
    DEFAULT_SOURCE_TIMEOUT_SECONDS,
    CsvSourceConfig,
    EndpointSourceConfig,
    LdapSourceConfig,
    SourceConfig,
)
from .sync import DEFAULT_LOG_LEVEL, SyncConfig
from .zitadel import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_ROLE,
    DEFAULT_TIMEOUT_SECONDS,
    ZitadelConfig,
    token_from_environment,
)


class ConfigModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class AttributeModel(ConfigModel):
    name: str = Field(min_length=1)
    binary: bool = False
    required: bool = False

    def to_mapping(self) -> AttributeMapping:
        return AttributeMapping(self.name, binary=self.binary, required=self.required)


type AttributeEntry = str | AttributeModel


def _attribute(entry: AttributeEntry) -> AttributeMapping:
    if isinstance(entry, str):
        return AttributeMapping(entry)
    return entry.to_mapping()


class AttributesModel(ConfigModel):
    """Source attribute names per canonical field; a plain string is a text attribute."""

    external_id: AttributeEntry
    email: AttributeEntry | None = None
    phone: AttributeEntry | None = None
    first_name: AttributeEntry | None = None
    last_name: AttributeEntry | None = None
    display_name: AttributeEntry | None = None
    preferred_username: AttributeEntry | None = None
    localpart: AttributeEntry | None = None
    status: AttributeEntry | None = None

    def to_mappings(self, disable_bitmasks: frozenset[int]) -> AttributeMappings:
        fields = {
            name: _attribute(entry)
            for name in UserField
            if (entry := getattr(self, name.value)) is not None
        }
        return AttributeMappings(
            external_id=_attribute(self.external_id),
            fields=fields,
            status=_attribute(self.status) if self.status is not None else None,
            disable_bitmasks=disable_bitmasks,
        )


def _email_attributes() -> AttributesModel:
    return AttributesModel(external_id="email", email="email")


def _csv_attributes() -> AttributesModel:
    return AttributesModel(
        external_id="email",
        email="email",
        first_name="first_name",
        last_name="last_name",
        phone="phone",
    )


class SourceModel(ConfigModel):
    name: str = Field(min_length=1)
    attributes: AttributesModel
    disable_bitmasks: list[int] = Field(default_factory=list[int])
    # Attribute name -> glob patterns; only honoured with the attribute_filters flag.
    record_filter: dict[str, list[str]] = Field(default_factory=dict[str, list[str]])

    @model_validator(mode="after")
    def _check_status(self) -> Self:
        if self.disable_bitmasks and self.attributes.status is None:
            raise ValueError(f"source {self.name}: disable_bitmasks needs a status attribute")
        return self

    def _mappings(self) -> AttributeMappings:
        return self.attributes.to_mappings(frozenset(self.disable_bitmasks))

    def _record_filter(self) -> RecordFilter:
        return RecordFilter(
            {attribute: tuple(patterns) for attribute, patterns in self.record_filter.items()}
        )


class LdapSourceModel(SourceModel):
    kind: Literal["ldap"]
    url: str
    bind_dn: str
    bind_password: str
    base_dn: str
    user_filter: str = DEFAULT_LDAP_USER_FILTER
    start_tls: bool = False
    verify_certificates: bool = True
    ca_cert_file: Path | None = None
    timeout_seconds: PositiveFloat = DEFAULT_SOURCE_TIMEOUT_SECONDS
    page_size: PositiveInt = DEFAULT_LDAP_PAGE_SIZE
    use_attribute_filter: bool = True

    @model_validator(mode="after")
    def _check_tls(self) -> Self:
        if self.start_tls and self.url.lower().startswith("ldaps://"):
            raise ValueError(f"source {self.name}: start_tls cannot be combined with ldaps://")
        return self

    def to_config(self) -> LdapSourceConfig:
        return LdapSourceConfig(
            name=self.name,
            mappings=self._mappings(),
            url=self.url,
            bind_dn=self.bind_dn,
            bind_password=self.bind_password,
            base_dn=self.base_dn,
            user_filter=self.user_filter,
            start_tls=self.start_tls,
            verify_certificates=self.verify_certificates,
            ca_cert_file=self.ca_cert_file,
            timeout_seconds=self.timeout_seconds,
            page_size=self.page_size,
            use_attribute_filter=self.use_attribute_filter,
            record_filter=self._record_filter(),
        )


class CsvSourceModel(SourceModel):
    kind: Literal["csv"]
    attributes: AttributesModel = Field(default_factory=_csv_attributes)
    path: Path
    delimiter: str = Field(default=",", min_length=1, max_length=1)
    encoding: str = "utf-8"

    def to_config(self) -> CsvSourceConfig:
        return CsvSourceConfig(
            name=self.name,
            mappings=self._mappings(),
            path=self.path,
            delimiter=self.delimiter,
            encoding=self.encoding,
            record_filter=self._record_filter(),
        )


class EndpointSourceModel(SourceModel):
    kind: Literal["endpoint"]
    attributes: AttributesModel = Field(default_factory=_email_attributes)
    endpoint_url: str
    oauth2_url: str
    client_id: str
    client_secret: str
    scope: str = "openid"
    grant_type: str = "client_credentials"
    timeout_seconds: PositiveFloat = DEFAULT_SOURCE_TIMEOUT_SECONDS

    def to_config(self) -> EndpointSourceConfig:
        return EndpointSourceConfig(
            name=self.name,
            mappings=self._mappings(),
            endpoint_url=self.endpoint_url,
            oauth2_url=self.oauth2_url,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=self.scope,
            grant_type=self.grant_type,
            timeout_seconds=self.timeout_seconds,
            record_filter=self._record_filter(),
        )


AnySourceModel = Annotated[
    LdapSourceModel | CsvSourceModel | EndpointSourceModel,
    Field(discriminator="kind"),
]


class ZitadelModel(ConfigModel):
    url: str
    organization_id: str
    project_id: str
    token: str | None = None
    idp_id: str | None = None
    role: str = DEFAULT_ROLE
    page_size: PositiveInt = DEFAULT_PAGE_SIZE
    timeout_seconds: PositiveFloat = DEFAULT_TIMEOUT_SECONDS
    requests_per_second: PositiveFloat | None = None

    def to_config(self) -> ZitadelConfig:
        return ZitadelConfig(
            url=self.url.rstrip("/"),
            organization_id=self.organization_id,
            project_id=self.project_id,
            token=self.token or token_from_environment(),
            idp_id=self.idp_id,
            role=self.role,
            page_size=self.page_size,
            timeout_seconds=self.timeout_seconds,
            requests_per_second=self.requests_per_second,
        )


class SyncConfigModel(ConfigModel):
    provider: ZitadelModel
    sources: list[AnySourceModel] = Field(min_length=1)
    feature_flags: list[FeatureFlag] = Field(default_factory=list[FeatureFlag])
    log_level: str = DEFAULT_LOG_LEVEL

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        parse_level(value)
        return value.strip().upper()

    @model_validator(mode="after")
    def _check_consistency(self) -> Self:
        names = [source.name for source in self.sources]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate source names: {', '.join(duplicates)}")
        if FeatureFlag.SSO_LOGIN in self.feature_flags and not self.provider.idp_id:
            raise ValueError("feature flag sso_login requires provider.idp_id")
        return self

    def to_config(self) -> SyncConfig:
        sources: tuple[SourceConfig, ...] = tuple(source.to_config() for source in self.sources)
        return SyncConfig(
            provider=self.provider.to_config(),
            sources=sources,
            features=frozenset(self.feature_flags),
            log_level=self.log_level,
        )

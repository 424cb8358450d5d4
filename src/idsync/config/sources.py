"""Configuration values of the source adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from idsync.domain.model import SourceKind
from idsync.domain.reconciliation.filters import RecordFilter
from idsync.domain.reconciliation.mapping import AttributeMappings

DEFAULT_LDAP_USER_FILTER = "(objectClass=person)"
DEFAULT_LDAP_PAGE_SIZE = 500
DEFAULT_SOURCE_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True, slots=True, kw_only=True)
class LdapSourceConfig:
    name: str
    mappings: AttributeMappings
    url: str
    bind_dn: str
    bind_password: str = field(repr=False)
    base_dn: str
    user_filter: str = DEFAULT_LDAP_USER_FILTER
    start_tls: bool = False
    verify_certificates: bool = True
    ca_cert_file: Path | None = None
    timeout_seconds: float = DEFAULT_SOURCE_TIMEOUT_SECONDS
    page_size: int = DEFAULT_LDAP_PAGE_SIZE
    # Request only the mapped attributes instead of every user attribute.
    use_attribute_filter: bool = True
    record_filter: RecordFilter = field(default_factory=RecordFilter)
    kind: SourceKind = SourceKind.LDAP


@dataclass(frozen=True, slots=True, kw_only=True)
class CsvSourceConfig:
    name: str
    mappings: AttributeMappings
    path: Path
    delimiter: str = ","
    encoding: str = "utf-8"
    record_filter: RecordFilter = field(default_factory=RecordFilter)
    kind: SourceKind = SourceKind.CSV


@dataclass(frozen=True, slots=True, kw_only=True)
class EndpointSourceConfig:
    name: str
    mappings: AttributeMappings
    endpoint_url: str
    oauth2_url: str
    client_id: str
    client_secret: str = field(repr=False)
    scope: str = "openid"
    grant_type: str = "client_credentials"
    timeout_seconds: float = DEFAULT_SOURCE_TIMEOUT_SECONDS
    record_filter: RecordFilter = field(default_factory=RecordFilter)
    kind: SourceKind = SourceKind.ENDPOINT


type SourceConfig = LdapSourceConfig | CsvSourceConfig | EndpointSourceConfig

"""LDAP / Active Directory source adapter."""

from __future__ import annotations

import ssl
from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from ldap3 import ALL_ATTRIBUTES, NONE, SUBTREE, Connection, Server, Tls
from ldap3.core.exceptions import LDAPException

from idsync.domain.model import RawRecord

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from idsync.config.sources import LdapSourceConfig

log = getLogger(__name__)

ConnectionFactory = Callable[["LdapSourceConfig"], Connection]

_SEARCH_RESULT_ENTRY = "searchResEntry"


class LdapSourceError(RuntimeError):
    """Raised when the directory cannot be reached, bound or searched."""


def connect(config: LdapSourceConfig) -> Connection:
    """Open and bind a connection, upgrading it with StartTLS when configured."""

    tls = Tls(
        validate=ssl.CERT_REQUIRED if config.verify_certificates else ssl.CERT_NONE,
        ca_certs_file=str(config.ca_cert_file) if config.ca_cert_file else None,
    )
    server = Server(
        config.url,
        tls=tls,
        get_info=NONE,
        connect_timeout=config.timeout_seconds,
    )
    connection = Connection(
        server,
        user=config.bind_dn,
        password=config.bind_password,
        receive_timeout=config.timeout_seconds,
        raise_exceptions=True,
        read_only=True,
    )
    connection.open()
    try:
        if config.start_tls:
            connection.start_tls()
        connection.bind()
    except LDAPException:
        connection.unbind()
        raise
    return connection


def to_raw_record(source: str, entry: Mapping[str, Any]) -> RawRecord:
    """Keep the server's raw bytes; decoding is the canonicalizer's job."""

    raw_attributes: Mapping[str, Iterable[bytes]] = entry.get("raw_attributes") or {}
    attributes = {
        name: tuple(values) for name, values in raw_attributes.items() if values
    }
    return RawRecord(source=source, identifier=str(entry["dn"]), attributes=attributes)


@dataclass(slots=True)
class LdapSource:
    config: LdapSourceConfig
    connection_factory: ConnectionFactory = field(default=connect)

    @property
    def name(self) -> str:
        return self.config.name

    def _requested_attributes(self) -> list[str]:
        if self.config.use_attribute_filter:
            return list(self.config.mappings.attribute_names())
        return [ALL_ATTRIBUTES]

    def fetch_all(self) -> list[RawRecord]:
        try:
            connection = self.connection_factory(self.config)
        except LDAPException as exc:
            raise LdapSourceError(f"Cannot bind to {self.config.url}: {exc}") from exc

        try:
            entries = connection.extend.standard.paged_search(
                search_base=self.config.base_dn,
                search_filter=self.config.user_filter,
                search_scope=SUBTREE,
                attributes=self._requested_attributes(),
                paged_size=self.config.page_size,
                generator=True,
            )
            records = [
                to_raw_record(self.name, entry)
                for entry in entries
                if entry.get("type") == _SEARCH_RESULT_ENTRY
            ]
        except LDAPException as exc:
            raise LdapSourceError(
                f"Search of {self.config.base_dn} with {self.config.user_filter} failed: {exc}"
            ) from exc
        finally:
            connection.unbind()

        log.info("Fetched %d entries from %s (%s)", len(records), self.name, self.config.url)
        return records

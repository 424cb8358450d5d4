from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

import pytest
from ldap3 import ALL_ATTRIBUTES, SUBTREE
from ldap3.core.exceptions import LDAPBindError, LDAPSocketReceiveError, LDAPStartTLSError

from idsync.adapters.ldap import LdapSource, LdapSourceError
from idsync.adapters.ldap import source as ldap_source
from idsync.config.sources import LdapSourceConfig
from idsync.domain.reconciliation import canonicalize
from tests.helpers.users import directory_mappings

if TYPE_CHECKING:
    from ldap3 import Connection


class FakeStandard:
    def __init__(self, entries: list[dict[str, Any]], error: Exception | None) -> None:
        self.entries = entries
        self.error = error
        self.search_kwargs: dict[str, Any] = {}

    def paged_search(self, **kwargs: Any) -> Iterator[dict[str, Any]]:
        self.search_kwargs = kwargs
        if self.error is not None:
            raise self.error
        yield from self.entries


class FakeExtend:
    def __init__(self, standard: FakeStandard) -> None:
        self.standard = standard


class FakeConnection:
    def __init__(self, entries: list[dict[str, Any]], error: Exception | None = None) -> None:
        self.extend = FakeExtend(FakeStandard(entries, error))
        self.unbound = False

    def unbind(self) -> None:
        self.unbound = True


def _config(**overrides: Any) -> LdapSourceConfig:
    values: dict[str, Any] = {
        "name": "directory",
        "mappings": directory_mappings(),
        "url": "ldaps://ldap.example.org",
        "bind_dn": "cn=sync,dc=example,dc=org",
        "bind_password": "secret",
        "base_dn": "ou=people,dc=example,dc=org",
        "page_size": 50,
    }
    values.update(overrides)
    return LdapSourceConfig(**values)


def _entry(uid: str, **raw: list[bytes]) -> dict[str, Any]:
    return {
        "type": "searchResEntry",
        "dn": f"uid={uid},ou=people,dc=example,dc=org",
        "raw_attributes": {"uid": [uid.encode()], "mail": [f"{uid}@example.org".encode()], **raw},
    }


def _source(connection: FakeConnection, **overrides: Any) -> LdapSource:
    def factory(config: LdapSourceConfig) -> Connection:
        del config
        return connection  # type: ignore[return-value]

    return LdapSource(_config(**overrides), connection_factory=factory)


def test_fetch_all_keeps_raw_bytes_and_skips_referrals() -> None:
    connection = FakeConnection(
        [
            _entry("jdoe", givenName=[b"J\xc3\xbcrgen"], telephoneNumber=[]),
            {"type": "searchResRef", "uri": ["ldap://other.example.org"]},
        ]
    )

    records = _source(connection).fetch_all()

    assert len(records) == 1
    record = records[0]
    assert record.source == "directory"
    assert record.identifier == "uid=jdoe,ou=people,dc=example,dc=org"
    assert record.values("givenName") == (b"J\xc3\xbcrgen",)
    assert "telephoneNumber" not in record.attributes
    assert canonicalize(record, directory_mappings()).key == "jdoe"
    assert connection.unbound is True


def test_search_requests_only_mapped_attributes() -> None:
    connection = FakeConnection([])

    _source(connection, user_filter="(memberOf=cn=sync)").fetch_all()

    kwargs = connection.extend.standard.search_kwargs
    assert kwargs["search_base"] == "ou=people,dc=example,dc=org"
    assert kwargs["search_filter"] == "(memberOf=cn=sync)"
    assert kwargs["search_scope"] == SUBTREE
    assert kwargs["paged_size"] == 50
    assert set(kwargs["attributes"]) == {
        "uid",
        "mail",
        "givenName",
        "sn",
        "telephoneNumber",
        "cn",
        "userAccountControl",
    }


def test_attribute_filter_can_be_turned_off() -> None:
    connection = FakeConnection([])

    _source(connection, use_attribute_filter=False).fetch_all()

    assert connection.extend.standard.search_kwargs["attributes"] == [ALL_ATTRIBUTES]


def test_bind_failure_raises_source_error() -> None:
    def factory(config: LdapSourceConfig) -> Connection:
        raise LDAPBindError("invalidCredentials")

    source = LdapSource(_config(), connection_factory=factory)

    with pytest.raises(LdapSourceError, match="Cannot bind"):
        source.fetch_all()


def test_search_failure_raises_source_error_and_unbinds() -> None:
    connection = FakeConnection([], error=LDAPSocketReceiveError("timed out"))

    with pytest.raises(LdapSourceError, match="Search of"):
        _source(connection).fetch_all()

    assert connection.unbound is True


class FakeLdap3Connection:
    """Stands in for ``ldap3.Connection`` inside ``connect``."""

    instances: list[FakeLdap3Connection] = []
    fail_on: str | None = None

    def __init__(self, server: object, **kwargs: Any) -> None:
        self.server = server
        self.kwargs = kwargs
        self.calls: list[str] = []
        FakeLdap3Connection.instances.append(self)

    def open(self) -> None:
        self.calls.append("open")

    def start_tls(self) -> None:
        self.calls.append("start_tls")
        if self.fail_on == "start_tls":
            raise LDAPStartTLSError("handshake failed")

    def bind(self) -> None:
        self.calls.append("bind")
        if self.fail_on == "bind":
            raise LDAPBindError("invalid credentials")

    def unbind(self) -> None:
        self.calls.append("unbind")


@pytest.fixture
def fake_ldap3(monkeypatch: pytest.MonkeyPatch) -> type[FakeLdap3Connection]:
    monkeypatch.setattr(FakeLdap3Connection, "instances", [])
    monkeypatch.setattr(FakeLdap3Connection, "fail_on", None)
    monkeypatch.setattr(ldap_source, "Connection", FakeLdap3Connection)
    return FakeLdap3Connection


def test_connect_opens_upgrades_and_binds(fake_ldap3: type[FakeLdap3Connection]) -> None:
    connection = ldap_source.connect(_config(url="ldap://ldap.example.org", start_tls=True))

    assert connection.calls == ["open", "start_tls", "bind"]  # type: ignore[attr-defined]
    assert connection.kwargs["read_only"] is True  # type: ignore[attr-defined]


@pytest.mark.parametrize(
    ("fail_on", "error"),
    [("start_tls", LDAPStartTLSError), ("bind", LDAPBindError)],
)
def test_connect_unbinds_when_upgrade_or_bind_fails(
    fake_ldap3: type[FakeLdap3Connection],
    monkeypatch: pytest.MonkeyPatch,
    fail_on: str,
    error: type[Exception],
) -> None:
    monkeypatch.setattr(fake_ldap3, "fail_on", fail_on)

    with pytest.raises(error):
        ldap_source.connect(_config(url="ldap://ldap.example.org", start_tls=True))

    (connection,) = fake_ldap3.instances
    assert connection.calls[0] == "open"
    assert connection.calls[-1] == "unbind"

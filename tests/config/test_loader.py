from __future__ import annotations

from pathlib import Path
from textwrap import dedent, indent
from typing import TYPE_CHECKING

import pytest

from idsync.config import (
    ConfigurationError,
    CsvSourceConfig,
    EndpointSourceConfig,
    LdapSourceConfig,
    MissingConfigurationError,
    load_config,
)
from idsync.domain.model import FeatureFlag, UserField

if TYPE_CHECKING:
    from collections.abc import Callable

BASE_CONFIG = """\
provider:
  url: https://zitadel.example.org/
  organization_id: org-1
  project_id: project-1
  token: pat-from-file
sources:
  - kind: ldap
    name: directory
    url: ldaps://ldap.example.org
    bind_dn: cn=sync,dc=example,dc=org
    bind_password: secret
    base_dn: ou=people,dc=example,dc=org
    disable_bitmasks: [2]
    attributes:
      external_id: {name: objectGUID, binary: true}
      email: {name: mail, required: true}
      first_name: givenName
      last_name: sn
      status: userAccountControl
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_config_builds_typed_configuration(tmp_path: Path) -> None:
    config = load_config(_write(tmp_path, BASE_CONFIG), environ={})

    assert config.provider.url == "https://zitadel.example.org"
    assert config.provider.token == "pat-from-file"
    assert config.features == frozenset()
    assert config.log_level == "INFO"
    (source,) = config.sources
    assert isinstance(source, LdapSourceConfig)
    assert source.user_filter == "(objectClass=person)"
    mappings = source.mappings
    assert mappings.external_id.name == "objectGUID"
    assert mappings.external_id.binary is True
    assert mappings.fields[UserField.EMAIL].required is True
    assert mappings.fields[UserField.FIRST_NAME].name == "givenName"
    assert mappings.status is not None
    assert mappings.disable_bitmasks == {2}


def test_environment_overrides_the_file(tmp_path: Path) -> None:
    config = load_config(
        _write(tmp_path, BASE_CONFIG),
        environ={
            "IDSYNC__SOURCES__0__BIND_PASSWORD": "from-env",
            "IDSYNC__FEATURE_FLAGS": "[dry_run]",
            "IDSYNC__LOG_LEVEL": "debug",
        },
    )

    (source,) = config.sources
    assert isinstance(source, LdapSourceConfig)
    assert source.bind_password == "from-env"
    assert config.features == {FeatureFlag.DRY_RUN}
    assert config.log_level == "DEBUG"


def test_token_falls_back_to_the_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = _write(tmp_path, BASE_CONFIG.replace("  token: pat-from-file\n", ""))
    monkeypatch.setenv("ZITADEL_TOKEN", "pat-from-env")

    assert load_config(path, environ={}).provider.token == "pat-from-env"

    monkeypatch.delenv("ZITADEL_TOKEN")
    with pytest.raises(MissingConfigurationError):
        load_config(path, environ={})


def test_csv_and_endpoint_sources_have_default_attributes(tmp_path: Path) -> None:
    text = BASE_CONFIG + indent(
        dedent(
            """\
              - kind: csv
                name: hr
                path: staff.csv
              - kind: endpoint
                name: portal
                endpoint_url: https://api.example.org/users
                oauth2_url: https://auth.example.org/token
                client_id: idsync
                client_secret: secret
            """
        ),
        "  ",
    )

    config = load_config(_write(tmp_path, text), environ={})

    _, csv_source, endpoint_source = config.sources
    assert isinstance(csv_source, CsvSourceConfig)
    assert csv_source.path == Path("staff.csv")
    assert set(csv_source.mappings.fields) == {
        UserField.EMAIL,
        UserField.FIRST_NAME,
        UserField.LAST_NAME,
        UserField.PHONE,
    }
    assert isinstance(endpoint_source, EndpointSourceConfig)
    assert endpoint_source.mappings.external_id.name == "email"


@pytest.mark.parametrize(
    ("edit", "message"),
    [
        (lambda text: text.replace("kind: ldap", "kind: ftp"), "kind"),
        (lambda text: text.replace("project_id", "project"), "project"),
        (lambda text: text + "log_level: chatty\n", "Unknown log level"),
        (lambda text: text + "feature_flags: [fly]\n", "feature_flags"),
        (lambda text: text + "feature_flags: [sso_login]\n", "idp_id"),
        (lambda text: text.replace("      status: userAccountControl\n", ""), "status attribute"),
        (
            lambda text: text.replace("    base_dn:", "    start_tls: true\n    base_dn:"),
            "start_tls",
        ),
    ],
)
def test_invalid_configuration_is_rejected(
    tmp_path: Path, edit: Callable[[str], str], message: str
) -> None:
    path = _write(tmp_path, edit(BASE_CONFIG))

    with pytest.raises(ConfigurationError, match=message):
        load_config(path, environ={})


def test_duplicate_source_names_are_rejected(tmp_path: Path) -> None:
    duplicate = BASE_CONFIG + BASE_CONFIG.split("sources:\n", 1)[1]

    with pytest.raises(ConfigurationError, match="duplicate source names: directory"):
        load_config(_write(tmp_path, duplicate), environ={})


@pytest.mark.parametrize("text", ["- just\n- a list\n", "provider: [unclosed\n"])
def test_malformed_files_are_rejected(tmp_path: Path, text: str) -> None:
    with pytest.raises(ConfigurationError):
        load_config(_write(tmp_path, text), environ={})


def test_missing_file_is_a_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="Cannot read"):
        load_config(tmp_path / "absent.yaml", environ={})


def test_path_defaults_to_environment_variable(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("IDSYNC_CONFIG", str(_write(tmp_path, BASE_CONFIG)))

    assert load_config(environ={}).provider.project_id == "project-1"

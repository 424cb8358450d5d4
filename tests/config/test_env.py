from __future__ import annotations

import pytest

from idsync.config import (
    ConfigurationError,
    MissingConfigurationError,
    apply_env_overrides,
    require_env_vars,
)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_or_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.setenv("BLANK_VAR", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR", "BLANK_VAR"])

    assert "BLANK_VAR, MISSING_VAR" in str(exc.value)


def test_overrides_set_nested_keys_and_list_items() -> None:
    raw = {
        "provider": {"url": "https://zitadel.example.org"},
        "sources": [{"name": "directory", "bind_password": "from-file"}],
    }

    apply_env_overrides(
        raw,
        {
            "IDSYNC__PROVIDER__TOKEN": "pat",
            "IDSYNC__SOURCES__0__BIND_PASSWORD": "s3cret ",
            "IDSYNC__FEATURE_FLAGS": "[dry_run, verify_email]",
            "UNRELATED": "x",
        },
    )

    assert raw["provider"]["token"] == "pat"
    assert raw["sources"][0]["bind_password"] == "s3cret "
    assert raw["feature_flags"] == ["dry_run", "verify_email"]
    assert "unrelated" not in raw


def test_scalar_overrides_stay_strings() -> None:
    raw: dict[str, object] = {}

    apply_env_overrides(raw, {"IDSYNC__PROVIDER__PAGE_SIZE": "50", "IDSYNC__X": "yes"})

    assert raw == {"provider": {"page_size": "50"}, "x": "yes"}


@pytest.mark.parametrize(
    ("name", "message"),
    [
        ("IDSYNC__SOURCES__1__NAME", "past the end"),
        ("IDSYNC__SOURCES__FIRST__NAME", "list index"),
        ("IDSYNC__LOG_LEVEL__NAME", "scalar"),
        ("IDSYNC__PROVIDER____URL", "Malformed"),
    ],
)
def test_invalid_override_paths(name: str, message: str) -> None:
    raw = {"sources": [{"name": "directory"}], "log_level": "INFO", "provider": {}}

    with pytest.raises(ConfigurationError, match=message):
        apply_env_overrides(raw, {name: "value"})


def test_unparseable_collection_override() -> None:
    with pytest.raises(ConfigurationError, match="Cannot parse"):
        apply_env_overrides({}, {"IDSYNC__FEATURE_FLAGS": "[dry_run"})

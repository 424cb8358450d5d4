from __future__ import annotations

import logging

import pytest

from idsync.common.logging import configure_logging, parse_level


@pytest.mark.parametrize(
    ("value", "level"),
    [("debug", logging.DEBUG), (" INFO ", logging.INFO), ("Warning", logging.WARNING), (40, 40)],
)
def test_parse_level_accepts_names_and_numbers(value: str | int, level: int) -> None:
    assert parse_level(value) == level


def test_parse_level_rejects_unknown_names() -> None:
    with pytest.raises(ValueError, match="Unknown log level: chatty"):
        parse_level("chatty")


def test_configure_logging_quietens_http_and_ldap_loggers(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict[str, object]] = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    for name in ("httpx", "httpcore", "ldap3"):
        monkeypatch.setattr(logging.getLogger(name), "level", logging.NOTSET)

    configure_logging(level=logging.DEBUG, force=True)

    assert calls[0]["level"] == logging.DEBUG
    assert calls[0]["force"] is True
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("ldap3").level == logging.WARNING

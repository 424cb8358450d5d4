"""Decode an account status bitmask into an enabled flag."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .errors import MalformedStatus

if TYPE_CHECKING:
    from collections.abc import Iterable


def status_as_int(value: str | bytes, *, binary: bool = False) -> int:
    """Interpret a raw status value as an integer bitmask.

    Binary values must be exactly four bytes (big-endian, signed); text values are
    base-10 integers, optionally surrounded by whitespace.
    """

    if binary:
        raw = value.encode("utf-8") if isinstance(value, str) else value
        if len(raw) != 4:  # noqa: PLR2004
            raise MalformedStatus(f"expected 4 bytes for a binary status, got {len(raw)}")
        return int.from_bytes(raw, byteorder="big", signed=True)

    if isinstance(value, bytes):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedStatus("status is not valid UTF-8") from exc
    try:
        return int(value.strip(), 10)
    except ValueError as exc:
        raise MalformedStatus(f"status `{value}` is not an integer") from exc


def decode_status(
    value: str | bytes | None,
    disable_bitmasks: Iterable[int],
    *,
    binary: bool = False,
) -> bool:
    """Return whether the account is enabled.

    A missing status means enabled; otherwise the account is disabled as soon as
    one configured mask shares a bit with the status.
    """

    if value is None:
        return True
    status = status_as_int(value, binary=binary)
    return not any(status & mask for mask in disable_bitmasks)

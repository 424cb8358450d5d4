from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from idsync.adapters.csvfile import CsvSource, CsvSourceError
from idsync.config.sources import CsvSourceConfig
from idsync.domain.model import UserField
from idsync.domain.reconciliation import AttributeMapping, AttributeMappings, canonicalize

if TYPE_CHECKING:
    from pathlib import Path

MAPPINGS = AttributeMappings(
    external_id=AttributeMapping("email"),
    fields={
        UserField.EMAIL: AttributeMapping("email"),
        UserField.FIRST_NAME: AttributeMapping("first_name"),
        UserField.LAST_NAME: AttributeMapping("last_name"),
    },
)


def _source(path: Path, **overrides: str) -> CsvSource:
    return CsvSource(CsvSourceConfig(name="hr", mappings=MAPPINGS, path=path, **overrides))


def test_rows_become_records_with_verbatim_cells(tmp_path: Path) -> None:
    extract = tmp_path / "staff.csv"
    extract.write_text(
        "email, first_name,last_name\n"
        "jdoe@example.org,Jane ,Doe\n"
        "rroe@example.org,,Roe\n",
        encoding="utf-8",
    )

    records = _source(extract).fetch_all()

    assert [record.identifier for record in records] == ["staff.csv:2", "staff.csv:3"]
    assert records[0].values("first_name") == ("Jane ",)
    assert records[1].values("first_name") == ()
    user = canonicalize(records[0], MAPPINGS)
    assert user.text(UserField.DISPLAY_NAME) == "Doe, Jane "


def test_custom_delimiter_and_encoding(tmp_path: Path) -> None:
    extract = tmp_path / "staff.csv"
    extract.write_bytes("email;last_name\njm@example.org;M\xfcller\n".encode("latin-1"))

    (record,) = _source(extract, delimiter=";", encoding="latin-1").fetch_all()

    assert record.values("last_name") == ("Müller",)


def test_surplus_cells_are_dropped(tmp_path: Path) -> None:
    extract = tmp_path / "staff.csv"
    extract.write_text("email\njdoe@example.org,extra\n", encoding="utf-8")

    (record,) = _source(extract).fetch_all()

    assert dict(record.attributes) == {"email": ("jdoe@example.org",)}


def test_missing_file_raises_source_error(tmp_path: Path) -> None:
    with pytest.raises(CsvSourceError, match="Cannot read"):
        _source(tmp_path / "missing.csv").fetch_all()


def test_undecodable_file_raises_source_error(tmp_path: Path) -> None:
    extract = tmp_path / "staff.csv"
    extract.write_bytes(b"email\n\xff\xfe@example.org\n")

    with pytest.raises(CsvSourceError):
        _source(extract).fetch_all()

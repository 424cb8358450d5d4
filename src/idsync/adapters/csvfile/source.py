"""CSV extract source adapter.

The header row names the attributes; every following row is one record. Empty
cells count as absent values. Cell contents are kept verbatim.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from idsync.domain.model import RawRecord

if TYPE_CHECKING:
    from collections.abc import Mapping

    from idsync.config.sources import CsvSourceConfig

log = getLogger(__name__)


class CsvSourceError(RuntimeError):
    """Raised when the extract cannot be read or parsed."""


def to_raw_record(source: str, identifier: str, row: Mapping[str | None, object]) -> RawRecord:
    attributes: dict[str, tuple[str, ...]] = {}
    for name, value in row.items():
        # Surplus cells of over-long rows land under ``None``.
        if name is None or not isinstance(value, str) or value == "":
            continue
        attributes[name.strip()] = (value,)
    return RawRecord(source=source, identifier=identifier, attributes=attributes)


@dataclass(slots=True)
class CsvSource:
    config: CsvSourceConfig

    @property
    def name(self) -> str:
        return self.config.name

    def fetch_all(self) -> list[RawRecord]:
        path = self.config.path
        records: list[RawRecord] = []
        try:
            with path.open(newline="", encoding=self.config.encoding) as handle:
                reader = csv.DictReader(handle, delimiter=self.config.delimiter)
                for row in reader:
                    identifier = f"{path.name}:{reader.line_num}"
                    records.append(to_raw_record(self.name, identifier, row))
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            raise CsvSourceError(f"Cannot read {path}: {exc}") from exc

        log.info("Read %d row(s) from %s", len(records), path)
        return records

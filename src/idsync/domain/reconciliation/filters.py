"""Scope filter deciding which raw records take part in a run."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from idsync.domain.model import RawRecord


@dataclass(frozen=True, slots=True)
class RecordFilter:
    """Attribute name -> glob patterns.

    A record is in scope when every listed attribute has at least one value matching
    one of its patterns. Out-of-scope records are ignored, never disabled.
    """

    rules: Mapping[str, tuple[str, ...]] = field(default_factory=dict[str, tuple[str, ...]])

    def __bool__(self) -> bool:
        return bool(self.rules)

    def matches(self, record: RawRecord) -> bool:
        for attribute, patterns in self.rules.items():
            values = [_as_text(value) for value in record.values(attribute)]
            if not any(
                fnmatchcase(value, pattern)
                for value in values
                if value is not None
                for pattern in patterns
            ):
                return False
        return True

    def select(self, records: Iterable[RawRecord]) -> list[RawRecord]:
        return [record for record in records if self.matches(record)]

    def partition(self, records: Iterable[RawRecord]) -> tuple[list[RawRecord], list[RawRecord]]:
        """Split ``records`` into (in scope, out of scope), keeping their order."""

        selected: list[RawRecord] = []
        excluded: list[RawRecord] = []
        for record in records:
            (selected if self.matches(record) else excluded).append(record)
        return selected, excluded


def _as_text(value: str | bytes) -> str | None:
    if isinstance(value, str):
        return value
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return None

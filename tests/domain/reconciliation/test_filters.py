from __future__ import annotations

from idsync.domain.model import RawRecord
from idsync.domain.reconciliation import RecordFilter


def _record(**attributes: tuple[str | bytes, ...]) -> RawRecord:
    return RawRecord(source="ldap", identifier="x", attributes=attributes)


def test_empty_filter_is_falsy_and_matches_everything() -> None:
    record_filter = RecordFilter()

    assert not record_filter
    assert record_filter.matches(_record())


def test_every_listed_attribute_needs_a_matching_value() -> None:
    record_filter = RecordFilter({"department": ("Eng*",), "o": ("ACME",)})

    assert record_filter.matches(_record(department=("Engineering",), o=("ACME",)))
    assert not record_filter.matches(_record(department=("Engineering",), o=("Other",)))
    assert not record_filter.matches(_record(department=("Engineering",)))


def test_any_value_of_a_multi_valued_attribute_may_match() -> None:
    record_filter = RecordFilter({"memberOf": ("cn=sync,*",)})

    record = _record(memberOf=(b"cn=admins,dc=example", b"cn=sync,dc=example"))

    assert record_filter.matches(record)


def test_patterns_are_case_sensitive() -> None:
    record_filter = RecordFilter({"department": ("eng*",)})

    assert not record_filter.matches(_record(department=("Engineering",)))


def test_undecodable_bytes_never_match() -> None:
    record_filter = RecordFilter({"department": ("*",)})

    assert not record_filter.matches(_record(department=(b"\xff\xfe",)))


def test_partition_keeps_order_on_both_sides() -> None:
    record_filter = RecordFilter({"o": ("ACME",)})
    records = [
        RawRecord(source="ldap", identifier=str(index), attributes={"o": (org,)})
        for index, org in enumerate(["ACME", "Other", "ACME", "Other"])
    ]

    selected, excluded = record_filter.partition(records)

    assert [record.identifier for record in selected] == ["0", "2"]
    assert [record.identifier for record in excluded] == ["1", "3"]
    assert record_filter.select(records) == selected

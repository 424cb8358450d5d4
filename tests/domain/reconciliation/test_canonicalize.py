from __future__ import annotations

import pytest

from idsync.domain.model import AttributeValue, RawRecord, UserField, derive_localpart
from idsync.domain.reconciliation import (
    AttributeMapping,
    AttributeMappings,
    ExternalIdCollision,
    MalformedAttribute,
    MissingRequiredField,
    MultiValueUnsupported,
    canonicalize,
    canonicalize_all,
)
from tests.helpers.users import directory_mappings, make_record, with_attributes


def test_maps_attributes_and_derives_display_name_and_localpart(
    mappings: AttributeMappings,
) -> None:
    record = make_record("jdoe", givenName="Jane", sn="Doe", telephoneNumber="+49 30 1")

    user = canonicalize(record, mappings)

    assert user.key == "jdoe"
    assert user.enabled is True
    assert user.text(UserField.EMAIL) == "jdoe@example.org"
    assert user.text(UserField.DISPLAY_NAME) == "Doe, Jane"
    assert user.text(UserField.LOCALPART) == derive_localpart(AttributeValue.of("jdoe"))
    assert user.text(UserField.PREFERRED_USERNAME) == "jdoe"
    assert user.source == "directory"
    assert user.managed_fields >= {UserField.DISPLAY_NAME, UserField.LOCALPART}


def test_mapped_display_name_wins_over_derivation() -> None:
    mappings = AttributeMappings(
        external_id=AttributeMapping("uid"),
        fields={
            UserField.FIRST_NAME: AttributeMapping("givenName"),
            UserField.LAST_NAME: AttributeMapping("sn"),
            UserField.DISPLAY_NAME: AttributeMapping("displayName"),
        },
    )

    user = canonicalize(make_record("jdoe", displayName="J. Doe"), mappings)

    assert user.text(UserField.DISPLAY_NAME) == "J. Doe"


def test_display_name_needs_both_names(mappings: AttributeMappings) -> None:
    user = canonicalize(with_attributes(make_record("jdoe"), sn=None), mappings)

    assert user.display_name is None
    assert UserField.DISPLAY_NAME not in user.managed_fields


def test_disabled_by_status_bitmask(mappings: AttributeMappings) -> None:
    assert canonicalize(make_record("jdoe", status=514), mappings).enabled is False
    assert canonicalize(make_record("jdoe", status=None), mappings).enabled is True


def test_multi_valued_mapped_attribute_is_rejected(mappings: AttributeMappings) -> None:
    record = with_attributes(make_record("jdoe"), mail=("a@example.org", "b@example.org"))

    with pytest.raises(MultiValueUnsupported) as excinfo:
        canonicalize(record, mappings)

    assert excinfo.value.attribute == "mail"
    assert excinfo.value.external_id == "jdoe"


def test_missing_required_attribute_is_rejected(mappings: AttributeMappings) -> None:
    record = with_attributes(make_record("jdoe"), mail=None)

    with pytest.raises(MissingRequiredField):
        canonicalize(record, mappings)


def test_missing_external_id_carries_no_join_key(mappings: AttributeMappings) -> None:
    record = RawRecord(source="directory", identifier="cn=x", attributes={"mail": ("x@y",)})

    with pytest.raises(MissingRequiredField) as excinfo:
        canonicalize(record, mappings)

    assert excinfo.value.external_id is None


def test_non_utf8_text_attribute_is_malformed(mappings: AttributeMappings) -> None:
    record = make_record("jdoe", sn=(b"\xffDoe",))

    with pytest.raises(MalformedAttribute):
        canonicalize(record, mappings)


def test_binary_external_id_is_kept_byte_exact() -> None:
    guid = b"\x10\x00\xff\xfe"
    mappings = AttributeMappings(external_id=AttributeMapping("objectGUID", binary=True))
    record = RawRecord(source="ad", identifier="cn=a", attributes={"objectGUID": (guid,)})

    user = canonicalize(record, mappings)

    assert user.external_id.raw == guid
    assert user.key == "EAD//g=="


def test_malformed_status_is_rejected(mappings: AttributeMappings) -> None:
    with pytest.raises(MalformedAttribute):
        canonicalize(make_record("jdoe", userAccountControl="enabled"), mappings)


def test_first_record_claiming_an_external_id_wins() -> None:
    first = make_record("jdoe", source="hr")
    second = make_record("jdoe", source="directory", mail="other@example.org")

    result = canonicalize_all(
        [([first], directory_mappings()), ([second], directory_mappings())]
    )

    assert [user.source for user in result.users] == ["hr"]
    assert len(result.errors) == 1
    assert isinstance(result.errors[0], ExternalIdCollision)
    assert result.ignored_ids == {"jdoe"}


def test_rejections_and_out_of_scope_records_mark_ids_ignored(
    mappings: AttributeMappings,
) -> None:
    bad = with_attributes(make_record("broken"), mail=("a@x", "b@x"))
    good = make_record("ok")
    excluded = make_record("elsewhere")

    result = canonicalize_all([([bad, good], mappings)], out_of_scope=[([excluded], mappings)])

    assert [user.key for user in result.users] == ["ok"]
    assert result.ignored_ids == {"broken", "elsewhere"}

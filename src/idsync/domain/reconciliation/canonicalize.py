"""Turn raw source records into canonical users."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from idsync.domain.model import AttributeValue, CanonicalUser, UserField, derive_localpart

from .errors import (
    CanonicalizationError,
    ExternalIdCollision,
    MalformedAttribute,
    MalformedStatus,
    MissingRequiredField,
    MultiValueUnsupported,
)
from .status import decode_status

if TYPE_CHECKING:
    from collections.abc import Iterable

    from idsync.domain.model import RawRecord

    from .mapping import AttributeMapping, AttributeMappings

log = getLogger(__name__)


@dataclass(slots=True)
class CanonicalizationResult:
    users: list[CanonicalUser] = field(default_factory=list["CanonicalUser"])
    errors: list[CanonicalizationError] = field(default_factory=list["CanonicalizationError"])
    ignored_ids: set[str] = field(default_factory=set[str])


def _single_value(
    record: RawRecord,
    mapping: AttributeMapping,
) -> str | bytes | None:
    values = record.values(mapping.name)
    if len(values) > 1:
        raise MultiValueUnsupported(
            mapping.name, source=record.source, identifier=record.identifier
        )
    if not values:
        if mapping.required:
            raise MissingRequiredField(
                mapping.name, source=record.source, identifier=record.identifier
            )
        return None
    return values[0]


def _read_value(record: RawRecord, mapping: AttributeMapping) -> AttributeValue | None:
    value = _single_value(record, mapping)
    if value is None:
        return None
    if mapping.binary:
        return AttributeValue.of(value, binary=True)
    if isinstance(value, bytes):
        try:
            value.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedAttribute(
                mapping.name,
                "not valid UTF-8 (map it as binary?)",
                source=record.source,
                identifier=record.identifier,
            ) from exc
    return AttributeValue.of(value)


def _read_external_id(record: RawRecord, mappings: AttributeMappings) -> AttributeValue:
    mapping = mappings.external_id
    external_id = _read_value(record, mapping)
    if external_id is None or not external_id.raw:
        raise MissingRequiredField(mapping.name, source=record.source, identifier=record.identifier)
    return external_id


def peek_external_id(record: RawRecord, mappings: AttributeMappings) -> str | None:
    """Best-effort join key of a record that will not be canonicalized."""

    try:
        return _read_external_id(record, mappings).text
    except CanonicalizationError:
        return None


def canonicalize(record: RawRecord, mappings: AttributeMappings) -> CanonicalUser:
    """Map one raw record onto a canonical user or raise ``CanonicalizationError``."""

    external_id = _read_external_id(record, mappings)
    try:
        return _build_user(record, mappings, external_id)
    except CanonicalizationError as exc:
        exc.external_id = external_id.text
        raise


def _build_user(
    record: RawRecord,
    mappings: AttributeMappings,
    external_id: AttributeValue,
) -> CanonicalUser:
    values: dict[UserField, AttributeValue | None] = {
        name: _read_value(record, mapping) for name, mapping in mappings.fields.items()
    }
    managed = set(mappings.fields)

    if UserField.DISPLAY_NAME not in mappings.fields:
        first, last = values.get(UserField.FIRST_NAME), values.get(UserField.LAST_NAME)
        if first is not None and last is not None:
            values[UserField.DISPLAY_NAME] = AttributeValue.of(f"{last.text}, {first.text}")
            managed.add(UserField.DISPLAY_NAME)

    if UserField.LOCALPART not in mappings.fields:
        values[UserField.LOCALPART] = AttributeValue.of(derive_localpart(external_id))
        managed.add(UserField.LOCALPART)

    enabled = True
    if mappings.status is not None:
        status_value = _single_value(record, mappings.status)
        try:
            enabled = decode_status(
                status_value,
                mappings.disable_bitmasks,
                binary=mappings.status.binary,
            )
        except MalformedStatus as exc:
            raise MalformedAttribute(
                mappings.status.name,
                str(exc),
                source=record.source,
                identifier=record.identifier,
            ) from exc

    return CanonicalUser(
        external_id=external_id,
        enabled=enabled,
        managed_fields=frozenset(managed),
        source=record.source,
        **{name.value: value for name, value in values.items()},
    )


def canonicalize_all(
    batches: Iterable[tuple[Iterable[RawRecord], AttributeMappings]],
    *,
    out_of_scope: Iterable[tuple[Iterable[RawRecord], AttributeMappings]] = (),
) -> CanonicalizationResult:
    """Canonicalize every record, collecting per-record errors instead of raising.

    The first record claiming an external id wins; later ones are rejected as
    collisions rather than merged. Rejected and ``out_of_scope`` records contribute
    their external id (where readable) to ``ignored_ids``.
    """

    result = CanonicalizationResult()
    seen: dict[str, RawRecord] = {}
    for records, mappings in batches:
        for record in records:
            try:
                user = canonicalize(record, mappings)
                first = seen.get(user.key)
                if first is not None:
                    raise ExternalIdCollision(  # noqa: TRY301
                        user.key,
                        first_seen=f"{first.source}:{first.identifier}",
                        source=record.source,
                        identifier=record.identifier,
                    )
            except CanonicalizationError as exc:
                log.warning("Rejecting record %s", exc)
                result.errors.append(exc)
                if exc.external_id is not None:
                    result.ignored_ids.add(exc.external_id)
                continue
            seen[user.key] = record
            result.users.append(user)

    for records, mappings in out_of_scope:
        for record in records:
            external_id = peek_external_id(record, mappings)
            if external_id is not None:
                result.ignored_ids.add(external_id)
    return result

"""Attribute mapping from source attribute names onto canonical fields."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from idsync.domain.model import UserField


@dataclass(frozen=True, slots=True)
class AttributeMapping:
    """Where to read one canonical field from.

    ``binary`` keeps the raw bytes instead of requiring UTF-8 text (for example
    ``objectGUID`` in Active Directory).
    """

    name: str
    binary: bool = False
    required: bool = False

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class AttributeMappings:
    external_id: AttributeMapping
    fields: Mapping[UserField, AttributeMapping] = field(
        default_factory=dict["UserField", AttributeMapping]
    )
    # Expects an integer bitmask, like ``userAccountControl`` in AD.
    status: AttributeMapping | None = None
    # A status sharing any bit with one of these marks the account disabled
    # (for example ACCOUNTDISABLE = 2).
    disable_bitmasks: frozenset[int] = frozenset()

    def attribute_names(self) -> tuple[str, ...]:
        names = [self.external_id.name, *(mapping.name for mapping in self.fields.values())]
        if self.status is not None:
            names.append(self.status.name)
        return tuple(dict.fromkeys(names))

"""User representations on both sides of a reconciliation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID, uuid5

from idsync.domain.model.enums import UserField

if TYPE_CHECKING:
    from idsync.domain.model.values import AttributeValue

# Namespace for localparts derived from external ids. Changing it re-keys every account.
LOCALPART_NAMESPACE = UUID("d9979cff-abee-4666-bc88-1ec45a843fb8")


def derive_localpart(external_id: AttributeValue) -> str:
    return str(uuid5(LOCALPART_NAMESPACE, external_id.raw))


@dataclass(frozen=True, slots=True)
class RawRecord:
    """One record as a source adapter hands it over, before canonicalization."""

    source: str
    identifier: str
    attributes: Mapping[str, tuple[str | bytes, ...]]

    def values(self, name: str) -> tuple[str | bytes, ...]:
        """Return all values of ``name``; attribute names match case-insensitively."""

        if name in self.attributes:
            return self.attributes[name]
        folded = name.casefold()
        for key, values in self.attributes.items():
            if key.casefold() == folded:
                return values
        return ()


@dataclass(frozen=True, slots=True, kw_only=True)
class CanonicalUser:
    """Source-independent view of one identity.

    ``external_id`` is the join key across runs and must never change for the
    lifetime of an account: a changed id is indistinguishable from delete+create.
    """

    external_id: AttributeValue
    enabled: bool = True
    email: AttributeValue | None = None
    phone: AttributeValue | None = None
    first_name: AttributeValue | None = None
    last_name: AttributeValue | None = None
    display_name: AttributeValue | None = None
    preferred_username: AttributeValue | None = None
    localpart: AttributeValue | None = None

    managed_fields: frozenset[UserField] = field(default_factory=frozenset["UserField"])
    source: str | None = field(default=None, compare=False)

    @property
    def key(self) -> str:
        return self.external_id.text

    def get(self, name: UserField) -> AttributeValue | None:
        return getattr(self, name.value)

    def text(self, name: UserField) -> str | None:
        value = self.get(name)
        return value.text if value is not None else None

    @property
    def login_name(self) -> str:
        for candidate in (self.email, self.preferred_username):
            if candidate is not None:
                return candidate.text
        return self.key

    def __str__(self) -> str:
        return f"external_id={self.key}"


@dataclass(frozen=True, slots=True, kw_only=True)
class ProviderUser:
    """The identity provider's current view of an account.

    ``external_id`` is ``None`` for accounts this tool never created; they are
    left alone.
    """

    provider_user_id: str
    external_id: str | None
    enabled: bool = True
    email: str | None = None
    phone: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    display_name: str | None = None
    preferred_username: str | None = None
    localpart: str | None = None
    granted: bool = True
    # Only looked up when an identity provider is configured.
    sso_linked: bool = False
    sso_marked: bool = False

    def get(self, name: UserField) -> str | None:
        return getattr(self, name.value)

"""Public domain model surface."""

from __future__ import annotations

from idsync.domain.model.enums import (
    CONTACT_FIELDS,
    METADATA_FIELDS,
    FeatureFlag,
    SourceKind,
    UserField,
)
from idsync.domain.model.user import (
    LOCALPART_NAMESPACE,
    CanonicalUser,
    ProviderUser,
    RawRecord,
    derive_localpart,
)
from idsync.domain.model.values import AttributeValue

__all__ = [
    "CONTACT_FIELDS",
    "LOCALPART_NAMESPACE",
    "METADATA_FIELDS",
    "AttributeValue",
    "CanonicalUser",
    "FeatureFlag",
    "ProviderUser",
    "RawRecord",
    "SourceKind",
    "UserField",
    "derive_localpart",
]

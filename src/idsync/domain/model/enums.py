"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class UserField(StrEnum):
    """Single-valued canonical fields a source attribute can be mapped onto."""

    EMAIL = "email"
    PHONE = "phone"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    DISPLAY_NAME = "display_name"
    PREFERRED_USERNAME = "preferred_username"
    LOCALPART = "localpart"


# Fields stored as provider metadata rather than on the profile/contact records.
METADATA_FIELDS: frozenset[UserField] = frozenset(
    {UserField.PREFERRED_USERNAME, UserField.LOCALPART}
)
CONTACT_FIELDS: frozenset[UserField] = frozenset({UserField.EMAIL, UserField.PHONE})


class FeatureFlag(StrEnum):
    """Process-wide opt-in behaviour toggles."""

    VERIFY_EMAIL = "verify_email"
    VERIFY_PHONE = "verify_phone"
    SSO_LOGIN = "sso_login"
    ATTRIBUTE_FILTERS = "attribute_filters"
    DRY_RUN = "dry_run"
    DEACTIVATE_ONLY = "deactivate_only"


class SourceKind(StrEnum):
    LDAP = "ldap"
    CSV = "csv"
    ENDPOINT = "endpoint"

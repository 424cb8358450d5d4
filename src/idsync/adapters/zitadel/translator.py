"""Translate between canonical users and Zitadel management API payloads.

The external id lives in the profile nick name, so listing the population needs
no per-user lookups to find out which accounts this tool manages. Metadata
values travel base64-encoded in both directions.
"""

from __future__ import annotations

import base64
import binascii
from typing import TYPE_CHECKING

from idsync.domain.model import ProviderUser, UserField

if TYPE_CHECKING:
    from collections.abc import Mapping

    from idsync.domain.model import CanonicalUser

    from .schema import UserPayload


def encode_metadata_value(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def decode_metadata_value(value: str) -> str:
    try:
        raw = base64.b64decode(value, validate=True)
    except binascii.Error:
        return value
    return raw.decode("utf-8", errors="surrogateescape")


def to_provider_user(
    payload: UserPayload,
    *,
    metadata: Mapping[str, str],
    granted: bool,
    sso_linked: bool = False,
    sso_marked: bool = False,
) -> ProviderUser:
    """Build the provider-side view of one human account.

    ``metadata`` maps keys to already decoded values.
    """

    human = payload.human
    if human is None:
        return ProviderUser(
            provider_user_id=payload.id,
            external_id=None,
            enabled=payload.enabled,
            granted=granted,
        )
    return ProviderUser(
        provider_user_id=payload.id,
        external_id=payload.external_id,
        enabled=payload.enabled,
        email=human.email.email,
        phone=human.phone.phone,
        first_name=human.profile.first_name,
        last_name=human.profile.last_name,
        display_name=human.profile.display_name,
        preferred_username=metadata.get(UserField.PREFERRED_USERNAME.value),
        localpart=metadata.get(UserField.LOCALPART.value),
        granted=granted,
        sso_linked=sso_linked,
        sso_marked=sso_marked,
    )


def profile_request(user: CanonicalUser) -> dict[str, object]:
    # The nick name carries the external id and must survive every profile update.
    return {
        "firstName": user.text(UserField.FIRST_NAME) or "",
        "lastName": user.text(UserField.LAST_NAME) or "",
        "displayName": user.text(UserField.DISPLAY_NAME) or "",
        "nickName": user.key,
    }


def email_request(user: CanonicalUser, *, reverify: bool) -> dict[str, object]:
    return {
        "email": user.text(UserField.EMAIL) or "",
        "isEmailVerified": not reverify,
    }


def phone_request(user: CanonicalUser, *, reverify: bool) -> dict[str, object]:
    return {
        "phone": user.text(UserField.PHONE) or "",
        "isPhoneVerified": not reverify,
    }


def import_request(
    user: CanonicalUser,
    *,
    reverify: frozenset[UserField],
    idp_id: str | None = None,
) -> dict[str, object]:
    """Body of ``POST /management/v1/users/human/_import`` for a new account.

    With ``idp_id`` the account is linked to that identity provider on creation,
    keyed by the external id.
    """

    body: dict[str, object] = {
        "userName": user.login_name,
        "profile": profile_request(user),
        "requestPasswordlessRegistration": True,
    }
    if user.email is not None:
        body["email"] = email_request(user, reverify=UserField.EMAIL in reverify)
    if user.phone is not None:
        body["phone"] = phone_request(user, reverify=UserField.PHONE in reverify)
    if idp_id is not None:
        body["idps"] = [
            {
                "configId": idp_id,
                "externalUserId": user.key,
                "displayName": user.text(UserField.DISPLAY_NAME) or user.login_name,
            }
        ]
    return body



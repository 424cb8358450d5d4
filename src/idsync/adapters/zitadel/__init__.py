"""Public interface for the Zitadel provider adapter."""

from __future__ import annotations

from .client import ZitadelClient, raise_for_status
from .schema import UserPayload, UserSearchResponse
from .translator import import_request, to_provider_user

__all__ = [
    "UserPayload",
    "UserSearchResponse",
    "ZitadelClient",
    "import_request",
    "raise_for_status",
    "to_provider_user",
]

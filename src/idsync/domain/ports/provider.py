"""Port for the identity provider that receives the synced population."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from idsync.domain.model import CanonicalUser, ProviderUser, UserField


class ProviderError(RuntimeError):
    """Base class for failures raised through the provider port."""


class ProviderTimeoutError(ProviderError):
    """A provider call did not complete within its timeout."""


class ProviderUnavailableError(ProviderError):
    """The provider could not be reached or answered with a server error."""


class ProviderAuthError(ProviderError):
    """The provider rejected our credentials."""


class ProviderValidationError(ProviderError):
    """The provider rejected the request content."""


class ProviderNotFoundError(ProviderValidationError):
    """The addressed account or resource does not exist."""


class ProviderConflictError(ProviderError):
    """The request collides with existing provider state (for example a taken login name)."""


@runtime_checkable
class IdentityProvider(Protocol):
    """CRUD-ish view of the provider's users, grants and metadata.

    Every method is an independent remote call that may fail on its own; the
    provider offers no transaction spanning several of them.
    """

    def list_users(self) -> Sequence[ProviderUser]: ...

    def create_user(
        self,
        user: CanonicalUser,
        *,
        reverify: frozenset[UserField],
        sso_link: bool = False,
    ) -> str:
        """Create the base account, linked to the identity provider when ``sso_link`` is set."""
        ...

    def update_user(
        self,
        provider_user_id: str,
        user: CanonicalUser,
        changed_fields: frozenset[UserField],
        *,
        reverify: frozenset[UserField],
    ) -> None: ...

    def disable_user(self, provider_user_id: str) -> None: ...

    def enable_user(self, provider_user_id: str) -> None: ...

    def set_metadata(self, provider_user_id: str, key: str, value: str) -> None: ...

    def remove_metadata(self, provider_user_id: str, key: str) -> None: ...

    def add_grant(self, provider_user_id: str) -> None: ...

    def mark_sso_linked(self, provider_user_id: str, user: CanonicalUser) -> None:
        """Record on a linked account that SSO login is enforced for it."""
        ...


__all__ = [
    "IdentityProvider",
    "ProviderAuthError",
    "ProviderConflictError",
    "ProviderError",
    "ProviderNotFoundError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "ProviderValidationError",
]

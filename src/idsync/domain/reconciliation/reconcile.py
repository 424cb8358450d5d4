"""Classify every user into an action by diffing two full populations."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from idsync.domain.model import AttributeValue

from .plan import Create, Disable, DisableReason, NoOp, Update

if TYPE_CHECKING:
    from collections.abc import Iterable

    from idsync.domain.model import CanonicalUser, ProviderUser, UserField

    from .plan import Action

log = getLogger(__name__)


def changed_fields(user: CanonicalUser, current: ProviderUser) -> frozenset[UserField]:
    """Managed fields whose bytes differ between the source and the provider."""

    changed: set[UserField] = set()
    for name in user.managed_fields:
        wanted = user.get(name)
        stored = current.get(name)
        if wanted is None or stored is None:
            if (wanted is None) != (stored is None):
                changed.add(name)
            continue
        if AttributeValue.from_wire(stored, binary=wanted.binary) != wanted:
            changed.add(name)
    return frozenset(changed)


def _index_provider_users(provider_users: Iterable[ProviderUser]) -> dict[str, ProviderUser]:
    indexed: dict[str, ProviderUser] = {}
    for account in provider_users:
        if account.external_id is None:
            continue
        existing = indexed.get(account.external_id)
        if existing is not None:
            log.warning(
                "Provider accounts %s and %s share external id %s; using %s",
                existing.provider_user_id,
                account.provider_user_id,
                account.external_id,
                existing.provider_user_id,
            )
            continue
        indexed[account.external_id] = account
    return indexed


def classify(
    user: CanonicalUser,
    current: ProviderUser | None,
    *,
    enforce_sso: bool = False,
) -> Action:
    """Decide the action for one external id present in the source."""

    if current is None:
        if user.enabled:
            return Create(user=user)
        return NoOp(external_id=user.key)

    if not user.enabled:
        if current.enabled:
            return Disable(
                provider_user_id=current.provider_user_id,
                external_id=user.key,
                reason=DisableReason.SOURCE_DISABLED,
            )
        return NoOp(external_id=user.key, provider_user_id=current.provider_user_id)

    changes = changed_fields(user, current)
    reactivate = not current.enabled
    restore_grant = not current.granted
    # Accounts created before SSO was enforced stay unlinked and unmarked.
    mark_sso = enforce_sso and current.sso_linked and not current.sso_marked
    if changes or reactivate or restore_grant or mark_sso:
        return Update(
            provider_user_id=current.provider_user_id,
            user=user,
            changed_fields=changes,
            reactivate=reactivate,
            restore_grant=restore_grant,
            mark_sso=mark_sso,
        )
    return NoOp(external_id=user.key, provider_user_id=current.provider_user_id)


def reconcile(
    canonical_users: Iterable[CanonicalUser],
    provider_users: Iterable[ProviderUser],
    *,
    ignored_ids: frozenset[str] = frozenset(),
    enforce_sso: bool = False,
) -> list[Action]:
    """Return one action per external id seen on either side.

    Source users come first in source order, followed by provider-only accounts in
    provider order. Accounts without an external id are not ours and are skipped.
    ``ignored_ids`` are ids the source still holds but which were rejected or filtered
    out this run; their accounts are left untouched instead of being disabled.
    With ``enforce_sso`` a linked account that lacks its SSO marker gets it through
    an ``Update``.
    """

    remaining = _index_provider_users(provider_users)
    actions: list[Action] = []
    for user in canonical_users:
        actions.append(
            classify(user, remaining.pop(user.key, None), enforce_sso=enforce_sso)
        )

    for external_id, account in remaining.items():
        if external_id in ignored_ids:
            actions.append(
                NoOp(
                    external_id=external_id,
                    provider_user_id=account.provider_user_id,
                    ignored=True,
                )
            )
        elif account.enabled:
            actions.append(
                Disable(
                    provider_user_id=account.provider_user_id,
                    external_id=external_id,
                    reason=DisableReason.REMOVED_FROM_SOURCE,
                )
            )
        else:
            actions.append(
                NoOp(external_id=external_id, provider_user_id=account.provider_user_id)
            )
    return actions

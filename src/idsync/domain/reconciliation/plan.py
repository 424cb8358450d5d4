"""Action types shared by the reconciler and the executor.

One action per external id and run. Actions are ephemeral: produced and consumed
within a single run and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from idsync.domain.model import CanonicalUser, UserField


class ActionKind(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DISABLE = "disable"
    NOOP = "noop"


class DisableReason(StrEnum):
    SOURCE_DISABLED = "source_disabled"
    REMOVED_FROM_SOURCE = "removed_from_source"


@dataclass(frozen=True, slots=True, kw_only=True)
class Create:
    user: CanonicalUser
    kind: Literal[ActionKind.CREATE] = ActionKind.CREATE

    @property
    def external_id(self) -> str:
        return self.user.key


@dataclass(frozen=True, slots=True, kw_only=True)
class Update:
    """Bring an existing account in line, touching only what changed."""

    provider_user_id: str
    user: CanonicalUser
    changed_fields: frozenset[UserField]
    reactivate: bool = False
    restore_grant: bool = False
    mark_sso: bool = False
    kind: Literal[ActionKind.UPDATE] = ActionKind.UPDATE

    @property
    def external_id(self) -> str:
        return self.user.key


@dataclass(frozen=True, slots=True, kw_only=True)
class Disable:
    """Deactivate an account; it is never deleted so a later re-enable can reuse it."""

    provider_user_id: str
    external_id: str
    reason: DisableReason
    kind: Literal[ActionKind.DISABLE] = ActionKind.DISABLE


@dataclass(frozen=True, slots=True, kw_only=True)
class NoOp:
    external_id: str
    provider_user_id: str | None = None
    # The source still holds this id, but its record was rejected or filtered out.
    ignored: bool = False
    kind: Literal[ActionKind.NOOP] = ActionKind.NOOP


type Action = Create | Update | Disable | NoOp


def is_mutation(action: Action) -> bool:
    return action.kind is not ActionKind.NOOP

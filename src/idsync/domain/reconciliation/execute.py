"""Apply reconciliation actions against the identity provider, one user at a time.

Each call to ``SyncExecutor.execute`` returns an ``ActionOutcome`` instead of
raising, so a failing user never stops the run. Creation spans several provider
calls without a transaction; the steps run in a fixed order so the base account is
usable even when a later step fails, and such a partial create is reported but not
rolled back. The next run finds the account and repairs whatever step is missing
through an ``Update``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from idsync.domain.model import CONTACT_FIELDS, METADATA_FIELDS, FeatureFlag, UserField
from idsync.domain.ports.provider import (
    ProviderAuthError,
    ProviderConflictError,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    ProviderValidationError,
)

from .errors import ActionExecutionError, ErrorKind
from .plan import ActionKind, Create, Disable, NoOp, Update, is_mutation
from .report import ActionOutcome

if TYPE_CHECKING:
    from idsync.domain.model import CanonicalUser
    from idsync.domain.ports.provider import IdentityProvider

    from .plan import Action

log = getLogger(__name__)

_VERIFY_FLAGS: dict[UserField, FeatureFlag] = {
    UserField.EMAIL: FeatureFlag.VERIFY_EMAIL,
    UserField.PHONE: FeatureFlag.VERIFY_PHONE,
}


class CreateStep(StrEnum):
    ACCOUNT = "account"
    LOCALPART = "localpart"
    PREFERRED_USERNAME = "preferred_username"
    GRANT = "grant"
    SSO_MARKER = "sso_marker"


def classify_provider_error(exc: ProviderError) -> ErrorKind:
    match exc:
        case ProviderTimeoutError():
            return ErrorKind.TIMEOUT
        case ProviderUnavailableError():
            return ErrorKind.NETWORK
        case ProviderAuthError():
            return ErrorKind.AUTH
        case ProviderConflictError():
            return ErrorKind.CONFLICT
        case ProviderValidationError():
            return ErrorKind.VALIDATION
        case _:
            return ErrorKind.UNKNOWN


@dataclass(slots=True)
class SyncExecutor:
    provider: IdentityProvider
    features: frozenset[FeatureFlag] = frozenset()

    def execute(self, action: Action) -> ActionOutcome:
        """Run one action and report its outcome; never raises for per-user failures."""

        external_id = action.external_id
        skip_reason = self._skip_reason(action)
        if skip_reason is not None:
            log.info("Skipping %s of %s: %s", action.kind, external_id, skip_reason)
            return ActionOutcome.skipped(external_id, action.kind, skip_reason)

        try:
            match action:
                case Create():
                    self._create(action)
                case Update():
                    self._update(action)
                case Disable():
                    self._disable(action)
                case NoOp():
                    pass
        except ActionExecutionError as exc:
            return self._failed(action, exc)
        except ProviderError as exc:
            return self._failed(
                action,
                ActionExecutionError(str(exc), kind=classify_provider_error(exc)),
            )
        except Exception as exc:  # noqa: BLE001
            log.exception("Unexpected error during %s of %s", action.kind, external_id)
            return self._failed(action, ActionExecutionError(repr(exc), kind=ErrorKind.UNKNOWN))

        if is_mutation(action):
            log.info("Finished %s of %s", action.kind, external_id)
        return ActionOutcome.succeeded(external_id, action.kind)

    def _skip_reason(self, action: Action) -> str | None:
        if not is_mutation(action):
            return None
        if FeatureFlag.DRY_RUN in self.features:
            return "dry run"
        if FeatureFlag.DEACTIVATE_ONLY in self.features and action.kind in {
            ActionKind.CREATE,
            ActionKind.UPDATE,
        }:
            return "deactivate only"
        return None

    def _failed(self, action: Action, error: ActionExecutionError) -> ActionOutcome:
        log.error("Failed to %s user %s: %s", action.kind, action.external_id, error)
        return ActionOutcome.failed(action.external_id, action.kind, error)

    def _reverify(self, fields: frozenset[UserField]) -> frozenset[UserField]:
        """Contact fields whose change must go through the provider's verification flow."""

        return frozenset(
            name
            for name in fields & CONTACT_FIELDS
            if _VERIFY_FLAGS[name] in self.features
        )

    def _create(self, action: Create) -> None:
        user = action.user
        try:
            provider_user_id = self.provider.create_user(
                user,
                reverify=self._reverify(CONTACT_FIELDS),
                sso_link=FeatureFlag.SSO_LOGIN in self.features,
            )
        except ProviderConflictError as exc:
            raise ActionExecutionError(
                f"account for {user.login_name} already exists under another external id "
                f"(changing the source identifier is unsupported): {exc}",
                kind=ErrorKind.CONFLICT,
            ) from exc

        completed: list[str] = [CreateStep.ACCOUNT]
        for step, call in self._create_steps(provider_user_id, user):
            try:
                call()
            except Exception as exc:
                kind = (
                    classify_provider_error(exc)
                    if isinstance(exc, ProviderError)
                    else ErrorKind.UNKNOWN
                )
                raise ActionExecutionError(
                    f"created account {provider_user_id} but step `{step}` failed ({kind}): {exc}",
                    kind=ErrorKind.PARTIAL_CREATE,
                    completed_steps=tuple(completed),
                ) from exc
            completed.append(step)

    def _create_steps(
        self,
        provider_user_id: str,
        user: CanonicalUser,
    ) -> list[tuple[CreateStep, Callable[[], None]]]:
        steps: list[tuple[CreateStep, Callable[[], None]]] = []
        for step, name in (
            (CreateStep.LOCALPART, UserField.LOCALPART),
            (CreateStep.PREFERRED_USERNAME, UserField.PREFERRED_USERNAME),
        ):
            value = user.text(name)
            if value is not None:
                steps.append(
                    (step, _bind(self.provider.set_metadata, provider_user_id, name.value, value))
                )
        steps.append((CreateStep.GRANT, _bind(self.provider.add_grant, provider_user_id)))
        if FeatureFlag.SSO_LOGIN in self.features:
            marker = _bind(self.provider.mark_sso_linked, provider_user_id, user)
            steps.append((CreateStep.SSO_MARKER, marker))
        return steps

    def _update(self, action: Update) -> None:
        provider_user_id = action.provider_user_id
        user = action.user

        if action.reactivate:
            self.provider.enable_user(provider_user_id)

        profile_changes = action.changed_fields - METADATA_FIELDS
        if profile_changes:
            if UserField.EMAIL in profile_changes:
                log.info(
                    "Email of %s changes to %s; the provider login name follows it",
                    user,
                    user.text(UserField.EMAIL),
                )
            self.provider.update_user(
                provider_user_id,
                user,
                profile_changes,
                reverify=self._reverify(profile_changes),
            )

        for name in sorted(action.changed_fields & METADATA_FIELDS):
            value = user.text(name)
            if value is None:
                self.provider.remove_metadata(provider_user_id, name.value)
            else:
                self.provider.set_metadata(provider_user_id, name.value, value)

        if action.restore_grant:
            self.provider.add_grant(provider_user_id)

        if action.mark_sso:
            self.provider.mark_sso_linked(provider_user_id, user)

    def _disable(self, action: Disable) -> None:
        log.info("Disabling %s (%s)", action.external_id, action.reason)
        self.provider.disable_user(action.provider_user_id)


def _bind[**P](func: Callable[P, None], *args: P.args, **kwargs: P.kwargs) -> Callable[[], None]:
    def call() -> None:
        func(*args, **kwargs)

    return call

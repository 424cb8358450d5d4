"""Per-user outcomes and aggregate counts of one run.

The engine never persists the report; it is handed to the caller for logging and
alerting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING

from .plan import ActionKind

if TYPE_CHECKING:
    from .errors import ActionExecutionError, CanonicalizationError


class OutcomeStatus(StrEnum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class RunStatus(IntEnum):
    """Process exit status of a run."""

    SUCCESS = 0
    FATAL = 1
    USAGE = 2
    USERS_FAILED = 3


@dataclass(frozen=True, slots=True, kw_only=True)
class ActionOutcome:
    external_id: str
    kind: ActionKind
    status: OutcomeStatus
    error: ActionExecutionError | None = None
    reason: str | None = None

    @classmethod
    def succeeded(cls, external_id: str, kind: ActionKind) -> ActionOutcome:
        return cls(external_id=external_id, kind=kind, status=OutcomeStatus.SUCCEEDED)

    @classmethod
    def failed(
        cls, external_id: str, kind: ActionKind, error: ActionExecutionError
    ) -> ActionOutcome:
        return cls(
            external_id=external_id,
            kind=kind,
            status=OutcomeStatus.FAILED,
            error=error,
            reason=str(error),
        )

    @classmethod
    def skipped(cls, external_id: str, kind: ActionKind, reason: str) -> ActionOutcome:
        return cls(external_id=external_id, kind=kind, status=OutcomeStatus.SKIPPED, reason=reason)


@dataclass(slots=True)
class RunReport:
    outcomes: list[ActionOutcome] = field(default_factory=list["ActionOutcome"])
    rejected_records: list[CanonicalizationError] = field(
        default_factory=list["CanonicalizationError"]
    )

    def record(self, outcome: ActionOutcome) -> None:
        self.outcomes.append(outcome)

    def reject(self, error: CanonicalizationError) -> None:
        self.rejected_records.append(error)

    def _count(self, kind: ActionKind, status: OutcomeStatus = OutcomeStatus.SUCCEEDED) -> int:
        return sum(
            1 for outcome in self.outcomes if outcome.kind is kind and outcome.status is status
        )

    @property
    def created(self) -> int:
        return self._count(ActionKind.CREATE)

    @property
    def updated(self) -> int:
        return self._count(ActionKind.UPDATE)

    @property
    def disabled(self) -> int:
        return self._count(ActionKind.DISABLE)

    @property
    def unchanged(self) -> int:
        return self._count(ActionKind.NOOP)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is OutcomeStatus.FAILED)

    @property
    def skipped(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is OutcomeStatus.SKIPPED)

    @property
    def rejected(self) -> int:
        return len(self.rejected_records)

    @property
    def failures(self) -> list[ActionOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status is OutcomeStatus.FAILED]

    def outcome_for(self, external_id: str) -> ActionOutcome | None:
        for outcome in self.outcomes:
            if outcome.external_id == external_id:
                return outcome
        return None

    @property
    def status(self) -> RunStatus:
        if self.failed or self.rejected:
            return RunStatus.USERS_FAILED
        return RunStatus.SUCCESS

    def summary(self) -> str:
        return (
            f"created={self.created}, updated={self.updated}, disabled={self.disabled}, "
            f"unchanged={self.unchanged}, skipped={self.skipped}, failed={self.failed}, "
            f"rejected={self.rejected}"
        )

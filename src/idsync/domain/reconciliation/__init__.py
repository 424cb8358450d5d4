"""Reconciliation core: drive the provider population toward the sources.

Flow of one run:
1) fetch every source and the provider population concurrently
2) drop records outside the configured attribute filters
3) canonicalize raw records, rejecting malformed ones per record
4) diff canonical users against provider accounts into one action per user
5) execute actions sequentially, isolating per-user failures
6) aggregate outcomes into a run report
"""

from __future__ import annotations

from .canonicalize import CanonicalizationResult, canonicalize, canonicalize_all
from .engine import ReconciliationEngine, SourceBinding
from .errors import (
    ActionExecutionError,
    CanonicalizationError,
    ErrorKind,
    ExternalIdCollision,
    FatalSyncError,
    MalformedAttribute,
    MalformedStatus,
    MissingRequiredField,
    MultiValueUnsupported,
    ProviderFetchError,
    SourceFetchError,
)
from .execute import SyncExecutor
from .filters import RecordFilter
from .mapping import AttributeMapping, AttributeMappings
from .plan import Action, ActionKind, Create, Disable, DisableReason, NoOp, Update
from .reconcile import reconcile
from .report import ActionOutcome, OutcomeStatus, RunReport, RunStatus
from .status import decode_status

__all__ = [
    "Action",
    "ActionExecutionError",
    "ActionKind",
    "ActionOutcome",
    "AttributeMapping",
    "AttributeMappings",
    "CanonicalizationError",
    "CanonicalizationResult",
    "Create",
    "Disable",
    "DisableReason",
    "ErrorKind",
    "ExternalIdCollision",
    "FatalSyncError",
    "MalformedAttribute",
    "MalformedStatus",
    "MissingRequiredField",
    "MultiValueUnsupported",
    "NoOp",
    "OutcomeStatus",
    "ProviderFetchError",
    "RecordFilter",
    "ReconciliationEngine",
    "RunReport",
    "RunStatus",
    "SourceBinding",
    "SourceFetchError",
    "SyncExecutor",
    "Update",
    "canonicalize",
    "canonicalize_all",
    "decode_status",
    "reconcile",
]

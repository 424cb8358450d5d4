"""Orchestrator for one reconciliation run.

The engine composes ports but does not prescribe concrete adapters: any mix of
sources can feed one provider. Populations are fetched concurrently, while
actions run strictly one after another.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from idsync.domain.model import FeatureFlag

from .canonicalize import canonicalize_all
from .errors import ProviderFetchError, SourceFetchError
from .execute import SyncExecutor
from .filters import RecordFilter
from .plan import NoOp
from .reconcile import reconcile
from .report import ActionOutcome, RunReport

if TYPE_CHECKING:
    import threading
    from collections.abc import Mapping, Sequence

    from idsync.domain.model import ProviderUser, RawRecord
    from idsync.domain.ports import IdentityProvider, SourceAdapter

    from .mapping import AttributeMappings
    from .plan import Action

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SourceBinding:
    """A source adapter together with how its records map and which are in scope."""

    adapter: SourceAdapter
    mappings: AttributeMappings
    record_filter: RecordFilter = field(default_factory=RecordFilter)

    @property
    def name(self) -> str:
        return self.adapter.name


@dataclass(frozen=True, slots=True)
class _Populations:
    records: list[Sequence[RawRecord]]
    provider_users: Sequence[ProviderUser]


@dataclass(slots=True)
class ReconciliationEngine:
    """Run a full pass: fetch, canonicalize, reconcile, execute, report."""

    sources: Sequence[SourceBinding]
    provider: IdentityProvider
    features: frozenset[FeatureFlag] = frozenset()

    def run(self, cancel: threading.Event | None = None) -> RunReport:
        """Run one reconciliation pass.

        Raises ``FatalSyncError`` when any population cannot be fetched; nothing
        has been mutated at that point. Per-user failures end up in the report.
        Once ``cancel`` is set, the in-flight action finishes and every remaining
        action is reported as skipped.
        """

        populations = asyncio.run(self._fetch_populations())
        log.info(
            "Fetched %d source record(s) and %d provider account(s)",
            sum(len(records) for records in populations.records),
            len(populations.provider_users),
        )

        in_scope: list[tuple[Sequence[RawRecord], AttributeMappings]] = []
        out_of_scope: list[tuple[Sequence[RawRecord], AttributeMappings]] = []
        for binding, records in zip(self.sources, populations.records, strict=True):
            if FeatureFlag.ATTRIBUTE_FILTERS in self.features and binding.record_filter:
                selected, excluded = binding.record_filter.partition(records)
                if excluded:
                    log.info("%d record(s) of %s are out of scope", len(excluded), binding.name)
                out_of_scope.append((excluded, binding.mappings))
                records = selected
            in_scope.append((records, binding.mappings))

        canonical = canonicalize_all(in_scope, out_of_scope=out_of_scope)
        actions = reconcile(
            canonical.users,
            populations.provider_users,
            ignored_ids=frozenset(canonical.ignored_ids),
            enforce_sso=FeatureFlag.SSO_LOGIN in self.features,
        )

        report = RunReport()
        ignored_reasons: dict[str, str] = {}
        for error in canonical.errors:
            report.reject(error)
            if error.external_id is not None:
                ignored_reasons.setdefault(error.external_id, f"record rejected: {error}")
        self._execute(actions, report, cancel, ignored_reasons)

        log.info("Sync finished: %s", report.summary())
        for outcome in report.failures:
            log.warning("Failed user %s: %s", outcome.external_id, outcome.reason)
        return report

    def _execute(
        self,
        actions: Sequence[Action],
        report: RunReport,
        cancel: threading.Event | None,
        ignored_reasons: Mapping[str, str],
    ) -> None:
        executor = SyncExecutor(self.provider, self.features)
        for action in actions:
            if cancel is not None and cancel.is_set():
                report.record(ActionOutcome.skipped(action.external_id, action.kind, "cancelled"))
                continue
            if isinstance(action, NoOp) and action.ignored:
                reason = ignored_reasons.get(action.external_id, "record out of scope")
                report.record(ActionOutcome.skipped(action.external_id, action.kind, reason))
                continue
            report.record(executor.execute(action))
        if cancel is not None and cancel.is_set():
            log.warning("Run cancelled; %d action(s) skipped", report.skipped)

    async def _fetch_populations(self) -> _Populations:
        results = await asyncio.gather(
            *(asyncio.to_thread(binding.adapter.fetch_all) for binding in self.sources),
            asyncio.to_thread(self.provider.list_users),
            return_exceptions=True,
        )
        *source_results, provider_result = results

        records: list[Sequence[RawRecord]] = []
        for binding, result in zip(self.sources, source_results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                raise SourceFetchError(binding.name, str(result)) from result
            records.append(result)

        if isinstance(provider_result, BaseException):
            if not isinstance(provider_result, Exception):
                raise provider_result
            raise ProviderFetchError(str(provider_result)) from provider_result
        return _Populations(records=records, provider_users=provider_result)

"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from idsync.adapters.csvfile import CsvSource
from idsync.adapters.endpoint import EndpointSource
from idsync.adapters.ldap import LdapSource
from idsync.adapters.zitadel import ZitadelClient
from idsync.config.sources import CsvSourceConfig, EndpointSourceConfig, LdapSourceConfig
from idsync.domain.reconciliation import ReconciliationEngine, SourceBinding

if TYPE_CHECKING:
    import threading
    from collections.abc import Sequence

    from idsync.config import SourceConfig, SyncConfig
    from idsync.domain.ports import IdentityProvider, SourceAdapter
    from idsync.domain.reconciliation import RunReport


log = getLogger(__name__)


def build_source(config: SourceConfig) -> SourceAdapter:
    match config:
        case LdapSourceConfig():
            return LdapSource(config)
        case CsvSourceConfig():
            return CsvSource(config)
        case EndpointSourceConfig():
            return EndpointSource(config)


def build_bindings(config: SyncConfig) -> list[SourceBinding]:
    return [
        SourceBinding(
            adapter=build_source(source),
            mappings=source.mappings,
            record_filter=source.record_filter,
        )
        for source in config.sources
    ]


def run_sync(
    config: SyncConfig,
    *,
    sources: Sequence[SourceBinding] | None = None,
    provider: IdentityProvider | None = None,
    cancel: threading.Event | None = None,
) -> RunReport:
    """Run one reconciliation pass using the configured adapters."""

    effective_sources = sources if sources is not None else build_bindings(config)
    effective_provider = provider or ZitadelClient(config.provider)
    log.info(
        "Starting sync: sources=%s, provider=%s, features=%s",
        ", ".join(binding.name for binding in effective_sources),
        config.provider.url,
        ", ".join(sorted(config.features)) or "none",
    )

    engine = ReconciliationEngine(
        sources=effective_sources,
        provider=effective_provider,
        features=config.features,
    )
    return engine.run(cancel)

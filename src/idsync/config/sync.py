"""Top-level configuration of one sync deployment."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from idsync.domain.model import FeatureFlag

    from .sources import SourceConfig
    from .zitadel import ZitadelConfig

DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True, slots=True, kw_only=True)
class SyncConfig:
    provider: ZitadelConfig
    sources: tuple[SourceConfig, ...]
    features: frozenset[FeatureFlag] = field(default_factory=frozenset["FeatureFlag"])
    log_level: str = DEFAULT_LOG_LEVEL

    def with_features(self, *flags: FeatureFlag) -> SyncConfig:
        """Return a copy with ``flags`` switched on in addition to the configured ones."""

        return SyncConfig(
            provider=self.provider,
            sources=self.sources,
            features=self.features | frozenset(flags),
            log_level=self.log_level,
        )

"""Ports for fetching source populations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from idsync.domain.model import RawRecord


@runtime_checkable
class SourceAdapter(Protocol):
    """A source of truth for user identities.

    ``fetch_all`` returns the complete population for the current run. Every call
    fetches from scratch; adapters keep no cursor between calls.
    """

    @property
    def name(self) -> str: ...

    def fetch_all(self) -> Sequence[RawRecord]: ...


__all__ = ["SourceAdapter"]

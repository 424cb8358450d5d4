"""Public interface for the custom endpoint source adapter."""

from __future__ import annotations

from .schema import OAuth2Token
from .source import EndpointSource, EndpointSourceError, to_raw_record

__all__ = ["EndpointSource", "EndpointSourceError", "OAuth2Token", "to_raw_record"]

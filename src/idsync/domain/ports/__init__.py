"""Domain port definitions for adapters."""

from __future__ import annotations

from .provider import (
    IdentityProvider,
    ProviderAuthError,
    ProviderConflictError,
    ProviderError,
    ProviderNotFoundError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    ProviderValidationError,
)
from .source import SourceAdapter

__all__ = [
    "IdentityProvider",
    "ProviderAuthError",
    "ProviderConflictError",
    "ProviderError",
    "ProviderNotFoundError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "ProviderValidationError",
    "SourceAdapter",
]

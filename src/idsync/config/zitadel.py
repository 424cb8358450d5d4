"""Zitadel provider configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import require_env_vars

ZITADEL_TOKEN_ENV = "ZITADEL_TOKEN"
DEFAULT_ROLE = "User"
DEFAULT_PAGE_SIZE = 100
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True, slots=True, kw_only=True)
class ZitadelConfig:
    url: str
    organization_id: str
    project_id: str
    token: str = field(repr=False)
    idp_id: str | None = None
    role: str = DEFAULT_ROLE
    page_size: int = DEFAULT_PAGE_SIZE
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    requests_per_second: float | None = None


def token_from_environment() -> str:
    """Personal access token used when the configuration file carries none."""

    return require_env_vars((ZITADEL_TOKEN_ENV,))[ZITADEL_TOKEN_ENV]

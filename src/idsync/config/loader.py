"""Load the sync configuration from YAML plus environment overrides."""

from __future__ import annotations

import os
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from .env import apply_env_overrides
from .errors import ConfigurationError
from .schema import SyncConfigModel

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .sync import SyncConfig

log = getLogger(__name__)

CONFIG_PATH_ENV = "IDSYNC_CONFIG"
DEFAULT_CONFIG_PATH = Path("config.yaml")


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path)
    return Path(os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)


def read_config_file(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read configuration file {path}: {exc}") from exc
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return raw


def parse_config(raw: Mapping[str, Any], *, origin: str = "<config>") -> SyncConfig:
    try:
        model = SyncConfigModel.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {origin}:\n{exc}") from exc
    return model.to_config()


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> SyncConfig:
    """Read, overlay and validate the configuration.

    ``path`` defaults to ``$IDSYNC_CONFIG`` or ``config.yaml``; ``environ`` defaults
    to the process environment. Raises ``ConfigurationError`` on any problem.
    """

    config_path = resolve_config_path(path)
    raw = read_config_file(config_path)
    raw = apply_env_overrides(raw, os.environ if environ is None else environ)
    config = parse_config(raw, origin=str(config_path))
    log.debug(
        "Loaded configuration from %s: %d source(s), features=%s",
        config_path,
        len(config.sources),
        sorted(config.features),
    )
    return config

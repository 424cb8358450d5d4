"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

import yaml

from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

ENV_PREFIX = "IDSYNC__"
ENV_SEPARATOR = "__"


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return the given environment variables or raise if any are missing/blank."""

    missing: list[str] = []
    values: dict[str, str] = {}
    for name in names:
        value = os.getenv(name)
        if value is None or not value.strip():
            missing.append(name)
            continue
        values[name] = value

    if missing:
        missing_list = ", ".join(sorted(missing))
        raise MissingConfigurationError(f"Missing configuration for: {missing_list}")

    return values


def _parse_env_value(value: str) -> object:
    # Only flow collections are parsed; scalars stay strings so secrets survive verbatim.
    if value.startswith(("[", "{")):
        try:
            return yaml.safe_load(value)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Cannot parse environment value {value!r}: {exc}") from exc
    return value


def apply_env_overrides(
    raw: dict[str, Any],
    environ: Mapping[str, str],
    *,
    prefix: str = ENV_PREFIX,
) -> dict[str, Any]:
    """Overlay ``IDSYNC__A__B=value`` variables onto the parsed configuration file.

    Key segments are lowercased; numeric segments index into existing lists, so
    ``IDSYNC__SOURCES__0__BIND_PASSWORD`` sets the bind password of the first source.
    """

    for name in sorted(environ):
        if not name.startswith(prefix):
            continue
        path = [segment.lower() for segment in name[len(prefix) :].split(ENV_SEPARATOR)]
        if not all(path):
            raise ConfigurationError(f"Malformed configuration variable {name}")
        _set_path(raw, path, _parse_env_value(environ[name]), variable=name)
    return raw


def _set_path(node: Any, path: list[str], value: object, *, variable: str) -> None:
    *parents, leaf = path
    for segment in parents:
        node = _child(node, segment, variable=variable)
    if isinstance(node, list):
        index = _index(node, leaf, variable=variable)
        node[index] = value
    elif isinstance(node, dict):
        node[leaf] = value
    else:
        raise ConfigurationError(f"{variable} addresses into a scalar value")


def _child(node: Any, segment: str, *, variable: str) -> Any:
    if isinstance(node, list):
        return node[_index(node, segment, variable=variable)]
    if isinstance(node, dict):
        if node.get(segment) is None:
            node[segment] = {}
        return node[segment]
    raise ConfigurationError(f"{variable} addresses into a scalar value")


def _index(node: list[Any], segment: str, *, variable: str) -> int:
    if not segment.isdigit():
        raise ConfigurationError(f"{variable} must use a list index instead of {segment!r}")
    index = int(segment)
    if index >= len(node):
        raise ConfigurationError(f"{variable} indexes past the end of a list of {len(node)}")
    return index

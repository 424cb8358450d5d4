"""Shared logging helpers for idsync."""

from __future__ import annotations

import logging

# Chatty third-party loggers that drown the per-user lines at DEBUG.
_NOISY_LOGGERS = ("httpx", "httpcore", "ldap3")


def parse_level(value: str | int) -> int:
    """Translate ``"info"``/``"DEBUG"``/``20`` into a logging level, raising ``ValueError``."""

    if isinstance(value, int):
        return value
    level = logging.getLevelNamesMapping().get(value.strip().upper())
    if level is None:
        raise ValueError(f"Unknown log level: {value}")
    return level


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: INFO by
    default and a format carrying the date, since runs are scheduled and their
    output usually ends up in a journal. Pass ``force=True`` to reconfigure during
    tests or after the configuration file changed the level.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        force=force,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

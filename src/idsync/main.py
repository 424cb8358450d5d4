#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
import threading
from logging import getLogger
from signal import SIGINT, SIGTERM, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from idsync.app import run_sync
from idsync.common.logging import configure_logging, parse_level
from idsync.config import CONFIG_PATH_ENV, ConfigurationError, load_config
from idsync.domain.model import FeatureFlag
from idsync.domain.reconciliation import FatalSyncError, RunStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = getLogger(__name__)

CANCEL = threading.Event()


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Synchronise users from LDAP, CSV or an endpoint into Zitadel"
    )
    parser.add_argument(
        "--config",
        type=str,
        help=f"Path to the YAML configuration (default: ${CONFIG_PATH_ENV} or config.yaml)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute and report all actions without changing Zitadel",
    )
    parser.add_argument(
        "--deactivate-only",
        action="store_true",
        help="Only disable accounts; skip creates and updates",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Override the configured log level (DEBUG, INFO, WARNING, ...)",
    )
    return parser.parse_args(list(argv))


def _cli_features(args: argparse.Namespace) -> tuple[FeatureFlag, ...]:
    flags: list[FeatureFlag] = []
    if args.dry_run:
        flags.append(FeatureFlag.DRY_RUN)
    if args.deactivate_only:
        flags.append(FeatureFlag.DEACTIVATE_ONLY)
    return tuple(flags)


def main(argv: Sequence[str] | None = None, *, cancel: threading.Event | None = None) -> None:
    """Main application entry point; exits with the run status."""
    parsed_args = _parse_args(sys.argv[1:] if argv is None else argv)
    try:
        level = parse_level(parsed_args.log_level) if parsed_args.log_level else None
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(RunStatus.USAGE)

    configure_logging(level=level or logging.INFO, force=True)
    try:
        config = load_config(parsed_args.config)
        if level is None:
            configure_logging(level=parse_level(config.log_level), force=True)
        report = run_sync(config.with_features(*_cli_features(parsed_args)), cancel=cancel)
    except ConfigurationError as exc:
        log.error("Configuration error: %s", exc)  # noqa: TRY400
        sys.exit(RunStatus.FATAL)
    except FatalSyncError as exc:
        log.error("Sync aborted before any change: %s", exc)  # noqa: TRY400
        sys.exit(RunStatus.FATAL)
    except Exception:
        log.exception("Sync aborted by an unexpected error")
        sys.exit(RunStatus.FATAL)

    sys.exit(report.status)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Let the in-flight action finish, then skip the rest; a second signal aborts."""
    if CANCEL.is_set():
        print("\nAborted by user", file=sys.stderr)
        sys.exit(RunStatus.FATAL)
    print("\nCancelling after the current user (signal again to abort)", file=sys.stderr)
    CANCEL.set()


def cli() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    signal(SIGTERM, sigint_handler)
    main(cancel=CANCEL)


if __name__ == "__main__":
    cli()

"""Command-line entry point for dfx-upgrade."""

from __future__ import annotations

import argparse
import sys

from dfx_upgrade.config import get_settings
from dfx_upgrade.errors import UpgradeError
from dfx_upgrade.logging import get_logger, setup_logging
from dfx_upgrade.upgrade import Upgrader, UpgradeState


def build_parser(default_release_root: str) -> argparse.ArgumentParser:
    """Build the argument parser with the ``upgrade`` subcommand."""
    parser = argparse.ArgumentParser(prog="dfx", description="The DFINITY command-line tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    upgrade = subparsers.add_parser("upgrade", help="Upgrade DFX.", description="Upgrade DFX.")
    upgrade.add_argument("--current-version", help=argparse.SUPPRESS)
    upgrade.add_argument("--release-root", default=default_release_root, help=argparse.SUPPRESS)
    upgrade.add_argument("--verbose", action="store_true", help="Verbose output.")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the upgrade, and return the process exit status."""
    settings = get_settings()
    args = build_parser(settings.release_root).parse_args(argv)

    setup_logging(verbose=args.verbose)
    log = get_logger("dfx_upgrade.cli")

    upgrader = Upgrader(settings)
    try:
        result = upgrader.run(current=args.current_version, release_root=args.release_root)
    except UpgradeError as exc:
        log.error("upgrade_failed", error=str(exc), steps=upgrader.result.steps_completed)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if result.status is UpgradeState.UP_TO_DATE:
        print(f"Already up to date ({result.current_version})")
    else:
        print(f"Upgraded {result.current_version} -> {result.latest_version}")
    return 0


def run() -> None:
    """Console script wrapper."""
    sys.exit(main())


if __name__ == "__main__":
    run()

#!/usr/bin/env python
"""Check a ready-set manifest.

Usage:
    ready-set check manifest.json
    ready-set check manifest.json --json

Publishes the manifest's services, registers its consumers as joins and
reports which consumers were satisfied and which keys are still awaited.

Exit status:
    0   every consumer was satisfied
    1   some consumers are still waiting
    2   the manifest could not be loaded
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import TextIO

from rich.console import Console
from rich.table import Table

from .errors import ManifestError
from .manifest import ManifestReport, check_manifest, load_manifest

logger = logging.getLogger(__name__)


def _configure_logging(verbosity: int) -> None:
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def render_report(report: ManifestReport, console: Console) -> None:
    """Print a report as Rich tables."""
    consumers = Table(title="Consumers")
    consumers.add_column("Consumer")
    consumers.add_column("Status")
    for name in report.satisfied:
        consumers.add_row(name, "[green]ready[/green]")
    for name in report.waiting:
        consumers.add_row(name, "[yellow]waiting[/yellow]")
    console.print(consumers)

    if report.unfulfilled:
        pending = Table(title="Unfulfilled keys")
        pending.add_column("Key")
        pending.add_column("Waiters", justify="right")
        for item in report.unfulfilled:
            pending.add_row(item.name, str(item.waiters))
        console.print(pending)


def _check(args: argparse.Namespace, stdout: TextIO) -> int:
    try:
        manifest = load_manifest(args.manifest)
    except ManifestError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    logger.info(
        "Checking %s: %d service(s), %d consumer(s)",
        args.manifest,
        len(manifest.services),
        len(manifest.consumers),
    )
    report = check_manifest(manifest)
    if args.json:
        stdout.write(json.dumps(report.to_dict(), indent=2) + "\n")
    else:
        render_report(report, Console(file=stdout))
    return 0 if report.ok else 1


def main(argv: list[str] | None = None, stdout: TextIO | None = None) -> int:
    """Main entry point for the ready-set CLI.

    Returns:
        Exit code (see module docstring)
    """
    parser = argparse.ArgumentParser(
        prog="ready-set",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    check = subparsers.add_parser("check", help="Check which consumers a manifest satisfies")
    check.add_argument("manifest", help="Path to a JSON manifest")
    check.add_argument("--json", action="store_true", help="Print the report as JSON")
    check.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log progress (-v for info, -vv for debug)",
    )

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return _check(args, stdout or sys.stdout)


if __name__ == "__main__":
    sys.exit(main())

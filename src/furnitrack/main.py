#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from furnitrack.adapters.sqlalchemy import shutdown
from furnitrack.app import export_to_file, import_from_file, open_tracker, sync_remote, tracker_status
from furnitrack.config import configure_logging
from furnitrack.domain.model import ImportMode

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track and reconcile home-furnishing plans")
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to DATABASE_URI or the data directory)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log at DEBUG level, including HTTP and SQLite driver output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    export = subparsers.add_parser("export", help="Write a backup bundle")
    export.add_argument(
        "--output",
        type=Path,
        help="File to write (prints to stdout when omitted)",
    )
    export.add_argument(
        "--include-deleted",
        action="store_true",
        help="Include tombstoned records",
    )

    imp = subparsers.add_parser("import", help="Import a backup or legacy bundle")
    imp.add_argument("path", type=Path, help="JSON bundle to import")
    imp.add_argument(
        "--mode",
        choices=[str(mode) for mode in ImportMode],
        default=str(ImportMode.MERGE),
        help="Merge into local data or replace it (default: %(default)s)",
    )
    imp.add_argument(
        "--ai-assisted",
        action="store_true",
        help="Attribute imported changes to an AI editor",
    )

    subparsers.add_parser("reset", help="Delete all local data")

    sync = subparsers.add_parser("sync", help="Push local changes and pull the remote table")
    sync.add_argument(
        "--view",
        type=str,
        help="Remote view to pull (defaults to AIRTABLE_VIEW_NAME / AIRTABLE_VIEW_ID)",
    )

    subparsers.add_parser("status", help="Show pending changes and the last sync")

    return parser.parse_args(list(argv))


async def _run(args: argparse.Namespace) -> None:
    tracker = await open_tracker(database_uri=args.database_uri)
    try:
        if args.command == "export":
            payload = await export_to_file(
                tracker, args.output, include_deleted=args.include_deleted
            )
            if args.output is None:
                print(json.dumps(payload, indent=2))
        elif args.command == "import":
            report = await import_from_file(
                tracker, args.path, mode=args.mode, ai_assisted=args.ai_assisted
            )
            print(json.dumps(report.summary(), indent=2))
        elif args.command == "reset":
            await tracker.reset_local()
        elif args.command == "sync":
            result = await sync_remote(tracker, view=args.view)
            summary = result.summary()
            print(json.dumps({"push": summary.push, "pull": summary.pull}, indent=2))
        elif args.command == "status":
            print(json.dumps(await tracker_status(tracker), indent=2))
        else:
            raise ValueError(f"Unsupported command: {args.command}")
    finally:
        await shutdown()


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else None)

    try:
        asyncio.run(_run(parsed_args))
    except Exception:
        log.exception("Fatal error while running %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()

"""Foresight CLI — operator tools for the prediction engine.

Usage:
    python -m foresight.cli verify-log data/events.jsonl
    python -m foresight.cli show-log data/events.jsonl --kind Revealed
    python -m foresight.cli demo
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from foresight.clock import ManualClock
from foresight.config import ForesightConfig
from foresight.errors import ErrorKind
from foresight.persistence.event_log import EventKind, EventLog
from foresight.service import ForesightService


DEFAULT_CONFIG = Path(__file__).resolve().parents[2] / "config"


def _load_log(path: Path) -> EventLog:
    if not path.exists():
        raise FileNotFoundError(f"No notification log at {path}")
    return EventLog(storage_path=path)


def cmd_verify_log(args: argparse.Namespace) -> int:
    """Reload a JSONL notification log, checking every record hash."""
    try:
        log = _load_log(args.path)
    except (OSError, ValueError, KeyError) as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    print(f"OK: {log.count} records verified")
    return 0


def cmd_show_log(args: argparse.Namespace) -> int:
    try:
        log = _load_log(args.path)
    except (OSError, ValueError, KeyError) as e:
        print(f"Failed: {e}", file=sys.stderr)
        return 1
    kind = EventKind(args.kind) if args.kind else None
    for record in log.records(kind):
        print(json.dumps(record.to_dict(), sort_keys=True))
    return 0


def cmd_demo(args: argparse.Namespace) -> int:
    """Run the create → commit → finalize → reveal scenario in memory."""
    config = ForesightConfig.from_config_dir(args.config)
    clock = ManualClock()
    service = ForesightService(config, clock=clock, event_log=EventLog())
    week = 7 * 24 * 60 * 60

    steps = [
        ("create", lambda: service.create_event("alice", "BTC>100k", "desc", week)),
        ("commit bob", lambda: service.submit_choice("bob", 0, True)),
        ("commit carol", lambda: service.submit_choice("carol", 0, False)),
        ("duplicate bob", lambda: service.submit_choice("bob", 0, False)),
    ]
    for label, run in steps:
        result = run()
        _print_step(label, result.success, result.error_kind)

    clock.advance(seconds=week)
    for label, run in [
        ("finalize", lambda: service.finalize_event("alice", 0, True)),
        ("reveal bob", lambda: service.reveal("bob", 0, True)),
        ("reveal carol", lambda: service.reveal("carol", 0, False)),
        ("reveal bob again", lambda: service.reveal("bob", 0, True)),
        ("reveal dave", lambda: service.reveal("dave", 0, True)),
    ]:
        result = run()
        _print_step(label, result.success, result.error_kind)

    print()
    for record in service.notifications():
        print(json.dumps({"kind": record.kind.value, **record.payload}, sort_keys=True))
    return 0


def _print_step(label: str, success: bool, error_kind: Optional[ErrorKind]) -> None:
    if success:
        status = "ok"
    else:
        status = f"failed ({error_kind.value if error_kind else 'log failure'})"
    print(f"{label:<18} {status}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="foresight",
        description="Foresight — private prediction commit/reveal engine CLI",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help="Path to config directory (default: config/)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable INFO logging")
    sub = parser.add_subparsers(dest="command")

    p_verify = sub.add_parser("verify-log", help="Verify a notification log file")
    p_verify.add_argument("path", type=Path, help="JSONL notification log")

    p_show = sub.add_parser("show-log", help="Print notifications from a log file")
    p_show.add_argument("path", type=Path, help="JSONL notification log")
    p_show.add_argument(
        "--kind",
        choices=[k.value for k in EventKind],
        help="Only show notifications of this kind",
    )

    sub.add_parser("demo", help="Run an in-memory end-to-end scenario")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "verify-log": cmd_verify_log,
        "show-log": cmd_show_log,
        "demo": cmd_demo,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())

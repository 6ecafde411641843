from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Optional

from .app import StreamMetaApp
from .commands import doctor as cmd_doctor
from .config import Settings, find_config
from .models import BatchReport

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"


def _configure_logging(level_name: str) -> None:
    # Batches run on worker threads; the thread name ties their lines together.
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Media metadata enrichment")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")

    subparsers = parser.add_subparsers(dest="command", required=True)
    add_parser = subparsers.add_parser("add", help="Register media locators in the store")
    add_parser.add_argument("uris", nargs="+", help="Local paths or http(s) URLs")
    enrich_parser = subparsers.add_parser("enrich", help="Enrich a batch of media ids")
    enrich_parser.add_argument("ids", nargs="+", type=int, help="Media ids in batch order")
    enrich_parser.add_argument(
        "--active",
        type=int,
        default=None,
        help="Batch index of the item currently playing",
    )
    show_parser = subparsers.add_parser("show", help="Print a stored media record as JSON")
    show_parser.add_argument("id", type=int)
    subparsers.add_parser("doctor", help="Run basic config/store checks")
    return parser


def _load_settings(explicit: Optional[Path]) -> Settings:
    try:
        return Settings.load(find_config(explicit))
    except FileNotFoundError:
        if explicit:
            raise
        logging.getLogger(__name__).debug("No config.yaml found; using defaults")
        return Settings()


def _print_report(report: BatchReport) -> None:
    for outcome in report.outcomes:
        line = f"[{outcome.index}] media {outcome.media_id}: {outcome.status.value}"
        if outcome.reason:
            line += f" ({outcome.reason})"
        print(line)
    summary = f"Batch {report.status.value}"
    if report.cancelled:
        summary += " (stopped early)"
    if report.error:
        summary += f": {report.error}"
    print(summary)


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    _configure_logging(args.log_level)
    settings = _load_settings(args.config)

    if args.command == "doctor":
        report = cmd_doctor.run(settings)
        for line in report.checks:
            print(line)
        if not report.ok:
            raise SystemExit(1)
        return

    app = StreamMetaApp.create(settings)
    try:
        match args.command:
            case "add":
                for uri in args.uris:
                    media_id = app.store.add_media(uri)
                    print(f"{media_id}\t{uri}")
            case "enrich":
                future = app.scheduler.enrich(args.ids, active_index=args.active)
                _print_report(future.result())
            case "show":
                record = app.store.get_record(args.id)
                if record is None:
                    raise SystemExit(f"No media with id {args.id}")
                print(json.dumps(record.to_record(), indent=2, sort_keys=True))
            case _:
                parser.error("Unknown command")
    finally:
        app.close()


if __name__ == "__main__":  # pragma: no cover
    main()

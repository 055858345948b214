from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from typing import Any

from dotenv import find_dotenv, load_dotenv

from shared_url_opener.actions import (
    ActionExecutor,
    BrowserExecutor,
    DryRunExecutor,
    FirestoreExpiryWriteBack,
    WriteBack,
)
from shared_url_opener.config import AppConfig, ConfigError, load_config
from shared_url_opener.decoder import decode
from shared_url_opener.engine import record_key
from shared_url_opener.errors import DecodeError
from shared_url_opener.logging_config import setup_logging
from shared_url_opener.service import WatcherService
from shared_url_opener.sources import (
    FirestoreListenerSource,
    RecordSource,
    SourceRegistrationError,
    create_source,
)
from shared_url_opener.utils.datetime_utils import format_datetime

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shared-url-opener",
        description="Watch a shared Firestore collection and open new URLs in the browser.",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to config YAML file (default: environment variables only)",
    )
    parser.add_argument(
        "--log-level",
        help="Override config log level (e.g. INFO, DEBUG)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("watch", help="Watch for new URLs and open them until interrupted")
    subparsers.add_parser("dry-run", help="Watch for new URLs and print them instead of opening")
    subparsers.add_parser("latest", help="Fetch once and print the records the source returns")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv(find_dotenv(usecwd=True))
    try:
        app_config = load_config(args.config)
    except ConfigError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 2

    log_level = args.log_level or app_config.log_level
    setup_logging(log_level)

    try:
        source = create_source(app_config)
    except SourceRegistrationError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 2
    except Exception as exc:  # noqa: BLE001
        logger.error("Could not create source %s: %s", app_config.source.type, exc)
        return 2

    if args.command == "latest":
        return _print_latest(source)

    dry_run = args.command == "dry-run" or not app_config.actions.open_browser
    executor: ActionExecutor = DryRunExecutor() if dry_run else BrowserExecutor()
    write_back = None if args.command == "dry-run" else _build_write_back(app_config, source)

    service = WatcherService(
        source=source,
        executor=executor,
        write_back=write_back,
        poll_interval_seconds=app_config.source.poll_interval_seconds,
        retry_interval_seconds=app_config.source.retry_interval_seconds,
        listen_timeout_seconds=app_config.source.listen_timeout_seconds,
    )

    stop_event = threading.Event()
    _install_signal_handlers(stop_event)

    logger.info("Watching %s (%s)", app_config.source.collection, source.source_id)
    service.run_forever(stop_event)
    return 0


def _build_write_back(app_config: AppConfig, source: RecordSource) -> WriteBack | None:
    if not app_config.actions.write_back_expiry:
        return None
    # Only the listener delivers document ids to write back against.
    if not isinstance(source, FirestoreListenerSource):
        return None
    return FirestoreExpiryWriteBack(
        source.client,
        collection=app_config.source.collection,
        expiry_days=app_config.actions.expiry_days,
    )


def _install_signal_handlers(stop_event: threading.Event) -> None:
    def _handle(signum: int, frame: Any) -> None:
        logger.info("Received %s, shutting down...", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGINT, _handle)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle)


def _print_latest(source: RecordSource) -> int:
    try:
        source.open()
        raw_records = source.fetch(timeout=5.0)
    except Exception as exc:  # noqa: BLE001
        logger.error("Fetch from %s failed: %s", source.source_id, exc)
        return 1
    finally:
        source.close()

    if not raw_records:
        print("No records found.")
        return 0

    for raw in raw_records:
        try:
            record = decode(raw)
        except DecodeError as exc:
            print(f"[MALFORMED] {exc}")
            continue
        print(f"key:        {record_key(record)}")
        print(f"url:        {record.url}")
        print(f"created_at: {format_datetime(record.created_at)}")
        print(f"expires_at: {format_datetime(record.expires_at)}")
        print("")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

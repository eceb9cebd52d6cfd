#!/usr/bin/env python3
"""
hashdrop - content-addressed drop folder.

Watches an input directory and moves every file dropped there into a store
directory named by the SHA-256 of its contents, discarding duplicates.
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from loguru import logger

from domains.file_ingest.collectors.dedupe_collector import IngestPipeline, prepare_directories
from domains.file_ingest.collectors.watcher import FileSystemSubscription
from hashdrop.models.schemas import IngestOutcome, OutcomeKind
from hashdrop.utils.config import ExtensionPolicy, Settings, get_settings
from hashdrop.utils.helpers import format_bytes, normalise_path

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str):
    """Configure the loguru sink."""
    logger.remove()
    logger.add(sys.stdout, format=LOG_FORMAT, level=level.upper())


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        description="Move files dropped into a directory into a content-addressed store.",
    )
    parser.add_argument("--input", type=Path, default=None, help="Directory to watch.")
    parser.add_argument("--staging", type=Path, default=None, help="Staging directory.")
    parser.add_argument("--store", type=Path, default=None, help="Content-addressed store directory.")
    parser.add_argument(
        "--extension-policy",
        choices=[policy.value for policy in ExtensionPolicy],
        default=None,
        help="How store file extensions are chosen (default: original).",
    )
    parser.add_argument("--workers", type=int, default=None, help="Identify worker threads.")
    parser.add_argument(
        "--recover-only",
        action="store_true",
        help="Commit files left in staging and exit without watching.",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: INFO).")

    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return a copy of ``settings`` with CLI flags applied."""

    overrides = {
        "input_dir": normalise_path(args.input) if args.input else None,
        "staging_dir": normalise_path(args.staging) if args.staging else None,
        "store_dir": normalise_path(args.store) if args.store else None,
        "extension_policy": ExtensionPolicy(args.extension_policy) if args.extension_policy else None,
        "identify_workers": args.workers,
        "log_level": args.log_level,
    }
    return settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})


def log_outcome(outcome: IngestOutcome):
    """Log a terminal outcome."""

    if outcome.kind == OutcomeKind.STORED and outcome.record is not None:
        record = outcome.record
        logger.info(
            f"New file: {record.original_name} {format_bytes(record.size)} "
            f"{record.modified_at.isoformat()} {record.media_type} {record.sha256_hex}"
        )
    else:
        logger.info(f"Duplicate content: {outcome.sha256_hex}")


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI."""

    args = parse_args(argv)
    settings = apply_overrides(get_settings(), args)
    configure_logging(settings.log_level)

    # libmagic is resolved here so a missing system library is a setup error
    try:
        from domains.file_ingest.processors.classifier import classify
    except ImportError as e:
        logger.error(f"Media-type classifier unavailable: {e}")
        return 1

    try:
        prepare_directories(settings)
    except OSError as e:
        logger.error(f"Directory setup failed: {e}")
        return 1

    stop_event = threading.Event()
    pipeline = IngestPipeline(settings, classify, stop_event=stop_event)

    def _signal_handler(signum, frame):  # noqa: D401
        logger.info(f"Received signal {signum}, shutting down.")
        stop_event.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    if args.recover_only:
        pipeline.run([], on_outcome=log_outcome)
        return 0

    subscription = FileSystemSubscription(settings.input_dir, poll_interval=settings.poll_interval)
    try:
        subscription.start()
    except OSError as e:
        logger.error(f"Failed to watch {settings.input_dir}: {e}")
        return 1

    logger.success(f"Watching {settings.input_dir}, storing into {settings.store_dir}")
    try:
        pipeline.run(subscription.events(stop_event), on_outcome=log_outcome)
    finally:
        subscription.stop()

    if pipeline.stream_error is not None:
        logger.error(f"Stopped after event stream failure: {pipeline.stream_error}")
        return 1

    logger.info("hashdrop stopped.")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())

"""
File system watcher for the ingest domain.

Subscribes to change notifications on the input directory and turns them into
candidate paths for the claim stage.
Uses watchdog library for cross-platform file system event monitoring.
"""

import os
import queue
import threading
from pathlib import Path
from typing import Iterable, Iterator, Optional, Set

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from hashdrop.models.schemas import EventKind, WatchEvent
from hashdrop.utils.helpers import has_ignored_suffix, normalise_path


class IngestEventHandler(FileSystemEventHandler):
    """Translates watchdog callbacks into WatchEvents on a queue."""

    def __init__(self, events: queue.Queue, watch_dir: Optional[Path] = None):
        """
        Initialize event handler.

        Args:
            events: Queue receiving WatchEvent objects
            watch_dir: Watched directory; moves landing in it count as creations
        """
        super().__init__()
        self.events = events
        self.watch_dir = normalise_path(watch_dir) if watch_dir is not None else None

    def _push(self, event: FileSystemEvent, kind: EventKind, raw_path=None):
        self.events.put(
            WatchEvent(
                path=Path(os.fsdecode(raw_path if raw_path is not None else event.src_path)),
                kind=kind,
                is_directory=event.is_directory,
            )
        )

    def on_created(self, event: FileSystemEvent):
        """Handle file/directory creation."""
        self._push(event, EventKind.CREATED)

    def on_modified(self, event: FileSystemEvent):
        """Handle file/directory modification."""
        self._push(event, EventKind.MODIFIED)

    def on_deleted(self, event: FileSystemEvent):
        """Handle file/directory deletion."""
        self._push(event, EventKind.OTHER)

    def on_moved(self, event: FileSystemEvent):
        """Handle file/directory move/rename."""
        self._push(event, EventKind.OTHER)

        dest = getattr(event, "dest_path", None)
        if dest and self._lands_in_watch_dir(dest):
            # Files are often finished by renaming x.part to x
            self._push(event, EventKind.CREATED, raw_path=dest)

    def _lands_in_watch_dir(self, raw_path) -> bool:
        if self.watch_dir is None:
            return True
        return normalise_path(Path(os.fsdecode(raw_path))).parent == self.watch_dir


class FileSystemSubscription:
    """Change-notification stream for a single directory."""

    def __init__(self, watch_dir: Path, poll_interval: float = 0.2):
        """
        Initialize subscription.

        Args:
            watch_dir: Directory to watch (not recursive)
            poll_interval: Seconds between cancellation checks while idle
        """
        self.watch_dir = Path(watch_dir)
        self.poll_interval = poll_interval
        self._queue: queue.Queue = queue.Queue()
        self.event_handler = IngestEventHandler(self._queue, self.watch_dir)
        self.observer = Observer()

    def start(self):
        """
        Start watching.

        Raises:
            FileNotFoundError: Watch directory is missing
            OSError: Subscription could not be established
        """
        if not self.watch_dir.is_dir():
            raise FileNotFoundError(f"Watch directory does not exist: {self.watch_dir}")

        self.observer.schedule(self.event_handler, str(self.watch_dir), recursive=False)
        self.observer.start()
        logger.success(f"Started watching: {self.watch_dir}")

    def stop(self):
        """Stop watching."""
        if self.observer.is_alive():
            self.observer.stop()
            self.observer.join()
            logger.info("File system observer stopped")

    def events(self, stop_event: threading.Event) -> Iterator[WatchEvent]:
        """
        Yield change notifications until cancelled.

        Raises:
            RuntimeError: Observer thread died, the stream is broken
        """
        while not stop_event.is_set():
            try:
                event = self._queue.get(timeout=self.poll_interval)
            except queue.Empty:
                if not self.observer.is_alive():
                    raise RuntimeError(f"File system observer for {self.watch_dir} stopped")
                continue
            yield event

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()


def filter_candidates(events: Iterable[WatchEvent], ignored_suffixes: Set[str]) -> Iterator[Path]:
    """
    Reduce raw notifications to candidate file paths.

    Only created/modified events for non-directories are forwarded; paths
    with an ignored suffix (partial downloads, swap files) are dropped.

    Args:
        events: Raw WatchEvent stream
        ignored_suffixes: Lowercase suffixes to skip

    Yields:
        Candidate paths in arrival order
    """
    for event in events:
        if event.kind not in (EventKind.CREATED, EventKind.MODIFIED):
            continue

        if event.is_directory:
            continue

        if has_ignored_suffix(event.path, ignored_suffixes):
            logger.debug(f"Ignoring {event.path}")
            continue

        yield event.path

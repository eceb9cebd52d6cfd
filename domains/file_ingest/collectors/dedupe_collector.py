"""
Deduplicating ingest collector.

Long-running pipeline that moves files dropped into the input directory into
the content-addressed store:

    watch -> claim -> identify (worker pool) -> commit

Each stage runs on its own thread and hands work to the next through a queue.
A stage closes its output once its input is exhausted and all of its work has
finished. Every blocking queue operation polls a shared stop event so a
shutdown request interrupts the whole pipeline promptly.
"""

import queue
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from loguru import logger

from domains.file_ingest.collectors.watcher import filter_candidates
from domains.file_ingest.errors import CommitError, IngestCancelled, IngestError
from domains.file_ingest.processors.claim import claim_file, recover_staged_files
from domains.file_ingest.processors.hasher import Classifier, identify_file
from domains.file_ingest.processors.router import commit_file, remove_stale_partials
from hashdrop.models.schemas import (
    FileRecord,
    IngestOutcome,
    OutcomeKind,
    PipelineStats,
    WatchEvent,
)
from hashdrop.utils.config import Settings
from hashdrop.utils.helpers import same_filesystem

# Marks the end of a stage's output
_CLOSED = object()

OutcomeCallback = Callable[[IngestOutcome], None]


def prepare_directories(settings: Settings):
    """
    Validate the input directory and create staging/store directories.

    Raises:
        FileNotFoundError: Input directory is missing
    """
    if not settings.input_dir.is_dir():
        raise FileNotFoundError(f"Input directory does not exist: {settings.input_dir}")

    settings.staging_dir.mkdir(parents=True, exist_ok=True)
    settings.store_dir.mkdir(parents=True, exist_ok=True)
    remove_stale_partials(settings.store_dir)

    # Atomic rename only holds within one filesystem
    if not same_filesystem(settings.input_dir, settings.staging_dir):
        logger.warning(
            f"Input {settings.input_dir} and staging {settings.staging_dir} are on "
            "different filesystems, claims will fail"
        )
    if not same_filesystem(settings.staging_dir, settings.store_dir):
        logger.warning(
            f"Staging {settings.staging_dir} and store {settings.store_dir} are on "
            "different filesystems, commits are not atomic"
        )


class IngestPipeline:
    """Watch, claim, identify and commit files into the content-addressed store."""

    def __init__(
        self,
        settings: Settings,
        classifier: Classifier,
        stop_event: Optional[threading.Event] = None,
    ):
        """
        Initialize pipeline.

        Args:
            settings: Directory layout and tuning
            classifier: Byte-prefix media-type classifier
            stop_event: Shared cancellation signal
        """
        self.settings = settings
        self.classifier = classifier
        self.stop_event = stop_event or threading.Event()
        self.ignored_suffixes = settings.get_ignored_suffixes()

        self.stats = PipelineStats()
        self.stream_error: Optional[Exception] = None
        self._stats_lock = threading.Lock()

    def stop(self):
        """Request shutdown of every stage."""
        self.stop_event.set()

    # Queue helpers ---------------------------------------------------------------

    def _put(self, q: queue.Queue, item) -> bool:
        """Put with cancellation. Returns False if shutdown was requested."""
        while not self.stop_event.is_set():
            try:
                q.put(item, timeout=self.settings.poll_interval)
                return True
            except queue.Full:
                continue
        return False

    def _get(self, q: queue.Queue):
        """Get with cancellation. Returns _CLOSED if shutdown was requested."""
        while not self.stop_event.is_set():
            try:
                return q.get(timeout=self.settings.poll_interval)
            except queue.Empty:
                continue
        return _CLOSED

    def _count(self, field: str):
        with self._stats_lock:
            setattr(self.stats, field, getattr(self.stats, field) + 1)

    # Stages ----------------------------------------------------------------------

    def _watch_stage(self, events: Iterable[WatchEvent], out: queue.Queue):
        try:
            for candidate in filter_candidates(events, self.ignored_suffixes):
                if not self._put(out, candidate):
                    break
        except Exception as e:
            self.stream_error = e
            logger.error(f"Event stream failed: {e}")
        finally:
            self._put(out, _CLOSED)
            logger.info("Watch stage finished")

    def _claim_stage(self, inp: queue.Queue, out: queue.Queue):
        try:
            # Leftovers from a crash go through the same path as live claims
            for staged in recover_staged_files(self.settings.staging_dir):
                if not self._put(out, staged):
                    return

            while True:
                candidate = self._get(inp)
                if candidate is _CLOSED:
                    break

                staged = claim_file(candidate, self.settings.staging_dir)
                if staged is not None and not self._put(out, staged):
                    break
        finally:
            self._put(out, _CLOSED)
            logger.info("Claim stage finished")

    def _identify(self, staged: Path) -> Optional[FileRecord]:
        try:
            return identify_file(
                staged,
                self.classifier,
                buffer_size=self.settings.hash_buffer_size,
                sniff_bytes=self.settings.sniff_bytes,
                stop_event=self.stop_event,
            )
        except IngestCancelled:
            logger.info(f"Identification interrupted, left in staging: {staged}")
        except (OSError, IngestError) as e:
            logger.warning(f"Dropping {staged}: {e}")
            self._count("failed")
        except Exception as e:
            logger.error(f"Unexpected error identifying {staged}: {e}")
            self._count("failed")
        return None

    def _identify_worker(self, work: queue.Queue, out: queue.Queue):
        while True:
            staged = self._get(work)
            if staged is _CLOSED:
                return

            record = self._identify(staged)
            if record is not None and not self._put(out, (staged, record)):
                return

    def _identify_stage(self, inp: queue.Queue, out: queue.Queue):
        work: queue.Queue = queue.Queue(maxsize=self.settings.identify_queue_size)
        workers: List[threading.Thread] = [
            threading.Thread(
                target=self._identify_worker,
                args=(work, out),
                name=f"identify-{i}",
                daemon=True,
            )
            for i in range(self.settings.identify_workers)
        ]
        for worker in workers:
            worker.start()

        try:
            while True:
                staged = self._get(inp)
                if staged is _CLOSED:
                    break
                if not self._put(work, staged):
                    break
        finally:
            for _ in workers:
                self._put(work, _CLOSED)
            # Output closes only after every in-flight file has been identified
            for worker in workers:
                worker.join()
            self._put(out, _CLOSED)
            logger.info("Identify stage finished")

    def _commit_stage(self, inp: queue.Queue, out: queue.Queue):
        try:
            while True:
                item = self._get(inp)
                if item is _CLOSED:
                    break

                staged, record = item
                try:
                    outcome = commit_file(
                        staged,
                        record,
                        self.settings.store_dir,
                        policy=self.settings.extension_policy,
                        allow_cross_device=self.settings.allow_cross_device,
                    )
                except CommitError as e:
                    logger.warning(str(e))
                    self._count("failed")
                    continue

                if outcome.kind == OutcomeKind.STORED:
                    self._count("stored")
                else:
                    self._count("duplicates")

                if not self._put(out, outcome):
                    break
        finally:
            self._put(out, _CLOSED)
            logger.info("Commit stage finished")

    # Assembly --------------------------------------------------------------------

    def run(
        self,
        events: Iterable[WatchEvent],
        on_outcome: Optional[OutcomeCallback] = None,
    ) -> PipelineStats:
        """
        Run the pipeline until the event stream ends or shutdown is requested.

        Staged leftovers are recovered before the first live event is claimed.

        Args:
            events: Change-notification stream
            on_outcome: Called on this thread for every terminal outcome

        Returns:
            Counters for this run
        """
        candidates: queue.Queue = queue.Queue(maxsize=1)
        staged: queue.Queue = queue.Queue(maxsize=1)
        records: queue.Queue = queue.Queue(maxsize=self.settings.identify_queue_size)
        outcomes: queue.Queue = queue.Queue(maxsize=self.settings.identify_queue_size)

        stages: List[Tuple[str, Callable, tuple]] = [
            ("watch", self._watch_stage, (events, candidates)),
            ("claim", self._claim_stage, (candidates, staged)),
            ("identify", self._identify_stage, (staged, records)),
            ("commit", self._commit_stage, (records, outcomes)),
        ]
        threads = [
            threading.Thread(target=target, args=args, name=name, daemon=True)
            for name, target, args in stages
        ]

        logger.info(
            f"Ingest pipeline starting: {self.settings.input_dir} -> {self.settings.store_dir} "
            f"({self.settings.identify_workers} identify workers)"
        )
        for thread in threads:
            thread.start()

        try:
            while True:
                outcome = self._get(outcomes)
                if outcome is _CLOSED:
                    break
                if on_outcome is not None:
                    on_outcome(outcome)
        except BaseException:
            self.stop_event.set()
            raise
        finally:
            for thread in threads:
                thread.join()

        logger.info(
            f"Ingest pipeline finished: {self.stats.stored} stored, "
            f"{self.stats.duplicates} duplicates, {self.stats.failed} failed"
        )
        return self.stats

"""Spool directory watcher built on :mod:`watchdog`."""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Executor
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from faxbridge.core.errors import DescriptorError, WatchSetupError
from faxbridge.core.identifiers import DESCRIPTOR_SUFFIX, legacy_job_id_for
from faxbridge.core.spool import JOBID_SUFFIX, SpoolDirectory, read_descriptor
from faxbridge.domain import ArtifactKind

if TYPE_CHECKING:
    from faxbridge.application.correlator import ArtifactCorrelator

logger = logging.getLogger(__name__)

# polls without a stable size before a file is left for its next event
SETTLE_ATTEMPT_FACTOR = 20


class _SpoolEventHandler(FileSystemEventHandler):
    def __init__(self, notify: Callable[[str], None]) -> None:
        super().__init__()
        self._notify = notify

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._notify(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._notify(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._notify(event.dest_path)


class SpoolWatcher:
    """Classifies spool events and hands them to the correlator off-thread.

    The observer thread only classifies and enqueues; waiting for a file to
    settle and pairing happen on ``executor`` so event delivery never blocks.
    """

    def __init__(
        self,
        spool: SpoolDirectory,
        correlator: ArtifactCorrelator,
        executor: Executor,
        *,
        document_suffixes: Iterable[str] = (".pdf",),
        settle_polls: int = 3,
        settle_interval: float = 0.5,
    ) -> None:
        self._spool = spool
        self._correlator = correlator
        self._executor = executor
        self._document_suffixes = frozenset(suffix.lower() for suffix in document_suffixes)
        self._settle_polls = max(1, settle_polls)
        self._settle_interval = settle_interval
        self._in_flight: set[Path] = set()
        self._changed_in_flight: set[Path] = set()
        self._in_flight_lock = threading.Lock()
        self._observer: Observer | None = None

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        root = self._spool.root
        if not root.is_dir():
            raise WatchSetupError(f"spool directory does not exist: {root}")
        observer = Observer()
        try:
            observer.schedule(_SpoolEventHandler(self.notify), str(root), recursive=False)
            observer.start()
        except OSError as exc:
            raise WatchSetupError(f"error watching {root}: {exc}") from exc
        self._observer = observer
        logger.info("Watching directory: %s", root)

    def stop(self, timeout: float | None = None) -> None:
        observer = self._observer
        if observer is None:
            return
        observer.stop()
        observer.join(timeout)
        self._observer = None
        logger.info("Stopped watching %s", self._spool.root)

    @property
    def running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    # ------------------------------------------------------------------
    # classification
    # ------------------------------------------------------------------
    def classify(self, path: Path) -> ArtifactKind | None:
        name = path.name
        if name.startswith(".") or self._spool.is_own_write(name):
            return None
        suffix = path.suffix.lower()
        if suffix == DESCRIPTOR_SUFFIX:
            return ArtifactKind.DESCRIPTOR
        if suffix in self._document_suffixes:
            return ArtifactKind.DOCUMENT
        return None

    def notify(self, raw_path: str) -> None:
        """Called from the observer thread for every create/modify/move."""

        path = Path(raw_path)
        if path.parent != self._spool.root:
            return
        kind = self.classify(path)
        if kind is None:
            logger.debug("Unhandled file type: %s", path.name)
            return
        with self._in_flight_lock:
            if path in self._in_flight:
                # picked up again once the running dispatch finishes
                self._changed_in_flight.add(path)
                return
            self._in_flight.add(path)
        logger.info("File created or modified: %s", path)
        self._enqueue(path, kind)

    def _enqueue(self, path: Path, kind: ArtifactKind) -> None:
        try:
            self._executor.submit(self._dispatch, path, kind)
        except RuntimeError as exc:
            # executor already shut down
            with self._in_flight_lock:
                self._in_flight.discard(path)
                self._changed_in_flight.discard(path)
            logger.warning("Dropped event for %s: %s", path.name, exc)

    # ------------------------------------------------------------------
    # dispatch
    # ------------------------------------------------------------------
    def _dispatch(self, path: Path, kind: ArtifactKind) -> None:
        try:
            if not self._wait_until_stable(path):
                return
            self.handle(path, kind)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Error processing spool event for %s", path)
        finally:
            with self._in_flight_lock:
                again = path in self._changed_in_flight
                self._changed_in_flight.discard(path)
                if not again:
                    self._in_flight.discard(path)
            if again:
                self._enqueue(path, kind)

    def handle(self, path: Path, kind: ArtifactKind) -> None:
        if kind is ArtifactKind.DESCRIPTOR:
            if self.is_claimed(path):
                logger.debug("Descriptor %s already submitted", path.name)
                return
            self._correlator.handle_descriptor_file(path)
            return
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            return
        if size == 0:
            logger.debug("Document %s is still empty, waiting for data", path.name)
            return
        self._correlator.handle_document_file(path)

    def is_claimed(self, descriptor: Path) -> bool:
        """True when a ``.jobid`` sentinel at least as new as ``descriptor`` exists.

        A descriptor rewritten after its job was claimed counts as a new
        submission.
        """

        jobid = self._spool.path_for(f"{legacy_job_id_for(descriptor)}{JOBID_SUFFIX}")
        try:
            return jobid.stat().st_mtime_ns >= descriptor.stat().st_mtime_ns
        except FileNotFoundError:
            return False

    def _wait_until_stable(self, path: Path) -> bool:
        """Poll until the size matched the previous poll ``settle_polls`` times in a row."""

        try:
            size = path.stat().st_size
        except FileNotFoundError:
            return False
        consecutive = 0
        attempts = 0
        while consecutive < self._settle_polls:
            if attempts >= self._settle_polls * SETTLE_ATTEMPT_FACTOR:
                logger.warning("File %s did not settle, waiting for its next event", path.name)
                return False
            attempts += 1
            time.sleep(self._settle_interval)
            try:
                current = path.stat().st_size
            except FileNotFoundError:
                return False
            if current == size:
                consecutive += 1
            else:
                consecutive = 0
                size = current
        return True

    # ------------------------------------------------------------------
    # start-up scan
    # ------------------------------------------------------------------
    def scan_existing(self) -> int:
        """Pick up descriptors dropped while the bridge was not running.

        Descriptors that were claimed earlier (see :meth:`is_claimed`) are
        skipped.  Returns the number of descriptors replayed.
        """

        replayed = 0
        for path in sorted(self._spool.root.glob(f"*{DESCRIPTOR_SUFFIX}")):
            if not path.is_file() or self.classify(path) is not ArtifactKind.DESCRIPTOR:
                continue
            if self.is_claimed(path):
                continue
            try:
                _, document_key = read_descriptor(path)
            except DescriptorError as exc:
                logger.warning("Rejected descriptor: %s", exc)
                continue
            self._correlator.handle_descriptor_file(path)
            document = self._spool.path_for(document_key)
            if document.is_file() and self.classify(document) is ArtifactKind.DOCUMENT:
                self.handle(document, ArtifactKind.DOCUMENT)
            replayed += 1
        if replayed:
            logger.info("Replayed %d unclaimed descriptor(s) from %s", replayed, self._spool.root)
        return replayed

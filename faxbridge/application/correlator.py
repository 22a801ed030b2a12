"""Pairs descriptor files with their documents."""
from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable

from faxbridge.application.submitter import JobSubmitter
from faxbridge.core.errors import DescriptorError, SpoolWriteError, SubmissionError
from faxbridge.core.identifiers import legacy_job_id_for
from faxbridge.core.spool import SpoolDirectory, read_descriptor
from faxbridge.domain import ArtifactKind, ArtifactPair, PendingArtifact
from faxbridge.infrastructure import ArtifactCache

logger = logging.getLogger(__name__)


class ArtifactCorrelator:
    """Turns two unordered spool events into one submission.

    The check-and-take runs atomically inside :class:`ArtifactCache`; the
    submission itself runs afterwards, outside any lock.
    """

    def __init__(
        self,
        cache: ArtifactCache,
        submitter: JobSubmitter,
        spool: SpoolDirectory,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache = cache
        self._submitter = submitter
        self._spool = spool
        self._clock = clock
        # document path -> (mtime_ns, size) at the moment it was paired
        self._consumed: dict[Path, tuple[int, int]] = {}
        self._consumed_lock = threading.Lock()

    # ------------------------------------------------------------------
    # watcher entry points
    # ------------------------------------------------------------------
    def handle_descriptor_file(self, path: Path) -> ArtifactPair | None:
        try:
            fax_number, document_key = read_descriptor(path)
        except DescriptorError as exc:
            logger.warning("Rejected descriptor: %s", exc)
            return None
        logger.info("SFC file processed: FaxNumber=%s, Document=%s", fax_number, document_key)
        return self.on_descriptor(path, fax_number, document_key)

    def handle_document_file(self, path: Path) -> ArtifactPair | None:
        if self.is_consumed(path):
            logger.debug("Document %s already submitted and unchanged", path.name)
            return None
        logger.info("Document file processed: %s", path.name)
        return self.on_document(path, path.name)

    def is_consumed(self, path: Path) -> bool:
        """True when ``path`` was paired and has not been rewritten since.

        A changed fingerprint means the document was uploaded again, so the
        old record is dropped.
        """

        with self._consumed_lock:
            recorded = self._consumed.get(path)
            if recorded is None:
                return False
            current = _fingerprint(path)
            if current == recorded:
                return True
            del self._consumed[path]
            return False

    # ------------------------------------------------------------------
    # pairing
    # ------------------------------------------------------------------
    def on_descriptor(self, path: Path, fax_number: str, document_key: str) -> ArtifactPair | None:
        artifact = PendingArtifact(
            kind=ArtifactKind.DESCRIPTOR,
            local_path=path,
            logical_key=document_key,
            fax_number=fax_number,
            legacy_job_id=legacy_job_id_for(path),
            discovered_at=self._clock(),
        )
        return self._offer(artifact)

    def on_document(self, path: Path, document_key: str) -> ArtifactPair | None:
        artifact = PendingArtifact(
            kind=ArtifactKind.DOCUMENT,
            local_path=path,
            logical_key=document_key,
            discovered_at=self._clock(),
        )
        return self._offer(artifact)

    def _offer(self, artifact: PendingArtifact) -> ArtifactPair | None:
        pair = self._cache.offer(artifact)
        if pair is None:
            logger.info("Cached %s %s awaiting its complement", artifact.kind.value, artifact.logical_key)
            return None
        document_path = pair.document.local_path
        fingerprint = _fingerprint(document_path)
        if fingerprint is not None:
            with self._consumed_lock:
                self._consumed[document_path] = fingerprint
        self._submit(pair)
        return pair

    def _submit(self, pair: ArtifactPair) -> None:
        try:
            self._submitter.submit(pair.fax_number, pair.document.local_path, pair.legacy_job_id)
        except SubmissionError as exc:
            logger.error("Fax job %s was not submitted: %s", exc.legacy_job_id, exc.reason)

    # ------------------------------------------------------------------
    # retention
    # ------------------------------------------------------------------
    def expire_unpaired(self, retention: float) -> list[PendingArtifact]:
        """Drop artifacts that waited longer than ``retention`` seconds."""

        with self._consumed_lock:
            gone = [path for path in self._consumed if _fingerprint(path) is None]
            for path in gone:
                del self._consumed[path]

        expired = self._cache.expire(self._clock() - retention)
        for artifact in expired:
            logger.warning(
                "Unpaired %s expired after %.0fs: %s (document %s)",
                artifact.kind.value,
                retention,
                artifact.local_path,
                artifact.logical_key,
            )
            if artifact.kind is ArtifactKind.DESCRIPTOR and artifact.legacy_job_id:
                try:
                    self._spool.write_fail(artifact.legacy_job_id)
                except SpoolWriteError as exc:
                    logger.error("Cannot write failure sentinel for %s: %s", artifact.legacy_job_id, exc)
        return expired


def _fingerprint(path: Path) -> tuple[int, int] | None:
    try:
        stat = path.stat()
    except FileNotFoundError:
        return None
    return stat.st_mtime_ns, stat.st_size

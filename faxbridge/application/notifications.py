"""Matches delivery-status callbacks to in-flight jobs."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Literal, Mapping

from faxbridge.core.errors import SpoolWriteError
from faxbridge.core.schema import DeliveryResult
from faxbridge.core.spool import FaxState, SpoolDirectory
from faxbridge.domain import JobStatus
from faxbridge.infrastructure import JobRegistry

logger = logging.getLogger(__name__)

CorrelationField = Literal["uuid", "call_uuid"]


@dataclass(slots=True)
class NotificationSummary:
    completed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    progressed: list[str] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "completed": list(self.completed),
            "failed": list(self.failed),
            "progressed": list(self.progressed),
            "unmatched": list(self.unmatched),
            "errors": list(self.errors),
        }


class NotificationMatcher:
    """Applies notification entries to the job registry and the spool.

    Entries are handled one at a time under a single lock so the sentinels of a
    job are never written by two callbacks at once.  A terminal result is
    claimed in the registry before anything is written, which makes repeated
    deliveries of the same result a no-op.
    """

    def __init__(
        self,
        spool: SpoolDirectory,
        registry: JobRegistry,
        *,
        correlation_field: CorrelationField = "uuid",
    ) -> None:
        self._spool = spool
        self._registry = registry
        self._correlation_field = correlation_field
        self._lock = threading.Lock()

    def on_notification(self, results: Mapping[str, DeliveryResult]) -> NotificationSummary:
        summary = NotificationSummary()
        for key, result in results.items():
            try:
                with self._lock:
                    self._apply(key, result, summary)
            except SpoolWriteError as exc:
                logger.error("Notification entry %s could not be recorded: %s", key, exc)
                summary.errors.append(key)
        return summary

    def _apply(self, key: str, result: DeliveryResult, summary: NotificationSummary) -> None:
        remote_job_id = getattr(result, self._correlation_field)
        if not remote_job_id:
            logger.warning("Notification entry %s carries no %s", key, self._correlation_field)
            summary.unmatched.append(key)
            return

        text = result.describe()
        if not result.is_terminal:
            job = self._registry.update_status(remote_job_id, JobStatus.SUBMITTED, text)
            if job is None:
                logger.info("Progress update for unknown job %s ignored", remote_job_id)
                summary.unmatched.append(remote_job_id)
                return
            self._spool.write_status(job.legacy_job_id, FaxState.RINGING, text or "In progress")
            logger.info("Fax status: %s (job %s)", text or "in progress", job.legacy_job_id)
            summary.progressed.append(remote_job_id)
            return

        status = JobStatus.COMPLETED if result.succeeded else JobStatus.FAILED
        job = self._registry.claim_terminal(remote_job_id, status, text)
        if job is None:
            logger.info("No in-flight job for %s, notification ignored", remote_job_id)
            summary.unmatched.append(remote_job_id)
            return

        if status is JobStatus.COMPLETED:
            self._spool.write_status(job.legacy_job_id, FaxState.DONE, text or "Completed")
            self._spool.write_done(job.legacy_job_id)
            summary.completed.append(remote_job_id)
            logger.info("Fax job completed: JobID=%s, RemoteJobID=%s", job.legacy_job_id, remote_job_id)
        else:
            self._spool.write_fail(job.legacy_job_id)
            summary.failed.append(remote_job_id)
            logger.warning(
                "Fax job failed: JobID=%s, RemoteJobID=%s, Reason=%s",
                job.legacy_job_id,
                remote_job_id,
                text or "unknown",
            )
        self._registry.remove(remote_job_id)

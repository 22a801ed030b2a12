"""Authoritative in-memory mapping of in-flight outbound jobs."""
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone

from faxbridge.core.errors import RegistryError
from faxbridge.domain import Job, JobStatus


class JobRegistry:
    """Jobs indexed by legacy id and by remote job id.

    One lock serialises every operation.  Lookups return copies so callers
    never mutate a record outside the lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_legacy: dict[str, Job] = {}
        self._by_remote: dict[str, Job] = {}

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    def insert(self, job: Job) -> None:
        with self._lock:
            if job.remote_job_id in self._by_remote:
                raise RegistryError(f"remote job id {job.remote_job_id} already registered")
            stale = self._by_legacy.get(job.legacy_job_id)
            if stale is not None:
                # a resubmitted descriptor supersedes the earlier attempt
                self._by_remote.pop(stale.remote_job_id, None)
            record = replace(job)
            self._by_legacy[job.legacy_job_id] = record
            self._by_remote[job.remote_job_id] = record

    def update_status(self, remote_job_id: str, status: JobStatus, status_text: str = "") -> Job | None:
        """Record a status update; terminal jobs are never moved back."""

        with self._lock:
            job = self._by_remote.get(remote_job_id)
            if job is None or job.status.is_terminal:
                return None
            job.status = status
            job.status_text = status_text
            job.last_updated_at = datetime.now(timezone.utc)
            return replace(job)

    def claim_terminal(self, remote_job_id: str, status: JobStatus, status_text: str = "") -> Job | None:
        """Move a job into a terminal status exactly once.

        Returns the updated job to the single caller that won the transition and
        ``None`` to everybody else (unknown id or already terminal).
        """

        if not status.is_terminal:
            raise ValueError(f"{status.value} is not a terminal status")
        with self._lock:
            job = self._by_remote.get(remote_job_id)
            if job is None or job.status.is_terminal:
                return None
            job.status = status
            job.status_text = status_text
            job.last_updated_at = datetime.now(timezone.utc)
            return replace(job)

    def remove(self, remote_job_id: str) -> Job | None:
        with self._lock:
            job = self._by_remote.pop(remote_job_id, None)
            if job is None:
                return None
            if self._by_legacy.get(job.legacy_job_id) is job:
                del self._by_legacy[job.legacy_job_id]
            return replace(job)

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def get_by_remote(self, remote_job_id: str) -> Job | None:
        with self._lock:
            job = self._by_remote.get(remote_job_id)
            return replace(job) if job else None

    def get_by_legacy(self, legacy_job_id: str) -> Job | None:
        with self._lock:
            job = self._by_legacy.get(legacy_job_id)
            return replace(job) if job else None

    def snapshot(self) -> list[Job]:
        with self._lock:
            return [replace(job) for job in self._by_remote.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_remote)

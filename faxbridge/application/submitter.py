"""Hands paired spool artifacts to the remote fax transport."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn

import httpx

from faxbridge.core.errors import RegistryError, SpoolWriteError, SubmissionError
from faxbridge.core.spool import FaxState, SpoolDirectory
from faxbridge.domain import Job
from faxbridge.infrastructure import JobRegistry, TransportError, WebhookFaxClient

logger = logging.getLogger(__name__)

SENT_STATUS_TEXT = "Sent to WebHook"


class JobSubmitter:
    """Submits one outbound fax and records the outcome as sentinels.

    ``<legacy>.jobid`` is always written before the network call and
    ``<legacy>.sts`` / ``<legacy>.fail`` only after it resolved.
    """

    def __init__(
        self,
        spool: SpoolDirectory,
        registry: JobRegistry,
        client: WebhookFaxClient | None,
        *,
        caller_number: str = "",
    ) -> None:
        self._spool = spool
        self._registry = registry
        self._client = client
        self._caller_number = caller_number

    def submit(self, fax_number: str, document_path: Path, legacy_job_id: str) -> str:
        """Submit ``document_path`` to ``fax_number`` and return the remote job id."""

        try:
            self._spool.write_jobid(legacy_job_id)
        except SpoolWriteError as exc:
            logger.error("Cannot claim job %s: %s", legacy_job_id, exc)
            raise SubmissionError(legacy_job_id, f"cannot write job id sentinel: {exc}") from exc

        if self._client is None:
            self._fail(legacy_job_id, "no send webhook url configured")

        try:
            document = document_path.read_bytes()
        except OSError as exc:
            self._fail(legacy_job_id, f"cannot read document {document_path}: {exc}")

        try:
            response = self._client.send_fax(
                caller_number=self._caller_number,
                callee_number=fax_number,
                filename=document_path.name,
                document=document,
            )
        except httpx.HTTPStatusError as exc:
            self._fail(legacy_job_id, f"transport answered {exc.response.status_code}")
        except (httpx.HTTPError, TransportError) as exc:
            self._fail(legacy_job_id, f"transport error: {exc}")

        remote_job_id = response.job_uuid
        try:
            self._spool.write_status(legacy_job_id, FaxState.SENT, SENT_STATUS_TEXT)
        except SpoolWriteError as exc:
            # the transport already owns the fax, keep tracking it
            logger.error("Job %s accepted as %s but status sentinel failed: %s", legacy_job_id, remote_job_id, exc)

        job = Job(
            legacy_job_id=legacy_job_id,
            remote_job_id=remote_job_id,
            fax_number=fax_number,
            document_path=document_path,
            status_text=response.message or SENT_STATUS_TEXT,
        )
        try:
            self._registry.insert(job)
        except RegistryError as exc:
            logger.error("Job %s not tracked: %s", legacy_job_id, exc)

        logger.info(
            "Fax submitted successfully: FaxNumber=%s, Document=%s, JobID=%s, RemoteJobID=%s",
            fax_number,
            document_path.name,
            legacy_job_id,
            remote_job_id,
        )
        return remote_job_id

    def _fail(self, legacy_job_id: str, reason: str) -> NoReturn:
        logger.warning("Submission of job %s failed: %s", legacy_job_id, reason)
        try:
            self._spool.write_fail(legacy_job_id)
        except SpoolWriteError as exc:
            logger.error("Cannot write failure sentinel for %s: %s", legacy_job_id, exc)
        raise SubmissionError(legacy_job_id, reason)

"""Domain entities for the outbound and inbound fax paths."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ArtifactKind(str, Enum):
    DESCRIPTOR = "descriptor"
    DOCUMENT = "document"


class JobStatus(str, Enum):
    SUBMITTED = "submitted"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.SUBMITTED


@dataclass(slots=True)
class PendingArtifact:
    """One half of an outbound job waiting for its complement."""

    kind: ArtifactKind
    local_path: Path
    logical_key: str
    fax_number: str | None = None
    legacy_job_id: str | None = None
    discovered_at: float = 0.0


@dataclass(slots=True)
class ArtifactPair:
    """A descriptor and a document that belong to the same job."""

    descriptor: PendingArtifact
    document: PendingArtifact

    @property
    def fax_number(self) -> str:
        return self.descriptor.fax_number or ""

    @property
    def legacy_job_id(self) -> str:
        return self.descriptor.legacy_job_id or ""


@dataclass(slots=True)
class Job:
    """An outbound fax that was accepted by the remote transport."""

    legacy_job_id: str
    remote_job_id: str
    fax_number: str
    document_path: Path
    status: JobStatus = JobStatus.SUBMITTED
    status_text: str = ""
    submitted_at: datetime = field(default_factory=_utcnow)
    last_updated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, object]:
        return {
            "legacy_job_id": self.legacy_job_id,
            "remote_job_id": self.remote_job_id,
            "fax_number": self.fax_number,
            "document_path": str(self.document_path),
            "status": self.status.value,
            "status_text": self.status_text,
            "submitted_at": self.submitted_at.isoformat(),
            "last_updated_at": self.last_updated_at.isoformat(),
        }


@dataclass(slots=True)
class ReceivedFax:
    """An inbound fax persisted to the spool directory."""

    source_id: str
    document_path: Path
    receipt_path: Path
    caller_number: str
    session_token: str
    called_number: str | None = None
    received_at: datetime = field(default_factory=_utcnow)

"""Domain layer definitions."""

from .jobs import ArtifactKind, ArtifactPair, Job, JobStatus, PendingArtifact, ReceivedFax

__all__ = [
    "ArtifactKind",
    "ArtifactPair",
    "Job",
    "JobStatus",
    "PendingArtifact",
    "ReceivedFax",
]

"""In-memory cache of unpaired spool artifacts."""
from __future__ import annotations

import logging
import threading

from faxbridge.domain import ArtifactKind, ArtifactPair, PendingArtifact

logger = logging.getLogger(__name__)


class ArtifactCache:
    """Holds descriptors and documents until their complement arrives.

    Both maps are guarded by one lock; every public method is a single atomic
    step, so two events for the same key can never both miss each other.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._descriptors: dict[str, PendingArtifact] = {}
        self._documents: dict[str, PendingArtifact] = {}

    def _maps(self, kind: ArtifactKind) -> tuple[dict[str, PendingArtifact], dict[str, PendingArtifact]]:
        if kind is ArtifactKind.DESCRIPTOR:
            return self._descriptors, self._documents
        return self._documents, self._descriptors

    def offer(self, artifact: PendingArtifact) -> ArtifactPair | None:
        """Take the cached complement of ``artifact`` or cache ``artifact`` itself."""

        own, other = self._maps(artifact.kind)
        with self._lock:
            complement = other.pop(artifact.logical_key, None)
            if complement is None:
                previous = own.get(artifact.logical_key)
                own[artifact.logical_key] = artifact
            else:
                previous = None
        if complement is None:
            if previous is not None and previous.local_path != artifact.local_path:
                logger.warning(
                    "Replacing cached %s for %s: %s -> %s",
                    artifact.kind.value,
                    artifact.logical_key,
                    previous.local_path,
                    artifact.local_path,
                )
            return None
        if artifact.kind is ArtifactKind.DESCRIPTOR:
            return ArtifactPair(descriptor=artifact, document=complement)
        return ArtifactPair(descriptor=complement, document=artifact)

    def expire(self, cutoff: float) -> list[PendingArtifact]:
        """Remove and return every artifact discovered before ``cutoff``."""

        expired: list[PendingArtifact] = []
        with self._lock:
            for mapping in (self._descriptors, self._documents):
                stale = [key for key, item in mapping.items() if item.discovered_at < cutoff]
                for key in stale:
                    expired.append(mapping.pop(key))
        return expired

    def pending(self) -> list[PendingArtifact]:
        with self._lock:
            return [*self._descriptors.values(), *self._documents.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._descriptors) + len(self._documents)

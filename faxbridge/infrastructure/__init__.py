"""Infrastructure layer exports."""

from .artifacts import ArtifactCache
from .registry import JobRegistry
from .transport import TransportError, WebhookFaxClient

__all__ = [
    "ArtifactCache",
    "JobRegistry",
    "TransportError",
    "WebhookFaxClient",
]

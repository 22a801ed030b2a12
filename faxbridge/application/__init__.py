"""Application services."""
from __future__ import annotations

from faxbridge.core.settings import Settings, get_settings

from .correlator import ArtifactCorrelator
from .inbound import InboundMaterializer
from .notifications import NotificationMatcher, NotificationSummary
from .service import BridgeService
from .submitter import JobSubmitter

_service: BridgeService | None = None


def configure_bridge_service(service: BridgeService) -> None:
    """Install the service used by the HTTP routes."""

    global _service
    _service = service


def get_bridge_service() -> BridgeService:
    global _service
    if _service is None:
        _service = BridgeService(get_settings())
    return _service


def reset_bridge_service() -> None:
    """Utility used in tests to clear global state."""

    global _service
    if _service is not None:
        _service.stop()
    _service = None


__all__ = [
    "ArtifactCorrelator",
    "BridgeService",
    "InboundMaterializer",
    "JobSubmitter",
    "NotificationMatcher",
    "NotificationSummary",
    "Settings",
    "configure_bridge_service",
    "get_bridge_service",
    "reset_bridge_service",
]

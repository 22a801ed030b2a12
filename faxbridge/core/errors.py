from __future__ import annotations


class FaxBridgeError(Exception):
    """Base class for errors raised by the spool bridge."""


class DescriptorError(FaxBridgeError):
    """Raised when a ``.sfc`` descriptor cannot be parsed."""


class SubmissionError(FaxBridgeError):
    """Raised when an outbound fax could not be handed to the remote transport."""

    def __init__(self, legacy_job_id: str, reason: str) -> None:
        super().__init__(f"{legacy_job_id}: {reason}")
        self.legacy_job_id = legacy_job_id
        self.reason = reason


class InboundDecodeError(FaxBridgeError):
    """Raised when an inbound fax payload is not valid base64."""


class SpoolWriteError(FaxBridgeError):
    """Raised when a sentinel or document cannot be written to the spool."""


class RegistryError(FaxBridgeError):
    """Raised on conflicting job registry operations."""


class WatchSetupError(FaxBridgeError):
    """Raised when the spool directory cannot be watched."""

"""Spool directory access and the legacy sentinel file formats."""
from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

from faxbridge.core.errors import DescriptorError, SpoolWriteError
from faxbridge.core.identifiers import new_token

logger = logging.getLogger(__name__)

JOBID_SUFFIX = ".jobid"
STATUS_SUFFIX = ".sts"
DONE_SUFFIX = ".done"
FAIL_SUFFIX = ".fail"
RECEIPT_SUFFIX = ".recv"

OWN_WRITE_TTL = 120.0


class FaxState(IntEnum):
    """``state:`` codes understood by the legacy queue pollers."""

    RINGING = 3
    SENT = 6
    DONE = 7


@dataclass(slots=True)
class StatusSentinel:
    state: int | None
    npages: int
    totpages: int
    status: str


class SpoolDirectory:
    """Durable reads and writes against the shared spool directory.

    Every write goes to a hidden temporary file in the same directory, is
    flushed and fsynced, then renamed into place, so pollers never observe a
    half-written sentinel.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self._own_writes: dict[str, float] = {}
        self._own_lock = threading.Lock()

    def ensure(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def path_for(self, name: str) -> Path:
        return self.root / Path(name).name

    # ------------------------------------------------------------------
    # raw writes
    # ------------------------------------------------------------------
    def write_bytes(self, name: str, data: bytes) -> Path:
        target = self.path_for(name)
        tmp = self.root / f".{target.name}.{new_token(4)}.tmp"
        try:
            with tmp.open("wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp, target)
        except OSError as exc:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove temporary file %s", tmp)
            raise SpoolWriteError(f"error writing {target}: {exc}") from exc
        logger.info("File created: %s", target)
        return target

    def write_text(self, name: str, content: str) -> Path:
        return self.write_bytes(name, content.encode("utf-8"))

    # ------------------------------------------------------------------
    # sentinels
    # ------------------------------------------------------------------
    def write_jobid(self, legacy_job_id: str) -> Path:
        return self.write_text(f"{legacy_job_id}{JOBID_SUFFIX}", f"{legacy_job_id}\n")

    def write_status(
        self,
        legacy_job_id: str,
        state: FaxState,
        status: str,
        *,
        npages: int = 0,
        totpages: int = 0,
    ) -> Path:
        status = " ".join(status.split())
        content = f"state:{int(state)}\nnpages:{npages}\ntotpages:{totpages}\nstatus:{status}\n"
        return self.write_text(f"{legacy_job_id}{STATUS_SUFFIX}", content)

    def write_done(self, legacy_job_id: str) -> Path:
        return self.write_text(f"{legacy_job_id}{DONE_SUFFIX}", "")

    def write_fail(self, legacy_job_id: str) -> Path:
        return self.write_text(f"{legacy_job_id}{FAIL_SUFFIX}", "")

    def write_receipt(
        self,
        stem: str,
        *,
        received_at: str,
        session_token: str,
        document_name: str,
        caller_number: str,
    ) -> Path:
        lines = [received_at, session_token, document_name, caller_number]
        content = "".join(f"{' '.join(line.split())}\n" for line in lines)
        return self.write_text(f"{stem}{RECEIPT_SUFFIX}", content)

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def read_status(self, legacy_job_id: str) -> StatusSentinel | None:
        path = self.path_for(f"{legacy_job_id}{STATUS_SUFFIX}")
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return parse_status(text)

    def sentinel_view(self, legacy_job_id: str) -> dict[str, object] | None:
        """Summarise what the sentinels on disk say about a job."""

        claimed = self.path_for(f"{legacy_job_id}{JOBID_SUFFIX}").exists()
        done = self.path_for(f"{legacy_job_id}{DONE_SUFFIX}").exists()
        failed = self.path_for(f"{legacy_job_id}{FAIL_SUFFIX}").exists()
        status = self.read_status(legacy_job_id)
        if not (claimed or done or failed or status):
            return None
        if failed:
            outcome = "failed"
        elif done:
            outcome = "completed"
        elif claimed:
            outcome = "submitted"
        else:
            outcome = "unknown"
        return {
            "legacy_job_id": legacy_job_id,
            "status": outcome,
            "sts": None
            if status is None
            else {
                "state": status.state,
                "npages": status.npages,
                "totpages": status.totpages,
                "status": status.status,
            },
        }

    # ------------------------------------------------------------------
    # files the bridge writes into its own watched directory
    # ------------------------------------------------------------------
    def mark_own_write(self, name: str) -> None:
        with self._own_lock:
            self._own_writes[Path(name).name] = time.monotonic() + OWN_WRITE_TTL

    def is_own_write(self, name: str) -> bool:
        now = time.monotonic()
        with self._own_lock:
            expired = [key for key, deadline in self._own_writes.items() if deadline < now]
            for key in expired:
                del self._own_writes[key]
            return Path(name).name in self._own_writes


def parse_status(text: str) -> StatusSentinel:
    values: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if sep:
            values[key.strip()] = value.strip()

    def as_int(key: str) -> int | None:
        try:
            return int(values[key])
        except (KeyError, ValueError):
            return None

    return StatusSentinel(
        state=as_int("state"),
        npages=as_int("npages") or 0,
        totpages=as_int("totpages") or 0,
        status=values.get("status", ""),
    )


def read_descriptor(path: Path) -> tuple[str, str]:
    """Return ``(fax_number, document_filename)`` from a ``.sfc`` file."""

    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise DescriptorError(f"cannot read descriptor {path}: {exc}") from exc

    lines = [line.strip() for line in text.splitlines()]
    if len(lines) < 2 or not lines[0] or not lines[1]:
        raise DescriptorError(f"invalid descriptor format: {path}")
    return lines[0], Path(lines[1]).name

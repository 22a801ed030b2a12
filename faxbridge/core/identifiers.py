"""Identifier generation shared by the outbound and inbound paths.

Tokens are drawn from :mod:`secrets` rather than a time-seeded PRNG.  Eight
random bytes give a 64-bit space; with the birthday bound that is roughly one
expected collision per four billion tokens, far beyond the lifetime volume of a
fax queue.  Callers combine tokens with timestamps or source identifiers, so a
collision additionally needs the same second and the same source.
"""
from __future__ import annotations

import re
import secrets
from datetime import datetime, timezone
from pathlib import Path

TOKEN_BYTES = 8
DESCRIPTOR_SUFFIX = ".sfc"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def new_token(nbytes: int = TOKEN_BYTES) -> str:
    return secrets.token_hex(nbytes)


def utc_stamp(moment: datetime | None = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    return moment.strftime("%Y%m%d%H%M%S")


def sanitize_component(value: str, fallback: str = "fax") -> str:
    """Make ``value`` safe to embed in a spool filename."""

    cleaned = _UNSAFE_CHARS.sub("_", (value or "").strip()).strip("._-")
    return cleaned or fallback


def legacy_job_id_for(descriptor: Path | str) -> str:
    """Legacy job ids are the descriptor filename without its extension."""

    name = Path(descriptor).name
    if name.lower().endswith(DESCRIPTOR_SUFFIX):
        return name[: -len(DESCRIPTOR_SUFFIX)]
    return Path(name).stem


def inbound_stem(source_id: str, moment: datetime | None = None) -> str:
    return f"{sanitize_component(source_id)}-{utc_stamp(moment)}-{new_token()}"

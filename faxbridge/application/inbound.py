"""Writes inbound faxes into the spool using the legacy receive layout."""
from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime, timezone

from faxbridge.core.errors import InboundDecodeError
from faxbridge.core.identifiers import inbound_stem, new_token
from faxbridge.core.spool import SpoolDirectory
from faxbridge.domain import ReceivedFax

logger = logging.getLogger(__name__)

INBOUND_DOCUMENT_SUFFIX = ".pdf"
RECEIPT_TIME_FORMAT = "%Y/%m/%d %H:%M:%S"


def decode_document(payload: str) -> bytes:
    """Strictly decode a base64 document, tolerating line wrapping."""

    compact = "".join((payload or "").split())
    if not compact:
        raise InboundDecodeError("inbound fax carries no document data")
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InboundDecodeError(f"document data is not valid base64: {exc}") from exc


class InboundMaterializer:
    def __init__(self, spool: SpoolDirectory) -> None:
        self._spool = spool

    def receive(
        self,
        source_id: str,
        caller_number: str,
        document_data: str,
        *,
        session_token: str | None = None,
        called_number: str | None = None,
    ) -> ReceivedFax:
        """Persist one inbound fax; the document is written before its receipt.

        Decoding happens before any write, so a malformed payload leaves the
        spool untouched.
        """

        document = decode_document(document_data)

        received_at = datetime.now(timezone.utc)
        stem = inbound_stem(source_id, received_at)
        document_name = f"{stem}{INBOUND_DOCUMENT_SUFFIX}"
        token = session_token or new_token()

        self._spool.mark_own_write(document_name)
        document_path = self._spool.write_bytes(document_name, document)
        receipt_path = self._spool.write_receipt(
            stem,
            received_at=received_at.strftime(RECEIPT_TIME_FORMAT),
            session_token=token,
            document_name=document_name,
            caller_number=caller_number,
        )

        logger.info(
            "Inbound fax received: Source=%s, Caller=%s, Called=%s, Document=%s, Bytes=%d",
            source_id,
            caller_number or "unknown",
            called_number or "unknown",
            document_name,
            len(document),
        )
        return ReceivedFax(
            source_id=source_id,
            document_path=document_path,
            receipt_path=receipt_path,
            caller_number=caller_number,
            session_token=token,
            called_number=called_number,
            received_at=received_at,
        )

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError

from faxbridge.application import get_bridge_service
from faxbridge.core.errors import InboundDecodeError, SpoolWriteError
from faxbridge.core.schema import InboundFaxPayload, NotificationPayload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _validation_detail(exc: ValidationError) -> list[dict[str, object]]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]


@router.post("/notifications")
async def receive_notification(request: Request) -> dict:
    """Delivery-status callback for previously submitted faxes."""
    body = await request.body()
    try:
        payload = NotificationPayload.model_validate_json(body)
    except ValidationError as exc:
        logger.warning("Rejected notification callback: %s", exc.error_count())
        raise HTTPException(status_code=400, detail=_validation_detail(exc)) from exc

    service = get_bridge_service()
    summary = await asyncio.to_thread(service.matcher.on_notification, payload.results)
    return {"status": "ok", **summary.to_dict()}


@router.post("/inbound")
async def receive_inbound_fax(request: Request) -> dict:
    """Inbound fax delivered with its document as base64."""
    body = await request.body()
    try:
        payload = InboundFaxPayload.model_validate_json(body)
    except ValidationError as exc:
        logger.warning("Rejected inbound fax callback: %s", exc.error_count())
        raise HTTPException(status_code=400, detail=_validation_detail(exc)) from exc

    service = get_bridge_service()
    try:
        received = await asyncio.to_thread(
            service.materializer.receive,
            payload.uuid,
            payload.cidnum,
            payload.file_data,
            session_token=payload.call_uuid,
            called_number=payload.number,
        )
    except InboundDecodeError as exc:
        logger.warning("Inbound fax %s rejected: %s", payload.uuid, exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SpoolWriteError as exc:
        logger.error("Inbound fax %s could not be stored: %s", payload.uuid, exc)
        raise HTTPException(status_code=500, detail="failed to store inbound fax") from exc

    return {
        "status": "ok",
        "source_id": received.source_id,
        "document": received.document_path.name,
        "receipt": received.receipt_path.name,
    }

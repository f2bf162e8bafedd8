"""
Status Webhook
==============
POST /webhooks/status  — status push from the generation workflow
GET  /webhooks/status  — poll the current record (?clientId=...)

Ingress flow:
    1. Verify X-Hub-Signature-256 against the raw body
    2. Parse the body strictly into a StatusEvent
    3. Map the event name and overwrite the client's record

Failures:
    - Bad / missing signature          → 401 "Unauthorized"
    - Body that is not a valid event   → 500 "Internal Server Error"
    - Anything else                    → 500, detail only in server logs
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from portal.core.config import GITHUB_WEBHOOK_SECRET, WEBHOOK_ALLOW_UNSIGNED
from portal.core.constants import SIGNATURE_HEADER
from portal.models.status_event import StatusEvent
from portal.services.status_mapper import build_record, default_record
from portal.services.status_store import StatusStore, get_status_store
from portal.utils.signature import verify_signature

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Status"])

NO_CACHE_HEADERS = {"Cache-Control": "no-cache, no-store, must-revalidate"}


def _signature_ok(body: bytes, signature: str) -> bool:
    if GITHUB_WEBHOOK_SECRET:
        return verify_signature(body, signature, GITHUB_WEBHOOK_SECRET)
    if WEBHOOK_ALLOW_UNSIGNED:
        return True
    logger.warning(
        "Rejecting webhook: GITHUB_WEBHOOK_SECRET is not set and WEBHOOK_ALLOW_UNSIGNED is false"
    )
    return False


def status_response(client_id: Optional[str], store: StatusStore) -> JSONResponse:
    """Stored record for client_id, or an unsaved default when none exists."""
    if not client_id:
        return JSONResponse(
            status_code=400,
            content={"error": "clientId parameter is required"},
            headers=NO_CACHE_HEADERS,
        )
    try:
        record = store.get(client_id) or default_record(client_id)
        return JSONResponse(content=record.to_json(), headers=NO_CACHE_HEADERS)
    except Exception as e:
        logger.error("Status retrieval failed for %s: %s", client_id, e, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"},
            headers=NO_CACHE_HEADERS,
        )


@router.post("/webhooks/status")
async def receive_status(request: Request, store: StatusStore = Depends(get_status_store)):
    try:
        body = await request.body()
        signature = request.headers.get(SIGNATURE_HEADER, "")

        if not _signature_ok(body, signature):
            logger.warning("Webhook signature verification failed")
            return PlainTextResponse("Unauthorized", status_code=401)

        try:
            event = StatusEvent.model_validate_json(body)
        except ValidationError as e:
            logger.error("Malformed status webhook: %s", e)
            return PlainTextResponse("Internal Server Error", status_code=500)

        record = build_record(event)
        store.put(record)

        logger.info(
            "Status update received: client=%s status=%s progress=%d",
            record.client_id, event.status, record.progress
        )
        return PlainTextResponse("OK")

    except Exception as e:
        logger.error("Webhook processing error: %s", e, exc_info=True)
        return PlainTextResponse("Internal Server Error", status_code=500)


@router.get("/webhooks/status")
async def poll_status(
    client_id: Optional[str] = Query(None, alias="clientId"),
    store: StatusStore = Depends(get_status_store),
):
    return status_response(client_id, store)


@router.options("/webhooks/status")
async def webhook_preflight():
    return Response(status_code=200, headers={
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
        "Access-Control-Allow-Headers": f"Content-Type, {SIGNATURE_HEADER}",
    })

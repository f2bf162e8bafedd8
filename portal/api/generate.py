"""
Generate Endpoint
=================
POST /generate                     — validate the form and trigger the workflow
POST /generate/{clientId}/cancel   — mark a running generation as cancelled
GET  /generate/access-check        — verify the dispatch token's GitHub access

The workflow receives a bounded, flattened copy of the form plus the
webhook URL it should report progress to. The generated clientId is
returned so the caller can poll /status/{clientId}.
"""
import logging
from datetime import datetime, timezone

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from portal.core.config import (
    GITHUB_TOKEN,
    SITE_URL,
    DISPATCH_REPOSITORY,
    DISPATCH_EVENT_TYPE,
)
from portal.core.constants import CANCELLED_ERROR_CODE, TERMINAL_STATUSES, TOTAL_ESTIMATED_SECONDS
from portal.models.generate_request import parse_generate_request
from portal.models.status_event import StatusEvent
from portal.services.dispatch_client import DispatchError, GitHubDispatchClient
from portal.services.status_mapper import build_record
from portal.services.status_store import StatusStore, get_status_store
from portal.utils.client_id import generate_client_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Generate"])


def _error(status_code: int, error: str, details=None) -> JSONResponse:
    content = {"success": False, "error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _dispatch_client() -> GitHubDispatchClient:
    return GitHubDispatchClient(
        token=GITHUB_TOKEN or "",
        repository=DISPATCH_REPOSITORY,
        event_type=DISPATCH_EVENT_TYPE,
    )


@router.post("/generate")
async def generate_website(request: Request):
    try:
        try:
            data = await request.json()
        except ValueError:
            data = None

        form, errors = parse_generate_request(data)
        if errors:
            logger.info("Generate request rejected: %s", "; ".join(errors))
            return _error(400, "Validation failed", errors)

        if not GITHUB_TOKEN:
            logger.error("GITHUB_TOKEN not set, cannot trigger website generation")
            return _error(500, "Website generation is not configured")

        client_id = generate_client_id(form.business_name)
        payload = form.to_dispatch_payload(client_id, f"{SITE_URL}/webhooks/status")

        try:
            await _dispatch_client().dispatch(payload)
        except DispatchError as e:
            return _error(
                500,
                "Failed to trigger website generation",
                f"GitHub API returned {e.status_code}: {e.reason}",
            )

        logger.info("Website generation started for %s", client_id)
        return {
            "success": True,
            "clientId": client_id,
            "message": "Website generation started successfully",
            "estimatedTime": TOTAL_ESTIMATED_SECONDS,
            "statusUrl": f"/status/{client_id}",
        }

    except Exception as e:
        logger.error("Generate request failed: %s", e, exc_info=True)
        return _error(500, "Internal server error", "Unknown error occurred")


@router.post("/generate/{client_id}/cancel")
async def cancel_generation(client_id: str, store: StatusStore = Depends(get_status_store)):
    """
    Record a user cancellation as a failed run so pollers stop on their next tick.

    Only a run that is still starting or in progress can be cancelled.
    The workflow itself keeps running; only the reported status changes.
    """
    try:
        current = store.get(client_id)
        if current is None:
            return _error(404, "Unknown client id")
        if current.status in TERMINAL_STATUSES:
            logger.info("Ignoring cancel for %s, run already %s", client_id, current.status)
            return _error(409, f"Generation already {current.status}")

        event = StatusEvent(
            status="failed",
            client_name=client_id,
            message="Generation cancelled by user",
            timestamp=datetime.now(timezone.utc).isoformat(),
            error=CANCELLED_ERROR_CODE,
        )
        store.put(build_record(event))
        logger.info("Generation cancelled for %s", client_id)
        return {"success": True, "clientId": client_id, "message": event.message}

    except Exception as e:
        logger.error("Cancel request failed for %s: %s", client_id, e, exc_info=True)
        return _error(500, "Internal server error", "Unknown error occurred")


@router.get("/generate/access-check")
async def check_dispatch_access():
    if not GITHUB_TOKEN:
        raise HTTPException(status_code=400, detail="GITHUB_TOKEN not set")
    try:
        result = await _dispatch_client().check_access()
    except httpx.HTTPError as e:
        logger.error("Access check failed: %s", e, exc_info=True)
        raise HTTPException(status_code=502, detail="Could not reach GitHub")
    return {"repository": DISPATCH_REPOSITORY, **result}


@router.options("/generate")
async def generate_preflight():
    return Response(status_code=200, headers={
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    })

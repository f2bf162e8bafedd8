"""
GET /status/{clientId}
Path-style alias of GET /webhooks/status?clientId=..., used by the poller.
"""
from fastapi import APIRouter, Depends, Response

from portal.api.webhooks import status_response
from portal.services.status_store import StatusStore, get_status_store

router = APIRouter(tags=["Status"])


@router.get("/status/{client_id}")
async def get_status(client_id: str, store: StatusStore = Depends(get_status_store)):
    return status_response(client_id, store)


@router.options("/status/{client_id}")
async def status_preflight(client_id: str):
    return Response(status_code=200, headers={
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    })

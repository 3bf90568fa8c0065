"""Bank link endpoints - link intent, provider webhook, manual sync"""

import logging
from urllib.parse import urlencode
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from budget_gateway.api.v1.schemas import LinkIntentResponse, SyncResponse, WebhookRequest, WebhookResponse
from budget_gateway.api.dependencies import get_movement_source, get_request_id, get_sync_engine
from budget_gateway.config import settings
from budget_gateway.domain.exceptions import ConfigMissing, SourceUnavailable, StoreConflict
from budget_gateway.infrastructure.clients.fintoc import FintocClient
from budget_gateway.services.sync import SyncEngine

router = APIRouter()


async def _run_sync(engine: SyncEngine, request_id: str, principal_id: str, **kwargs) -> int:
    try:
        return await engine.sync(principal_id, **kwargs)

    except ConfigMissing as e:
        logging.warning(f"Sync not possible: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(e))

    except SourceUnavailable as e:
        logging.error(f"Movement source error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Bank provider unavailable")

    except StoreConflict as e:
        logging.error(f"Store error during sync: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/links/intent", response_model=LinkIntentResponse)
async def create_link_intent(
    request: Request,
    principal_id: str = Query(..., min_length=1, description="Principal the new link will belong to"),
    source: FintocClient = Depends(get_movement_source),
):
    """
    Create a provider link intent and hand the widget token to the frontend.

    The registered webhook URL carries the principal, so the provider's
    callback lands on the right owner.
    """
    request_id = get_request_id(request)
    query = urlencode({"principal_id": principal_id})
    webhook_url = f"{settings.app_url.rstrip('/')}/v1/links/webhook?{query}"
    try:
        widget_token = await source.create_link_intent(webhook_url)
    except (SourceUnavailable, ConfigMissing) as e:
        logging.error(f"Link intent failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Failed to create link intent")
    return LinkIntentResponse(widget_token=widget_token)


@router.post("/links/webhook", response_model=WebhookResponse)
async def receive_link(
    request_body: WebhookRequest,
    request: Request,
    principal_id: str = Query(..., min_length=1, description="Principal owning the link"),
    engine: SyncEngine = Depends(get_sync_engine),
):
    """
    Provider callback after a successful bank connection.

    Registers the link for the principal and syncs its movements right away.
    """
    synced = await _run_sync(
        engine,
        get_request_id(request),
        principal_id,
        link_token=request_body.link_token,
        institution_label=request_body.holder_id,
    )
    return WebhookResponse(received=True, synced=synced)


@router.post("/sync", response_model=SyncResponse)
async def sync_latest_link(
    request: Request,
    principal_id: str = Query(..., min_length=1, description="Principal identifier"),
    engine: SyncEngine = Depends(get_sync_engine),
):
    """Re-sync the principal's most recent bank link"""
    synced = await _run_sync(engine, get_request_id(request), principal_id)
    return SyncResponse(principal_id=principal_id, synced=synced)

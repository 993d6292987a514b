"""
Routes du flux de glycémie.

Endpoints:
- POST /api/glucose/connect - Connecte un compte Dexcom Share
- POST /api/glucose/disconnect - Coupe le flux
- GET /api/glucose/status - Statut, valeur courante et historique
- GET /api/glucose/stream - Flux SSE pour les overlays
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from vitals_overlay.api.dependencies import (
    get_app_settings,
    get_connection_service,
    get_glucose_feed,
)
from vitals_overlay.api.sse import SSE_HEADERS, feed_event_stream
from vitals_overlay.application.services.feed_connection_service import FeedConnectionService
from vitals_overlay.config.settings import Settings
from vitals_overlay.infrastructure.feeds.glucose_feed import GlucoseFeed

router = APIRouter(prefix="/glucose", tags=["glucose"])


class ConnectGlucoseRequest(BaseModel):
    """Identifiants bruts; la validation métier est faite par le flux."""
    username: str = ""
    password: str = ""
    region: str = "us"


@router.post("/connect")
async def connect_glucose(
    body: ConnectGlucoseRequest,
    service: FeedConnectionService = Depends(get_connection_service),
):
    """
    Connecte le flux glycémique et sauvegarde les identifiants.

    Returns:
        success et région utilisée
    """
    await service.connect_glucose(body.model_dump())
    return {
        "success": True,
        "region": service.glucose_feed.region,
    }


@router.post("/disconnect")
async def disconnect_glucose(
    service: FeedConnectionService = Depends(get_connection_service),
):
    """Coupe le flux glycémique (idempotent)."""
    await service.disconnect_glucose()
    return {"success": True}


@router.get("/status")
async def glucose_status(feed: GlucoseFeed = Depends(get_glucose_feed)):
    return {
        **feed.status(),
        "history": [reading.to_dict() for reading in feed.history],
    }


@router.get("/stream")
async def stream_glucose(
    request: Request,
    feed: GlucoseFeed = Depends(get_glucose_feed),
    settings: Settings = Depends(get_app_settings),
):
    """Canal SSE d'un overlay glycémique."""
    return StreamingResponse(
        feed_event_stream(
            request,
            feed,
            event_type="glucose",
            status_interval=settings.GLUCOSE_STATUS_INTERVAL,
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )

"""
Routes du flux de fréquence cardiaque.

Endpoints:
- POST /api/heartrate/connect - Connecte un widget Stromno
- POST /api/heartrate/disconnect - Coupe le flux
- GET /api/heartrate/status - Statut, valeur courante et historique
- GET /api/heartrate/stream - Flux SSE pour les overlays
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from vitals_overlay.api.dependencies import (
    get_app_settings,
    get_connection_service,
    get_heart_rate_feed,
)
from vitals_overlay.api.sse import SSE_HEADERS, feed_event_stream
from vitals_overlay.application.services.feed_connection_service import FeedConnectionService
from vitals_overlay.config.settings import Settings
from vitals_overlay.infrastructure.feeds.heart_rate_feed import HeartRateFeed

router = APIRouter(prefix="/heartrate", tags=["heartrate"])


class ConnectHeartRateRequest(BaseModel):
    """Requête de connexion d'un widget."""
    model_config = ConfigDict(populate_by_name=True)

    widget_url: str = Field(alias="widgetUrl")


@router.post("/connect")
async def connect_heart_rate(
    body: ConnectHeartRateRequest,
    service: FeedConnectionService = Depends(get_connection_service),
):
    """
    Connecte le flux cardiaque au widget et sauvegarde son URL.

    Les erreurs (URL invalide, widget introuvable) sont traduites
    par le handler DomainError.
    """
    await service.connect_heart_rate(body.widget_url)
    return {
        "success": True,
        "widgetId": service.heart_rate_feed.widget_id,
    }


@router.post("/disconnect")
async def disconnect_heart_rate(
    service: FeedConnectionService = Depends(get_connection_service),
):
    """Coupe le flux cardiaque (idempotent)."""
    await service.disconnect_heart_rate()
    return {"success": True}


@router.get("/status")
async def heart_rate_status(feed: HeartRateFeed = Depends(get_heart_rate_feed)):
    """Statut du flux avec l'historique courant."""
    return {
        **feed.status(),
        "history": [reading.to_dict() for reading in feed.history],
    }


@router.get("/stream")
async def stream_heart_rate(
    request: Request,
    feed: HeartRateFeed = Depends(get_heart_rate_feed),
    settings: Settings = Depends(get_app_settings),
):
    """Canal SSE d'un overlay cardiaque."""
    return StreamingResponse(
        feed_event_stream(
            request,
            feed,
            event_type="heartrate",
            status_interval=settings.HEART_RATE_STATUS_INTERVAL,
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )

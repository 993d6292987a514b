"""
Routes de santé et diagnostic.

Endpoints:
- GET /api/health - Statut de l'API et des flux
"""

from datetime import datetime
from typing import Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from vitals_overlay import __version__
from vitals_overlay.api.dependencies import get_database, get_glucose_feed, get_heart_rate_feed
from vitals_overlay.infrastructure.database.connection import DatabaseConnection
from vitals_overlay.infrastructure.feeds.glucose_feed import GlucoseFeed
from vitals_overlay.infrastructure.feeds.heart_rate_feed import HeartRateFeed

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    """Réponse de santé."""

    status: str
    timestamp: str
    version: str
    services: Dict[str, str]


@router.get(
    "",
    response_model=HealthResponse,
)
async def health_check(
    heart_rate_feed: HeartRateFeed = Depends(get_heart_rate_feed),
    glucose_feed: GlucoseFeed = Depends(get_glucose_feed),
    database: DatabaseConnection = Depends(get_database),
):
    """
    Vérifie l'état de santé de l'API.

    Retourne toujours 200 si l'API fonctionne; l'état des flux est informatif.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now().isoformat(),
        version=__version__,
        services={
            "api": "up",
            "database": "up" if database.is_connected else "not_connected",
            "heart_rate": heart_rate_feed.state.value,
            "glucose": glucose_feed.state.value,
        },
    )

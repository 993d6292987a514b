"""
Injection de dépendances FastAPI.

Les instances (flux, repository, services) sont créées une seule fois par
la racine de composition (create_app) et stockées dans app.state; les
routes les obtiennent via Depends.

UTILISATION:
    @router.get("/status")
    async def status(feed: HeartRateFeed = Depends(get_heart_rate_feed)):
        ...
"""

from fastapi import Request

from vitals_overlay.application.services.feed_connection_service import FeedConnectionService
from vitals_overlay.config.settings import Settings
from vitals_overlay.infrastructure.database.connection import DatabaseConnection
from vitals_overlay.infrastructure.database.repositories.settings_repository import SettingsRepository
from vitals_overlay.infrastructure.feeds.glucose_feed import GlucoseFeed
from vitals_overlay.infrastructure.feeds.heart_rate_feed import HeartRateFeed


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_heart_rate_feed(request: Request) -> HeartRateFeed:
    return request.app.state.heart_rate_feed


def get_glucose_feed(request: Request) -> GlucoseFeed:
    return request.app.state.glucose_feed


def get_connection_service(request: Request) -> FeedConnectionService:
    return request.app.state.connection_service


def get_settings_repository(request: Request) -> SettingsRepository:
    return request.app.state.settings_repository


def get_database(request: Request) -> DatabaseConnection:
    return request.app.state.database

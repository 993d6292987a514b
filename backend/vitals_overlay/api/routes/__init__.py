"""
Routes API.

Expose tous les routeurs pour inclusion dans l'application FastAPI.
"""

from vitals_overlay.api.routes.health import router as health_router
from vitals_overlay.api.routes.heart_rate import router as heart_rate_router
from vitals_overlay.api.routes.glucose import router as glucose_router
from vitals_overlay.api.routes.settings import router as settings_router

__all__ = [
    "health_router",
    "heart_rate_router",
    "glucose_router",
    "settings_router",
]

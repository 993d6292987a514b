"""
Reconnexion automatique au démarrage.

Relit les paramètres sauvegardés et reconnecte chaque flux complet.
Un échec est journalisé et n'interrompt jamais le démarrage.
"""

import logging
from typing import Dict

from vitals_overlay.domain.exceptions import DomainError
from vitals_overlay.infrastructure.database.repositories.settings_repository import SettingsRepository
from vitals_overlay.infrastructure.feeds.glucose_feed import GlucoseFeed
from vitals_overlay.infrastructure.feeds.heart_rate_feed import HeartRateFeed

logger = logging.getLogger(__name__)


async def auto_connect(
    repository: SettingsRepository,
    heart_rate_feed: HeartRateFeed,
    glucose_feed: GlucoseFeed,
) -> Dict[str, bool]:
    """
    Reconnecte les flux sauvegardés.

    Returns:
        {"heart_rate": bool, "glucose": bool} - True si reconnecté
    """
    result = {"heart_rate": False, "glucose": False}
    logger.info("[Auto-Connect] Checking for saved connections...")

    try:
        saved = await repository.load()
    except Exception as e:
        logger.error(f"[Auto-Connect] Failed to read settings: {e}")
        return result

    if saved.has_heart_rate:
        logger.info("[Auto-Connect] Found widget URL, connecting heart rate feed...")
        try:
            result["heart_rate"] = await heart_rate_feed.connect(saved.widget_url)
            if result["heart_rate"]:
                logger.info("[Auto-Connect] Heart rate feed connected")
        except DomainError as e:
            logger.error(f"[Auto-Connect] Heart rate feed failed: {e.message}")

    if saved.has_glucose:
        logger.info("[Auto-Connect] Found Dexcom credentials, connecting glucose feed...")
        try:
            result["glucose"] = await glucose_feed.connect(saved.glucose_credentials())
            if result["glucose"]:
                logger.info("[Auto-Connect] Glucose feed connected")
        except DomainError as e:
            logger.error(f"[Auto-Connect] Glucose feed failed: {e.message}")

    if not saved.has_heart_rate and not saved.has_glucose:
        logger.info("[Auto-Connect] No saved connections found")

    return result

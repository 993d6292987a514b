"""
Service de connexion des flux.

Orchestre les demandes de l'utilisateur:
- connect(): connexion du flux puis sauvegarde des paramètres (uniquement après succès)
- disconnect(): arrêt du flux (les paramètres sauvegardés sont conservés)

UTILISATION:
    service = FeedConnectionService(heart_rate_feed, glucose_feed, repository)
    await service.connect_heart_rate("https://app.stromno.com/widget/view/<uuid>")
"""

import logging
from typing import Any, Optional

from vitals_overlay.domain.exceptions import ConnectionSupersededError
from vitals_overlay.domain.value_objects.credentials import DexcomCredentials
from vitals_overlay.infrastructure.database.repositories.settings_repository import SettingsRepository
from vitals_overlay.infrastructure.feeds.glucose_feed import GlucoseFeed
from vitals_overlay.infrastructure.feeds.heart_rate_feed import HeartRateFeed

logger = logging.getLogger(__name__)


class FeedConnectionService:
    """Point d'entrée des transitions de cycle de vie déclenchées par l'utilisateur."""

    def __init__(
        self,
        heart_rate_feed: HeartRateFeed,
        glucose_feed: GlucoseFeed,
        repository: Optional[SettingsRepository] = None,
    ):
        self.heart_rate_feed = heart_rate_feed
        self.glucose_feed = glucose_feed
        self._repository = repository

    async def connect_heart_rate(self, widget_url: str) -> None:
        """
        Connecte le flux cardiaque et sauvegarde l'URL du widget.

        Raises:
            DomainError: Échec de connexion (rien n'est sauvegardé)
            ConnectionSupersededError: Demande remplacée avant d'aboutir
        """
        if not await self.heart_rate_feed.connect(widget_url):
            raise ConnectionSupersededError(self.heart_rate_feed.name)
        if self._repository is not None:
            await self._repository.save(widget_url=widget_url.strip())

    async def disconnect_heart_rate(self) -> None:
        await self.heart_rate_feed.disconnect()

    async def connect_glucose(self, credentials: Any) -> None:
        """
        Connecte le flux glycémique et sauvegarde les identifiants.

        Raises:
            DomainError: Échec de connexion (rien n'est sauvegardé)
            ConnectionSupersededError: Demande remplacée avant d'aboutir
        """
        validated = DexcomCredentials.parse(credentials)
        if not await self.glucose_feed.connect(validated):
            raise ConnectionSupersededError(self.glucose_feed.name)
        if self._repository is not None:
            await self._repository.save(
                dexcom_username=validated.username,
                dexcom_password=validated.password.get_secret_value(),
                dexcom_region=validated.region,
            )

    async def disconnect_glucose(self) -> None:
        await self.glucose_feed.disconnect()

    async def shutdown(self) -> None:
        """Arrête les deux flux et libère leurs clients."""
        await self.heart_rate_feed.close()
        await self.glucose_feed.close()
        logger.info("Feeds stopped")

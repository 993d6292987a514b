"""
Flux de glycémie - polling Dexcom Share.

CONNEXION (poignée de main en deux étapes):
1. username/password/application id -> account id
2. account id -> session id
3. Une première lecture valide la session avant de déclarer "connected"

POLLING:
- Intervalle fixe (60s par défaut), sans backoff
- Chaque lot est validé enregistrement par enregistrement
- Déduplication par horodatage, insertion chronologique
- La mesure la plus récente du lot devient la valeur courante et est diffusée
- Session expirée: nouvelle poignée de main puis une seule nouvelle lecture

UTILISATION:
    feed = GlucoseFeed()
    await feed.connect({"username": "...", "password": "...", "region": "us"})
    feed.subscribe("viewer-1", queue.put_nowait)
    await feed.disconnect()
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional, Tuple

from vitals_overlay.config.constants import (
    API_TIMEOUT_SECONDS,
    GLUCOSE_HISTORY_SIZE,
    GLUCOSE_POLL_INTERVAL_SECONDS,
)
from vitals_overlay.domain.entities.reading import ConnectionState, Reading
from vitals_overlay.domain.exceptions import DomainError, SessionExpiredError
from vitals_overlay.domain.value_objects.credentials import DexcomCredentials
from vitals_overlay.infrastructure.feeds.base import LiveFeed
from vitals_overlay.infrastructure.providers.dexcom_client import (
    DexcomClient,
    parse_glucose_records,
)

logger = logging.getLogger(__name__)

# Crée un client pour une région ("us" ou "ous")
ClientFactory = Callable[[str], DexcomClient]


class GlucoseFeed(LiveFeed):
    """
    Flux glycémique par polling.

    Attributes:
        poll_interval: Intervalle fixe entre deux lectures (secondes)
    """

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        poll_interval: float = GLUCOSE_POLL_INTERVAL_SECONDS,
        history_size: int = GLUCOSE_HISTORY_SIZE,
        timeout: float = API_TIMEOUT_SECONDS,
    ):
        super().__init__("glucose", history_size)
        self._client_factory = client_factory or (
            lambda region: DexcomClient(region=region, timeout=timeout)
        )
        self.poll_interval = poll_interval
        self._client: Optional[DexcomClient] = None
        self._credentials: Optional[DexcomCredentials] = None
        self._session_id: Optional[str] = None

    @property
    def region(self) -> Optional[str]:
        return self._credentials.region if self._credentials else None

    def status(self):
        status = super().status()
        status["region"] = self.region
        return status

    # =========================================================================
    # CYCLE DE VIE
    # =========================================================================

    async def connect(self, credentials: Any) -> bool:
        """
        Connecte le flux à un compte Dexcom Share.

        Args:
            credentials: DexcomCredentials ou dict username/password/region

        Returns:
            False si une demande plus récente a pris le relais

        Raises:
            InvalidInputError: Identifiants mal formés
            AuthenticationError: Identifiants refusés par Dexcom
            UpstreamError: Première lecture invalide
            TransportError: Erreur réseau
        """
        attempt = self._begin_attempt()

        try:
            validated = DexcomCredentials.parse(credentials)
        except DomainError:
            await self._teardown()
            raise

        await self._teardown()
        if self._is_superseded(attempt):
            return False

        client = self._client_factory(validated.region)
        self._client = client
        self._credentials = validated
        session = self._new_session()
        self._set_state(ConnectionState.CONNECTING)

        try:
            readings, session_id = await self._read_with_recovery(client, validated, None)
        except Exception as e:
            if self._is_superseded(attempt):
                logger.info("Glucose connect superseded by a newer request")
                return False
            if isinstance(e, DomainError):
                logger.warning(f"Glucose connect failed: {e.code} - {e.message}")
            await self._teardown()
            raise

        if self._is_superseded(attempt):
            logger.info("Glucose connect superseded by a newer request")
            return False

        self._session_id = session_id
        self._set_state(ConnectionState.CONNECTED)
        self._ingest(readings)
        self._runner.start(self._poll_loop(session))
        logger.info(f"Glucose feed connected (region: {validated.region})")
        return True

    async def disconnect(self) -> None:
        """Arrête le polling, oublie la session et vide l'historique."""
        self._begin_attempt()
        await self._teardown()
        logger.info("Glucose feed disconnected")

    async def close(self) -> None:
        await self.disconnect()

    async def _teardown(self) -> None:
        self._new_session()
        await self._runner.stop()

        client = self._client
        self._client = None
        self._credentials = None
        self._session_id = None
        self._reset()
        self._set_state(ConnectionState.DISCONNECTED)

        if client is not None:
            await client.close()

    # =========================================================================
    # POLLING
    # =========================================================================

    async def poll_now(self) -> Optional[Reading]:
        """
        Effectue une lecture logique (avec reprise de session si besoin).

        Returns:
            Mesure diffusée, ou None si le lot ne contenait rien d'exploitable

        Raises:
            DomainError: La lecture a échoué après reprise éventuelle
        """
        return await self._poll(self._session)

    async def _poll_loop(self, session: int) -> None:
        """Boucle de polling à intervalle fixe."""
        while self._is_current(session):
            await asyncio.sleep(self.poll_interval)
            if not self._is_current(session):
                return

            try:
                await self._poll(session)
            except asyncio.CancelledError:
                raise
            except DomainError as e:
                logger.warning(f"Dexcom poll failed: {e.code} - {e.message}")
                if self._is_current(session):
                    self._set_state(ConnectionState.RECONNECTING)
            except Exception as e:
                logger.exception(f"Unexpected error in Dexcom polling: {e}")
                if self._is_current(session):
                    self._set_state(ConnectionState.RECONNECTING)

    async def _poll(self, session: int) -> Optional[Reading]:
        client = self._client
        credentials = self._credentials
        if client is None or credentials is None:
            return None

        readings, session_id = await self._read_with_recovery(
            client, credentials, self._session_id
        )

        if not self._is_current(session):
            return None

        self._session_id = session_id
        self._set_state(ConnectionState.CONNECTED)
        return self._ingest(readings)

    async def _handshake(self, client: DexcomClient, credentials: DexcomCredentials) -> str:
        """Poignée de main en deux étapes; retourne un session id."""
        password = credentials.password.get_secret_value()
        account_id = await client.authenticate(credentials.username, password)
        return await client.login(account_id, password)

    async def _read_with_recovery(
        self,
        client: DexcomClient,
        credentials: DexcomCredentials,
        session_id: Optional[str],
    ) -> Tuple[List[Reading], str]:
        """
        Lit le dernier lot; refait la poignée de main une fois si la session a expiré.

        Returns:
            (readings valides, session id utilisé)
        """
        if session_id is None:
            session_id = await self._handshake(client, credentials)

        try:
            records = await client.read_latest(session_id)
        except SessionExpiredError:
            logger.info("Dexcom session expired, re-authenticating...")
            session_id = await self._handshake(client, credentials)
            records = await client.read_latest(session_id)

        return parse_glucose_records(records), session_id

    def _ingest(self, readings: List[Reading]) -> Optional[Reading]:
        """Fusionne un lot dans l'historique et diffuse la mesure la plus récente."""
        if not readings:
            return None

        added = self._history.merge(readings)
        latest = max(readings, key=lambda r: r.timestamp)
        delivered = self._publish(latest)
        logger.debug(
            f"Glucose batch: {len(readings)} valid, {added} new, "
            f"broadcast to {delivered} subscribers"
        )
        return latest

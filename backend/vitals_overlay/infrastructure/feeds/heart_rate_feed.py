"""
Flux de fréquence cardiaque - WebSocket Stromno.

Le widget saisi par l'utilisateur est résolu en URL WebSocket, puis une
connexion persistante reçoit les mesures poussées par le fournisseur.

CYCLE DE VIE:
    connect(url) -> connecting -> connected
    fermeture / erreur -> reconnecting -> (5s) -> connecting -> ...
    disconnect() -> disconnected (annule toute reconnexion en attente)

La reconnexion est inconditionnelle: délai fixe, aucun plafond de tentatives.

UTILISATION:
    feed = HeartRateFeed(StromnoClient())
    await feed.connect("https://app.stromno.com/widget/view/<uuid>")
    unsubscribe = feed.subscribe("viewer-1", queue.put_nowait)
    await feed.disconnect()
"""

import asyncio
import logging
from typing import Any, AsyncContextManager, AsyncIterable, Callable, Optional, Union

import websockets
from websockets.exceptions import WebSocketException

from vitals_overlay.config.constants import (
    HEART_RATE_HISTORY_SIZE,
    HEART_RATE_RECONNECT_DELAY_SECONDS,
    WEBSOCKET_PING_INTERVAL,
)
from vitals_overlay.domain.entities.reading import ConnectionState
from vitals_overlay.domain.exceptions import DomainError, InvalidInputError
from vitals_overlay.domain.value_objects.widget_url import parse_widget_url
from vitals_overlay.infrastructure.feeds.base import LiveFeed
from vitals_overlay.infrastructure.providers.stromno_client import (
    StromnoClient,
    parse_heart_rate_message,
)

logger = logging.getLogger(__name__)

# Ouvre une connexion message par message (async with ... as ws: async for msg in ws)
Connector = Callable[[str], AsyncContextManager[AsyncIterable[Union[str, bytes]]]]


def websocket_connector(url: str) -> Any:
    """Connecteur par défaut basé sur websockets."""
    return websockets.connect(
        url,
        ping_interval=WEBSOCKET_PING_INTERVAL,
        ping_timeout=10,
    )


class HeartRateFeed(LiveFeed):
    """
    Flux push de fréquence cardiaque.

    Attributes:
        reconnect_delay: Délai fixe avant chaque reconnexion (secondes)
    """

    def __init__(
        self,
        client: Optional[StromnoClient] = None,
        connector: Optional[Connector] = None,
        reconnect_delay: float = HEART_RATE_RECONNECT_DELAY_SECONDS,
        history_size: int = HEART_RATE_HISTORY_SIZE,
    ):
        super().__init__("heart_rate", history_size)
        self._client = client or StromnoClient()
        self._connector = connector or websocket_connector
        self.reconnect_delay = reconnect_delay
        self._endpoint: Optional[str] = None
        self._widget_id: Optional[str] = None

    @property
    def widget_id(self) -> Optional[str]:
        return self._widget_id

    @property
    def endpoint(self) -> Optional[str]:
        """URL WebSocket configurée (conservée pendant les reconnexions)."""
        return self._endpoint

    def status(self):
        status = super().status()
        status["widgetId"] = self._widget_id
        return status

    # =========================================================================
    # CYCLE DE VIE
    # =========================================================================

    async def connect(self, widget_url: str) -> bool:
        """
        Connecte le flux à un widget Stromno.

        Args:
            widget_url: URL du widget contenant un UUID

        Returns:
            False si une demande plus récente a pris le relais

        Raises:
            InvalidInputError: Aucun UUID dans l'URL
            UpstreamError: La résolution du widget n'a pas renvoyé d'URL WebSocket
            TransportError: Erreur réseau pendant la résolution
        """
        attempt = self._begin_attempt()

        try:
            widget_id = parse_widget_url(widget_url)
            if widget_id is None:
                raise InvalidInputError(
                    field="widget_url",
                    reason="aucun identifiant de widget (UUID) dans l'URL",
                )
            endpoint = await self._client.resolve_endpoint(widget_id)
        except DomainError as e:
            logger.warning(f"Heart rate connect failed: {e.code}")
            if not self._is_superseded(attempt):
                await self._teardown()
            raise

        if self._is_superseded(attempt):
            logger.info("Heart rate connect superseded by a newer request")
            return False

        if endpoint != self._endpoint:
            self._reset()

        self._endpoint = endpoint
        self._widget_id = widget_id
        session = self._new_session()
        self._set_state(ConnectionState.CONNECTING)
        self._runner.start(self._run(endpoint, session))
        logger.info(f"Heart rate feed started for widget {widget_id}")
        return True

    async def disconnect(self) -> None:
        """Coupe la connexion, annule toute reconnexion et vide l'historique."""
        self._begin_attempt()
        await self._teardown()

    async def close(self) -> None:
        """Déconnecte et libère le client HTTP."""
        await self.disconnect()
        await self._client.close()

    async def _teardown(self) -> None:
        self._new_session()
        await self._runner.stop()
        self._endpoint = None
        self._widget_id = None
        self._reset()
        self._set_state(ConnectionState.DISCONNECTED)

    # =========================================================================
    # BOUCLE DE CONNEXION
    # =========================================================================

    async def _run(self, endpoint: str, session: int) -> None:
        """Maintient la connexion jusqu'à l'invalidation de la session."""
        while self._is_current(session):
            try:
                async with self._connector(endpoint) as websocket:
                    if not self._is_current(session):
                        return
                    self._set_state(ConnectionState.CONNECTED)
                    logger.info("Connected to Stromno WebSocket")

                    async for raw in websocket:
                        self._handle_frame(raw, session)

                logger.info("Stromno WebSocket closed")

            except asyncio.CancelledError:
                raise
            except (WebSocketException, OSError, asyncio.TimeoutError) as e:
                logger.warning(f"Stromno WebSocket error: {e!r}")
            except Exception as e:
                logger.exception(f"Unexpected error in Stromno connection: {e}")

            if not self._is_current(session):
                return

            self._set_state(ConnectionState.RECONNECTING)
            logger.info(f"Reconnecting to Stromno in {self.reconnect_delay}s")
            await asyncio.sleep(self.reconnect_delay)

            if self._is_current(session):
                self._set_state(ConnectionState.CONNECTING)

    def _handle_frame(self, raw: Union[str, bytes], session: int) -> None:
        """Normalise une trame, l'ajoute à l'historique et la diffuse."""
        if not self._is_current(session):
            return

        reading = parse_heart_rate_message(raw)
        if reading is None:
            return

        self._history.append(reading)
        self._publish(reading)

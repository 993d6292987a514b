"""
Client Stromno - résolution de widget et normalisation des messages.

Ce module gère:
- La résolution d'un identifiant de widget en URL WebSocket (JSON-RPC)
- La validation des messages poussés par le WebSocket
- La conversion en Reading

FORMAT DES MESSAGES:
    {"timestamp": 1700000000000, "data": {"heartRate": 72}}

UTILISATION:
    client = StromnoClient()
    ws_url = await client.resolve_endpoint("123e4567-e89b-12d3-a456-426614174000")
    reading = parse_heart_rate_message(raw_frame)
"""

import json
import logging
import math
import uuid
from typing import Optional, Union

import httpx
from pydantic import BaseModel, ValidationError

from vitals_overlay.config.constants import API_TIMEOUT_SECONDS, STROMNO_RPC_URL
from vitals_overlay.domain.entities.reading import Reading, from_epoch_ms, utc_now
from vitals_overlay.domain.exceptions import TransportError, UpstreamError

logger = logging.getLogger(__name__)

SERVICE_NAME = "stromno"


# =============================================================================
# SCHÉMAS
# =============================================================================

class _WidgetResult(BaseModel):
    ramielUrl: str


class WidgetConfigResponse(BaseModel):
    """Réponse JSON-RPC de getWidget."""
    result: _WidgetResult


class _HeartRatePayload(BaseModel):
    heartRate: float


class StromnoMessage(BaseModel):
    """
    Message poussé par le WebSocket Stromno.

    La fréquence est normalement dans data.heartRate; certaines trames
    la portent directement à la racine.
    """
    timestamp: Optional[float] = None
    data: Optional[_HeartRatePayload] = None
    heartRate: Optional[float] = None

    @property
    def heart_rate(self) -> Optional[float]:
        if self.data is not None:
            return self.data.heartRate
        return self.heartRate


def parse_heart_rate_message(raw: Union[str, bytes]) -> Optional[Reading]:
    """
    Convertit une trame WebSocket en Reading.

    Une trame mal formée ou sans fréquence cardiaque est ignorée (None).
    Sans timestamp dans le message, l'heure d'arrivée est utilisée.

    Args:
        raw: Trame texte ou binaire

    Returns:
        Reading ou None si la trame est inexploitable
    """
    try:
        message = StromnoMessage.model_validate(json.loads(raw))
    except (ValueError, TypeError) as e:
        # ValidationError et JSONDecodeError héritent de ValueError
        logger.warning(f"Dropping malformed Stromno frame: {e.__class__.__name__}")
        return None

    heart_rate = message.heart_rate
    if heart_rate is None or not math.isfinite(heart_rate) or heart_rate <= 0:
        logger.debug("Dropping Stromno frame without heart rate")
        return None

    timestamp = utc_now()
    if message.timestamp:
        try:
            timestamp = from_epoch_ms(message.timestamp)
        except (OverflowError, OSError, ValueError):
            logger.warning(f"Dropping Stromno frame with out-of-range timestamp: {message.timestamp!r}")
            return None

    return Reading(value=heart_rate, timestamp=timestamp)


# =============================================================================
# CLIENT
# =============================================================================

class StromnoClient:
    """
    Client de l'API publique Stromno.

    Attributes:
        rpc_url: URL de l'API JSON-RPC
    """

    def __init__(
        self,
        rpc_url: str = STROMNO_RPC_URL,
        timeout: float = API_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            rpc_url: URL de l'API JSON-RPC
            timeout: Timeout des requêtes HTTP
            transport: Transport httpx optionnel (tests)
        """
        self.rpc_url = rpc_url
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Retourne le client HTTP (créé à la demande)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Ferme le client HTTP."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def resolve_endpoint(self, widget_id: str) -> str:
        """
        Résout un identifiant de widget en URL WebSocket.

        Args:
            widget_id: UUID extrait de l'URL du widget

        Returns:
            URL du WebSocket (champ result.ramielUrl)

        Raises:
            TransportError: Erreur réseau
            UpstreamError: Statut HTTP en erreur ou réponse sans URL
        """
        client = await self._get_client()
        payload = {
            "method": "getWidget",
            "jsonrpc": "2.0",
            "params": {"widgetId": widget_id},
            "id": str(uuid.uuid4()),
        }

        try:
            response = await client.post(self.rpc_url, json=payload)
        except httpx.HTTPError as e:
            raise TransportError(SERVICE_NAME, str(e) or e.__class__.__name__) from e

        if response.status_code >= 400:
            raise UpstreamError(
                SERVICE_NAME,
                f"getWidget a échoué (HTTP {response.status_code})",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(SERVICE_NAME, "réponse non JSON") from e

        try:
            parsed = WidgetConfigResponse.model_validate(data)
        except ValidationError:
            reason = "configuration de widget sans URL WebSocket"
            if isinstance(data, dict) and isinstance(data.get("error"), dict):
                reason = data["error"].get("message") or reason
            raise UpstreamError(SERVICE_NAME, reason)

        endpoint = parsed.result.ramielUrl.strip()
        if not endpoint:
            raise UpstreamError(SERVICE_NAME, "configuration de widget sans URL WebSocket")

        logger.info(f"Resolved Stromno widget {widget_id}")
        return endpoint

"""
Client Dexcom Share - poignée de main et lecture des glycémies.

Ce module gère:
- L'authentification en deux étapes (account id puis session id)
- La lecture des dernières mesures d'une session
- La validation enregistrement par enregistrement et la conversion en Reading

FORMAT D'UN ENREGISTREMENT:
    {"WT": "Date(1640907228000)", "ST": "...", "DT": "...",
     "Value": 112, "Trend": "Flat"}

UTILISATION:
    client = DexcomClient(region="us")
    account_id = await client.authenticate("user", "secret")
    session_id = await client.login(account_id, "secret")
    records = await client.read_latest(session_id)
    readings = parse_glucose_records(records)
"""

import logging
import math
import re
from datetime import datetime
from typing import Any, Iterable, List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from vitals_overlay.config.constants import (
    API_TIMEOUT_SECONDS,
    DEXCOM_APPLICATION_ID,
    DEXCOM_BASE_URLS,
    DEXCOM_READ_MAX_COUNT,
    DEXCOM_READ_MINUTES,
)
from vitals_overlay.domain.entities.reading import Reading, from_epoch_ms, map_dexcom_trend
from vitals_overlay.domain.exceptions import (
    AuthenticationError,
    InvalidInputError,
    SessionExpiredError,
    TransportError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "dexcom"

DEXCOM_DATE_PATTERN = re.compile(r"Date\((\d+)")


# =============================================================================
# NORMALISATION
# =============================================================================

class DexcomGlucoseRecord(BaseModel):
    """Enregistrement brut renvoyé par ReadPublisherLatestGlucoseValues."""
    WT: str
    ST: str
    DT: str
    Value: float
    Trend: str


def parse_dexcom_timestamp(value: str) -> Optional[datetime]:
    """
    Parse un horodatage Dexcom "Date(1640907228000)" (suffixe de fuseau toléré).

    Returns:
        datetime UTC ou None si le format n'est pas reconnu ou hors limites
    """
    match = DEXCOM_DATE_PATTERN.search(value)
    if not match:
        return None
    try:
        return from_epoch_ms(int(match.group(1)))
    except (OverflowError, OSError, ValueError):
        return None


def parse_glucose_records(records: Iterable[Any]) -> List[Reading]:
    """
    Valide un lot d'enregistrements Dexcom.

    Chaque enregistrement invalide est ignoré individuellement,
    les autres sont conservés.

    Args:
        records: Enregistrements bruts

    Returns:
        Readings valides, dans l'ordre du lot
    """
    readings: List[Reading] = []

    for record in records:
        try:
            parsed = DexcomGlucoseRecord.model_validate(record)
        except ValidationError as e:
            logger.warning(f"Skipping invalid Dexcom record ({e.error_count()} errors)")
            continue

        timestamp = parse_dexcom_timestamp(parsed.WT)
        if timestamp is None:
            logger.warning(f"Skipping Dexcom record with unreadable WT: {parsed.WT!r}")
            continue

        if not math.isfinite(parsed.Value):
            logger.warning("Skipping Dexcom record with non-finite value")
            continue

        readings.append(Reading(
            value=parsed.Value,
            timestamp=timestamp,
            trend=map_dexcom_trend(parsed.Trend),
            vendor_trend=parsed.Trend,
        ))

    return readings


# =============================================================================
# CLIENT
# =============================================================================

class DexcomClient:
    """
    Client de l'API Dexcom Share.

    La région sélectionne l'une des deux URL de base fixes.
    """

    def __init__(
        self,
        region: str = "us",
        timeout: float = API_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            region: "us" ou "ous"
            timeout: Timeout des requêtes HTTP
            transport: Transport httpx optionnel (tests)

        Raises:
            InvalidInputError: Région inconnue
        """
        if region not in DEXCOM_BASE_URLS:
            raise InvalidInputError(field="region", reason=f"région inconnue '{region}'")

        self.region = region
        self.base_url = DEXCOM_BASE_URLS[region]
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Retourne le client HTTP (créé à la demande)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Ferme le client HTTP."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post(self, path: str, **kwargs) -> httpx.Response:
        client = await self._get_client()
        try:
            return await client.post(f"{self.base_url}/{path}", **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(SERVICE_NAME, str(e) or e.__class__.__name__) from e

    async def _post_handshake(self, path: str, body: dict, step: str) -> str:
        """Étape de poignée de main: la réponse attendue est une chaîne JSON."""
        response = await self._post(path, json=body)

        if response.status_code >= 400:
            raise AuthenticationError(SERVICE_NAME, response.text.strip() or f"HTTP {response.status_code}")

        try:
            value = response.json()
        except ValueError:
            value = None

        if not isinstance(value, str) or not value:
            raise AuthenticationError(SERVICE_NAME, f"{step}: réponse inattendue")

        return value

    async def authenticate(self, username: str, password: str) -> str:
        """
        Étape 1: échange username/password contre un account id.

        Raises:
            AuthenticationError: Identifiants refusés ou réponse inattendue
            TransportError: Erreur réseau
        """
        return await self._post_handshake(
            "General/AuthenticatePublisherAccount",
            {
                "accountName": username,
                "applicationId": DEXCOM_APPLICATION_ID,
                "password": password,
            },
            step="account id",
        )

    async def login(self, account_id: str, password: str) -> str:
        """
        Étape 2: échange l'account id contre un session id.

        Raises:
            AuthenticationError: Connexion refusée ou réponse inattendue
            TransportError: Erreur réseau
        """
        return await self._post_handshake(
            "General/LoginPublisherAccountById",
            {
                "accountId": account_id,
                "applicationId": DEXCOM_APPLICATION_ID,
                "password": password,
            },
            step="session id",
        )

    async def read_latest(
        self,
        session_id: str,
        minutes: int = DEXCOM_READ_MINUTES,
        max_count: int = DEXCOM_READ_MAX_COUNT,
    ) -> List[Any]:
        """
        Lit les dernières mesures d'une session.

        Returns:
            Liste brute des enregistrements (non validés)

        Raises:
            SessionExpiredError: La session n'est plus valide (HTTP 500)
            UpstreamError: Autre statut en erreur ou réponse qui n'est pas une liste
            TransportError: Erreur réseau
        """
        response = await self._post(
            "Publisher/ReadPublisherLatestGlucoseValues",
            params={
                "sessionId": session_id,
                "minutes": str(minutes),
                "maxCount": str(max_count),
            },
        )

        if response.status_code == 500:
            reason = "Session invalide ou expirée"
            try:
                body = response.json()
                if isinstance(body, dict) and body.get("Code"):
                    reason = f"{reason} ({body['Code']})"
            except ValueError:
                pass
            raise SessionExpiredError(SERVICE_NAME, reason)

        if response.status_code >= 400:
            raise UpstreamError(
                SERVICE_NAME,
                f"lecture des glycémies échouée (HTTP {response.status_code})",
                status_code=response.status_code,
            )

        try:
            records = response.json()
        except ValueError as e:
            raise UpstreamError(SERVICE_NAME, "réponse non JSON") from e

        if not isinstance(records, list):
            raise UpstreamError(SERVICE_NAME, "la réponse n'est pas une liste")

        return records

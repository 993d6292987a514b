"""
Entités des flux biométriques.

Une Reading est une mesure normalisée (fréquence cardiaque ou glycémie)
créée à la réception des données fournisseur, jamais modifiée ensuite.

UTILISATION:
    from vitals_overlay.domain.entities.reading import Reading, map_dexcom_trend

    reading = Reading(value=72, timestamp=utc_now())
    trend = map_dexcom_trend("DoubleDown")  # GlucoseTrend.FALLING_FAST
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class GlucoseTrend(str, Enum):
    """Tendance glycémique normalisée (six valeurs)."""
    RISING_FAST = "rising_fast"
    RISING = "rising"
    STABLE = "stable"
    FALLING = "falling"
    FALLING_FAST = "falling_fast"
    UNKNOWN = "unknown"


class ConnectionState(str, Enum):
    """État de connexion d'un flux."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


# Vocabulaire Dexcom -> tendance normalisée
DEXCOM_TREND_MAP: Dict[str, GlucoseTrend] = {
    "None": GlucoseTrend.UNKNOWN,
    "DoubleUp": GlucoseTrend.RISING_FAST,
    "SingleUp": GlucoseTrend.RISING,
    "FortyFiveUp": GlucoseTrend.RISING,
    "Flat": GlucoseTrend.STABLE,
    "FortyFiveDown": GlucoseTrend.FALLING,
    "SingleDown": GlucoseTrend.FALLING,
    "DoubleDown": GlucoseTrend.FALLING_FAST,
    "NotComputable": GlucoseTrend.UNKNOWN,
    "RateOutOfRange": GlucoseTrend.UNKNOWN,
}


def map_dexcom_trend(trend: Optional[str]) -> GlucoseTrend:
    """
    Convertit une tendance Dexcom en GlucoseTrend.

    Toute chaîne inconnue donne GlucoseTrend.UNKNOWN.

    Examples:
        map_dexcom_trend("DoubleDown") → GlucoseTrend.FALLING_FAST
        map_dexcom_trend("Foo") → GlucoseTrend.UNKNOWN
    """
    if trend is None:
        return GlucoseTrend.UNKNOWN
    return DEXCOM_TREND_MAP.get(trend, GlucoseTrend.UNKNOWN)


def utc_now() -> datetime:
    """Retourne l'instant courant en UTC."""
    return datetime.now(timezone.utc)


def from_epoch_ms(timestamp_ms: float) -> datetime:
    """Convertit un timestamp Unix en millisecondes en datetime UTC."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


def to_epoch_ms(moment: datetime) -> int:
    """Convertit un datetime en timestamp Unix en millisecondes."""
    return int(round(moment.timestamp() * 1000))


@dataclass(frozen=True)
class Reading:
    """
    Mesure normalisée d'un flux.

    Attributes:
        value: Valeur numérique (bpm ou mg/dL)
        timestamp: Horodatage UTC de la mesure
        trend: Tendance normalisée (glycémie uniquement)
        vendor_trend: Tendance brute du fournisseur (glycémie uniquement)
    """
    value: float
    timestamp: datetime
    trend: Optional[GlucoseTrend] = None
    vendor_trend: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convertit en dict pour les événements SSE."""
        data: Dict[str, Any] = {
            "value": self.value,
            "timestamp": to_epoch_ms(self.timestamp),
        }
        if self.trend is not None:
            data["trend"] = self.trend.value
            data["vendorTrend"] = self.vendor_trend
        return data

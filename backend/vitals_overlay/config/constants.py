"""
Constantes globales de l'application Vitals Overlay.

Ce fichier centralise les valeurs fixes des protocoles fournisseurs
et les limites des flux en direct.

RÈGLES:
1. Nommer les constantes en SCREAMING_SNAKE_CASE
2. Grouper par catégorie avec des commentaires
3. Documenter l'unité (secondes, minutes, entrées...)

UTILISATION:
    from vitals_overlay.config.constants import HEART_RATE_HISTORY_SIZE
"""

import re
from typing import Final

# =============================================================================
# HISTORIQUES
# =============================================================================

HEART_RATE_HISTORY_SIZE: Final[int] = 360
"""Capacité de l'historique cardiaque (~30 minutes à une mesure toutes les 5s)."""

GLUCOSE_HISTORY_SIZE: Final[int] = 72
"""Capacité de l'historique glycémique (~6 heures à une mesure toutes les 5 min)."""


# =============================================================================
# CYCLE DE VIE DES FLUX (secondes)
# =============================================================================

HEART_RATE_RECONNECT_DELAY_SECONDS: Final[float] = 5.0
"""Délai fixe avant chaque tentative de reconnexion du WebSocket Stromno."""

GLUCOSE_POLL_INTERVAL_SECONDS: Final[float] = 60.0
"""Intervalle fixe entre deux lectures Dexcom."""

API_TIMEOUT_SECONDS: Final[float] = 30.0
"""Timeout par défaut pour les appels HTTP fournisseurs."""

HEART_RATE_STATUS_INTERVAL_SECONDS: Final[float] = 5.0
"""Intervalle des événements SSE 'status' pour les overlays cardiaques."""

GLUCOSE_STATUS_INTERVAL_SECONDS: Final[float] = 30.0
"""Intervalle des événements SSE 'status' pour les overlays glycémiques."""

VIEWER_QUEUE_SIZE: Final[int] = 100
"""Nombre maximum de mesures en attente par spectateur SSE."""


# =============================================================================
# STROMNO (FRÉQUENCE CARDIAQUE)
# =============================================================================

STROMNO_RPC_URL: Final[str] = "https://api.stromno.com/v1/api/public/rpc"
"""API JSON-RPC publique qui résout un widget en URL WebSocket."""

WIDGET_ID_PATTERN: Final[re.Pattern] = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
"""UUID canonique identifiant un widget dans le chemin de l'URL."""

WEBSOCKET_PING_INTERVAL: Final[float] = 30.0
"""Intervalle des pings WebSocket (secondes)."""


# =============================================================================
# DEXCOM SHARE (GLYCÉMIE)
# =============================================================================

DEXCOM_APPLICATION_ID: Final[str] = "d8665ade-9673-4e27-9ff6-92db4ce13d13"
"""Identifiant d'application Dexcom Share."""

DEXCOM_BASE_URLS: Final[dict[str, str]] = {
    "us": "https://share2.dexcom.com/ShareWebServices/Services",
    "ous": "https://shareous1.dexcom.com/ShareWebServices/Services",
}
"""URL de base par région (us = États-Unis, ous = hors États-Unis)."""

DEXCOM_READ_MINUTES: Final[int] = 60
"""Fenêtre de lecture des dernières mesures (minutes)."""

DEXCOM_READ_MAX_COUNT: Final[int] = 12
"""Nombre maximum de mesures par lecture."""

"""
Paramètres du serveur Vitals Overlay.

Tout est surchargeable par variable d'environnement ou fichier .env:
adresse d'écoute, base de paramètres, clé de chiffrement, cadences des flux
et reconnexion automatique au démarrage. Les valeurs par défaut viennent
de config/constants.py.

UTILISATION:
    from vitals_overlay.config.settings import get_settings
    print(get_settings().GLUCOSE_POLL_INTERVAL)
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from vitals_overlay.config.constants import (
    API_TIMEOUT_SECONDS,
    GLUCOSE_POLL_INTERVAL_SECONDS,
    GLUCOSE_STATUS_INTERVAL_SECONDS,
    HEART_RATE_RECONNECT_DELAY_SECONDS,
    HEART_RATE_STATUS_INTERVAL_SECONDS,
    STROMNO_RPC_URL,
)


class Settings(BaseSettings):
    """
    Variables reconnues par le serveur.

    Priorité: environnement du processus, puis .env, puis valeur par défaut.
    """

    # ==========================================================================
    # APPLICATION
    # ==========================================================================
    APP_NAME: str = "Vitals Overlay"
    DEBUG: bool = Field(default=False, description="Active le mode debug")
    LOG_LEVEL: str = Field(default="INFO", description="Niveau de log")

    # ==========================================================================
    # SERVEUR
    # ==========================================================================
    HOST: str = Field(default="0.0.0.0", description="Adresse d'écoute")
    PORT: int = Field(default=8000, description="Port d'écoute")
    CORS_ORIGINS: str = Field(
        default="*",
        description="Origines CORS autorisées (séparées par des virgules)"
    )

    # ==========================================================================
    # PERSISTANCE
    # ==========================================================================
    DATABASE_PATH: str = Field(
        default="data/settings.db",
        description="Chemin de la base SQLite des paramètres de connexion"
    )
    ENCRYPTION_KEY: Optional[str] = Field(
        default=None,
        description="Clé Fernet pour chiffrer le mot de passe Dexcom stocké"
    )
    AUTO_CONNECT: bool = Field(
        default=True,
        description="Reconnecte les flux sauvegardés au démarrage"
    )

    # ==========================================================================
    # FLUX EN DIRECT
    # ==========================================================================
    STROMNO_RPC_URL: str = Field(
        default=STROMNO_RPC_URL,
        description="API JSON-RPC de résolution des widgets Stromno"
    )
    HEART_RATE_RECONNECT_DELAY: float = Field(
        default=HEART_RATE_RECONNECT_DELAY_SECONDS,
        gt=0,
        description="Délai fixe avant reconnexion du WebSocket (secondes)"
    )
    GLUCOSE_POLL_INTERVAL: float = Field(
        default=GLUCOSE_POLL_INTERVAL_SECONDS,
        gt=0,
        description="Intervalle fixe entre deux lectures Dexcom (secondes)"
    )
    HTTP_TIMEOUT: float = Field(
        default=API_TIMEOUT_SECONDS,
        gt=0,
        description="Timeout des appels HTTP vers les fournisseurs"
    )
    HEART_RATE_STATUS_INTERVAL: float = Field(
        default=HEART_RATE_STATUS_INTERVAL_SECONDS,
        gt=0,
        description="Intervalle des événements SSE 'status' (fréquence cardiaque)"
    )
    GLUCOSE_STATUS_INTERVAL: float = Field(
        default=GLUCOSE_STATUS_INTERVAL_SECONDS,
        gt=0,
        description="Intervalle des événements SSE 'status' (glycémie)"
    )

    # ==========================================================================
    # VALIDATION
    # ==========================================================================

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Valide le niveau de log."""
        allowed = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL doit être parmi {allowed}")
        return v.upper()

    # ==========================================================================
    # PROPRIÉTÉS CALCULÉES
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        """Retourne la liste des origines CORS autorisées."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    class Config:
        """Configuration Pydantic Settings."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Settings partagés par tout le processus (lus une seule fois)."""
    return Settings()

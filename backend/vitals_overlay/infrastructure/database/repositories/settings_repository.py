"""
Repository des paramètres de connexion.

Stocke, sous forme clé/valeur, les paramètres des flux sauvegardés après
une connexion réussie et relus au démarrage pour la reconnexion automatique.

CLÉS:
- widget_url: URL du widget Stromno
- dexcom_username, dexcom_password, dexcom_region: identifiants Dexcom

Le mot de passe est chiffré si un PasswordCipher est fourni.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from vitals_overlay.domain.exceptions import InvalidInputError
from vitals_overlay.infrastructure.database.connection import DatabaseConnection
from vitals_overlay.infrastructure.persistence.encryption import CipherError, PasswordCipher

logger = logging.getLogger(__name__)

SETTINGS_KEYS = ("widget_url", "dexcom_username", "dexcom_password", "dexcom_region")
SECRET_KEYS = ("dexcom_password",)


@dataclass(frozen=True)
class StoredSettings:
    """Paramètres sauvegardés (None si absent)."""
    widget_url: Optional[str] = None
    dexcom_username: Optional[str] = None
    dexcom_password: Optional[str] = None
    dexcom_region: Optional[str] = None

    @property
    def has_heart_rate(self) -> bool:
        return bool(self.widget_url)

    @property
    def has_glucose(self) -> bool:
        return bool(self.dexcom_username and self.dexcom_password and self.dexcom_region)

    def glucose_credentials(self) -> Dict[str, Any]:
        return {
            "username": self.dexcom_username,
            "password": self.dexcom_password,
            "region": self.dexcom_region,
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """Vue exposée par l'API: le mot de passe n'est jamais renvoyé."""
        return {
            "widgetUrl": self.widget_url,
            "dexcomUsername": self.dexcom_username,
            "dexcomRegion": self.dexcom_region,
            "hasDexcomPassword": bool(self.dexcom_password),
        }


class SettingsRepository:
    """Accès clé/valeur à la table settings."""

    table_name = "settings"

    def __init__(
        self,
        db: DatabaseConnection,
        cipher: Optional[PasswordCipher] = None,
    ):
        self._db = db
        self._cipher = cipher

    async def load(self) -> StoredSettings:
        """Lit tous les paramètres sauvegardés."""
        placeholders = ", ".join("?" for _ in SETTINGS_KEYS)
        rows = await self._db.fetch_all(
            f"SELECT key, value FROM {self.table_name} WHERE key IN ({placeholders})",
            SETTINGS_KEYS,
        )

        values: Dict[str, Optional[str]] = {key: None for key in SETTINGS_KEYS}
        for row in rows:
            values[row["key"]] = self._decode(row["key"], row["value"])

        return StoredSettings(**values)

    async def save(self, **updates: Optional[str]) -> StoredSettings:
        """
        Met à jour les paramètres fournis (les valeurs None sont ignorées).

        Raises:
            InvalidInputError: Clé inconnue
        """
        unknown = set(updates) - set(SETTINGS_KEYS)
        if unknown:
            raise InvalidInputError(field=sorted(unknown)[0], reason="paramètre inconnu")

        entries = [
            (key, self._encode(key, value))
            for key, value in updates.items()
            if value is not None
        ]

        if entries:
            async with self._db.transaction() as conn:
                await conn.executemany(
                    f"""
                    INSERT INTO {self.table_name} (key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    entries,
                )
            logger.info(f"Settings saved: {', '.join(key for key, _ in entries)}")

        return await self.load()

    async def clear(self) -> None:
        """Supprime tous les paramètres sauvegardés."""
        async with self._db.transaction() as conn:
            await conn.execute(f"DELETE FROM {self.table_name}")
        logger.info("Settings cleared")

    def _encode(self, key: str, value: str) -> str:
        if key in SECRET_KEYS and self._cipher is not None:
            return self._cipher.seal(value)
        return value

    def _decode(self, key: str, value: Optional[str]) -> Optional[str]:
        if value is None or key not in SECRET_KEYS or self._cipher is None:
            return value
        try:
            return self._cipher.open(value)
        except CipherError:
            logger.warning(f"Stored {key} cannot be decrypted, ignoring it")
            return None

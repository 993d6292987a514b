"""
Chiffrement du mot de passe Dexcom sauvegardé.

Fernet (AES-128-CBC + HMAC) avec une clé fournie par ENCRYPTION_KEY.
Sans clé, aucun chiffreur n'est créé et le repository stocke la valeur telle quelle.

UTILISATION:
    cipher = PasswordCipher.from_key(settings.ENCRYPTION_KEY)  # None si pas de clé
    token = cipher.seal("secret")
    cipher.open(token)  # "secret"

Générer une clé:
    python -c "from vitals_overlay.infrastructure.persistence.encryption import PasswordCipher; print(PasswordCipher.generate_key())"
"""

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class CipherError(Exception):
    """Clé invalide ou valeur impossible à déchiffrer."""


class PasswordCipher:
    """Chiffre et déchiffre les secrets stockés dans la table settings."""

    def __init__(self, key: str):
        """
        Raises:
            CipherError: La clé n'est pas une clé Fernet valide
        """
        try:
            self._fernet = Fernet(key)
        except (TypeError, ValueError) as e:
            raise CipherError("ENCRYPTION_KEY n'est pas une clé Fernet valide") from e

    @classmethod
    def from_key(cls, key: Optional[str]) -> Optional["PasswordCipher"]:
        """Retourne un chiffreur, ou None si aucune clé n'est configurée."""
        if not key:
            return None
        return cls(key)

    def seal(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def open(self, token: str) -> str:
        """
        Raises:
            CipherError: Clé différente de celle du chiffrement ou valeur corrompue
        """
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            raise CipherError("valeur chiffrée illisible avec la clé courante") from e

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("ascii")

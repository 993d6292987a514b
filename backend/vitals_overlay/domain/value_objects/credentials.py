"""
Value Object DexcomCredentials - identifiants Dexcom Share validés.

RÈGLES DE VALIDATION:
    - username et password non vides (espaces ignorés)
    - region parmi "us" et "ous" (insensible à la casse)

Le mot de passe est un SecretStr: il n'apparaît jamais dans repr() ni dans les logs.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, SecretStr, ValidationError, field_validator

from vitals_overlay.domain.exceptions import InvalidInputError


class DexcomCredentials(BaseModel):
    """
    Paramètres de connexion au flux glycémique.

    Attributs:
        username: Nom du compte Dexcom Share
        password: Mot de passe (SecretStr)
        region: "us" ou "ous"
    """

    model_config = ConfigDict(frozen=True)

    username: str
    password: SecretStr
    region: Literal["us", "ous"] = "us"

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("ne peut pas être vide")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("ne peut pas être vide")
        return v

    @field_validator("region", mode="before")
    @classmethod
    def normalize_region(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @classmethod
    def parse(cls, data: Any) -> "DexcomCredentials":
        """
        Valide des identifiants bruts.

        Args:
            data: DexcomCredentials déjà validé ou dict

        Raises:
            InvalidInputError: Si un champ est manquant ou invalide
        """
        if isinstance(data, cls):
            return data

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error.get("loc", ())) or "credentials"
            raise InvalidInputError(field=field, reason=error.get("msg", "invalide"))

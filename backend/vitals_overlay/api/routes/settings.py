"""
Routes des paramètres sauvegardés.

Endpoints:
- GET /api/settings - Paramètres sauvegardés (sans mot de passe)
- POST /api/settings - Mise à jour partielle
- DELETE /api/settings - Efface tous les paramètres
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from vitals_overlay.api.dependencies import get_settings_repository
from vitals_overlay.config.constants import DEXCOM_BASE_URLS
from vitals_overlay.domain.exceptions import InvalidInputError
from vitals_overlay.domain.value_objects.widget_url import parse_widget_url
from vitals_overlay.infrastructure.database.repositories.settings_repository import SettingsRepository

router = APIRouter(prefix="/settings", tags=["settings"])


class SettingsUpdateRequest(BaseModel):
    """Mise à jour partielle; les champs absents sont conservés."""
    model_config = ConfigDict(populate_by_name=True)

    widget_url: Optional[str] = Field(default=None, alias="widgetUrl")
    dexcom_username: Optional[str] = Field(default=None, alias="dexcomUsername")
    dexcom_password: Optional[str] = Field(default=None, alias="dexcomPassword")
    dexcom_region: Optional[str] = Field(default=None, alias="dexcomRegion")


@router.get("")
async def get_saved_settings(
    repository: SettingsRepository = Depends(get_settings_repository),
):
    saved = await repository.load()
    return saved.to_public_dict()


@router.post("")
async def update_settings(
    body: SettingsUpdateRequest,
    repository: SettingsRepository = Depends(get_settings_repository),
):
    """
    Met à jour les paramètres sauvegardés.

    Raises:
        InvalidInputError: URL de widget sans UUID ou région inconnue
    """
    if body.widget_url is not None and parse_widget_url(body.widget_url) is None:
        raise InvalidInputError(field="widgetUrl", reason="aucun identifiant de widget (UUID) dans l'URL")

    region = body.dexcom_region.strip().lower() if body.dexcom_region is not None else None
    if region is not None and region not in DEXCOM_BASE_URLS:
        raise InvalidInputError(field="dexcomRegion", reason=f"région inconnue '{body.dexcom_region}'")

    saved = await repository.save(
        widget_url=body.widget_url.strip() if body.widget_url is not None else None,
        dexcom_username=body.dexcom_username,
        dexcom_password=body.dexcom_password,
        dexcom_region=region,
    )
    return saved.to_public_dict()


@router.delete("")
async def clear_settings(
    repository: SettingsRepository = Depends(get_settings_repository),
):
    await repository.clear()
    return {"success": True}

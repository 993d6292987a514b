"""Repositories SQLite."""

from vitals_overlay.infrastructure.database.repositories.settings_repository import (
    SettingsRepository,
    StoredSettings,
)

__all__ = ["SettingsRepository", "StoredSettings"]

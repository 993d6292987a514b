"""
Persistance SQLite des paramètres de connexion.

UTILISATION:
    db = DatabaseConnection("data/settings.db")
    await run_migrations(db)
    repository = SettingsRepository(db)
"""

from vitals_overlay.infrastructure.database.connection import DatabaseConnection
from vitals_overlay.infrastructure.database.migrations import run_migrations
from vitals_overlay.infrastructure.database.repositories.settings_repository import (
    SettingsRepository,
    StoredSettings,
)

__all__ = [
    "DatabaseConnection",
    "run_migrations",
    "SettingsRepository",
    "StoredSettings",
]

"""
Schéma de la base de paramètres.

Chaque migration est un script SQL numéroté, appliqué une seule fois au
démarrage. La table _migrations garde la trace des versions déjà passées.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vitals_overlay.infrastructure.database.connection import DatabaseConnection

logger = logging.getLogger(__name__)


TRACKING_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS _migrations (
    version INTEGER PRIMARY KEY,
    description TEXT NOT NULL,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

# (version, description, script), dans l'ordre d'application
MIGRATIONS: list[tuple[int, str, str]] = [
    (
        1,
        "settings key/value store",
        """
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """,
    ),
]


async def run_migrations(db: "DatabaseConnection") -> int:
    """
    Applique les migrations manquantes.

    Returns:
        Nombre de migrations appliquées (0 si le schéma est à jour)
    """
    await db.execute_script(TRACKING_TABLE_SQL)

    rows = await db.fetch_all("SELECT version FROM _migrations")
    applied = {row["version"] for row in rows}

    count = 0
    for version, description, script in MIGRATIONS:
        if version in applied:
            continue
        await db.execute_script(script)
        async with db.transaction() as conn:
            await conn.execute(
                "INSERT INTO _migrations (version, description) VALUES (?, ?)",
                (version, description),
            )
        logger.info(f"Migration {version} applied: {description}")
        count += 1

    return count

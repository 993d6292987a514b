"""
Connexion SQLite async pour la base de paramètres.

Une seule connexion aiosqlite est partagée par le processus. Elle est
ouverte paresseusement au premier accès et fermée à l'arrêt de l'application.

UTILISATION:
    db = DatabaseConnection("data/settings.db")
    async with db.transaction() as conn:
        await conn.execute("DELETE FROM settings")
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional, Union

import aiosqlite

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

# Attente max sur un verrou avant "database is locked" (ms)
BUSY_TIMEOUT_MS = 5000


class DatabaseConnection:
    """Connexion paresseuse à la base SQLite des paramètres."""

    def __init__(self, db_path: Union[str, Path]):
        """
        Args:
            db_path: Fichier de la base, ou ":memory:" pour les tests
        """
        self._db_path: Union[str, Path] = (
            MEMORY_PATH if str(db_path) == MEMORY_PATH else Path(db_path)
        )
        self._connection: Optional[aiosqlite.Connection] = None

    @property
    def db_path(self) -> Union[str, Path]:
        return self._db_path

    @property
    def in_memory(self) -> bool:
        return self._db_path == MEMORY_PATH

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> aiosqlite.Connection:
        """Retourne la connexion ouverte, en l'ouvrant au besoin."""
        if self._connection is not None:
            return self._connection

        if not self.in_memory:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)

        connection = await aiosqlite.connect(self._db_path)
        connection.row_factory = aiosqlite.Row
        # WAL n'a pas de sens pour une base en mémoire
        if not self.in_memory:
            await connection.execute("PRAGMA journal_mode = WAL")
        await connection.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")

        self._connection = connection
        logger.info(f"Settings database opened: {self._db_path}")
        return connection

    async def disconnect(self) -> None:
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        await connection.close()
        logger.info("Settings database closed")

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        """
        Regroupe des écritures: commit en sortie, rollback si une exception
        remonte (l'exception est relancée).
        """
        connection = await self.connect()
        try:
            yield connection
        except Exception as e:
            await connection.rollback()
            logger.error(f"Settings transaction rolled back: {e}")
            raise
        await connection.commit()

    async def execute_script(self, script: str) -> None:
        connection = await self.connect()
        await connection.executescript(script)
        await connection.commit()

    async def fetch_one(self, query: str, parameters: tuple = ()) -> Optional[aiosqlite.Row]:
        connection = await self.connect()
        async with connection.execute(query, parameters) as cursor:
            return await cursor.fetchone()

    async def fetch_all(self, query: str, parameters: tuple = ()) -> list[aiosqlite.Row]:
        connection = await self.connect()
        async with connection.execute(query, parameters) as cursor:
            return list(await cursor.fetchall())

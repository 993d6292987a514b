"""
Tâche de fond annulable, une par flux.

Démarrer une nouvelle tâche annule toujours la précédente: il ne peut
jamais y avoir deux boucles de reconnexion ou de polling concurrentes
pour le même flux.
"""

import asyncio
import logging
from typing import Coroutine, Optional

logger = logging.getLogger(__name__)


class TaskHandle:
    """
    Poignée sur la tâche de fond d'un flux.

    Attributes:
        name: Nom de la tâche (pour les logs)
    """

    def __init__(self, name: str):
        self.name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        """True si une tâche est en cours."""
        return self._task is not None and not self._task.done()

    def start(self, coro: Coroutine) -> asyncio.Task:
        """
        Lance une tâche en remplaçant la précédente.

        La précédente est annulée immédiatement (sans attendre sa fin).
        """
        previous = self._task
        if previous is not None and not previous.done():
            previous.cancel()

        self._task = asyncio.create_task(coro, name=self.name)
        return self._task

    async def stop(self) -> None:
        """Annule la tâche en cours et attend sa fin."""
        task = self._task
        self._task = None

        if task is None or task.done():
            return

        task.cancel()

        # Appelé depuis la tâche elle-même: l'annulation suffit
        if task is asyncio.current_task():
            return

        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"Task {self.name} ended with error: {e}")

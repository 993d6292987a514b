"""
Interface commune des flux en direct.

Chaque flux (fréquence cardiaque, glycémie) possède:
- un état de connexion
- une valeur courante et un historique borné
- un registre d'abonnés
- une tâche de fond annulable (reconnexion ou polling)

ARCHITECTURE:
- Un propriétaire unique par flux: toutes les mutations (valeur courante,
  historique, abonnés) ont lieu dans la boucle asyncio, sans await entre
  la lecture et l'écriture de l'état.
- Un compteur de session invalide toute livraison issue d'une session
  remplacée par un connect() ou un disconnect() ultérieur.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from vitals_overlay.domain.entities.reading import ConnectionState, Reading
from vitals_overlay.infrastructure.feeds.history import ReadingHistory
from vitals_overlay.infrastructure.feeds.subscribers import DeliverCallback, SubscriberRegistry
from vitals_overlay.infrastructure.feeds.task_handle import TaskHandle

logger = logging.getLogger(__name__)


class LiveFeed(ABC):
    """
    Flux de mesures en direct.

    Attributes:
        name: Nom du flux (heart_rate, glucose)
    """

    def __init__(self, name: str, history_size: int):
        self.name = name
        self._state = ConnectionState.DISCONNECTED
        self._current: Optional[Reading] = None
        self._history = ReadingHistory(history_size)
        self._subscribers = SubscriberRegistry(name)
        self._runner = TaskHandle(f"{name}-feed")
        self._session = 0
        self._attempt = 0

    # =========================================================================
    # LECTURES
    # =========================================================================

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def current_value(self) -> Optional[Reading]:
        """Dernière mesure normalisée (immuable)."""
        return self._current

    @property
    def history(self) -> List[Reading]:
        """Copie de l'historique, ordre chronologique."""
        return self._history.snapshot()

    @property
    def subscriber_count(self) -> int:
        return self._subscribers.count

    def status(self) -> Dict[str, Any]:
        """Statut courant pour l'API et les événements SSE."""
        return {
            "feed": self.name,
            "state": self._state.value,
            "isConnected": self.is_connected,
            "current": self._current.to_dict() if self._current else None,
            "subscriberCount": self.subscriber_count,
        }

    def snapshot(self) -> Dict[str, Any]:
        """Instantané initial envoyé à un spectateur qui se connecte."""
        return {
            "isConnected": self.is_connected,
            "current": self._current.to_dict() if self._current else None,
            "history": [reading.to_dict() for reading in self._history.snapshot()],
        }

    # =========================================================================
    # ABONNEMENTS
    # =========================================================================

    def subscribe(self, subscriber_id: str, deliver: DeliverCallback) -> Callable[[], None]:
        """
        Abonne un spectateur.

        Si une valeur courante existe, elle est livrée immédiatement.

        Returns:
            Fonction de désabonnement
        """
        unsubscribe = self._subscribers.add(subscriber_id, deliver)
        if self._current is not None:
            self._subscribers.deliver_to(subscriber_id, self._current)
        return unsubscribe

    # =========================================================================
    # CYCLE DE VIE
    # =========================================================================

    @abstractmethod
    async def connect(self, params: Any) -> bool:
        """
        Valide les paramètres et établit la connexion.

        Returns:
            True si cette demande a établi la session courante, False si un
            connect() ou disconnect() plus récent l'a remplacée entre-temps
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Coupe la connexion; idempotent."""

    def _begin_attempt(self) -> int:
        """Enregistre une demande de cycle de vie (connect ou disconnect)."""
        self._attempt += 1
        return self._attempt

    def _is_superseded(self, attempt: int) -> bool:
        """True si un connect() ou disconnect() plus récent a été demandé."""
        return attempt != self._attempt

    def _new_session(self) -> int:
        """Invalide la session courante et retourne l'identifiant de la suivante."""
        self._session += 1
        return self._session

    def _is_current(self, session: int) -> bool:
        return session == self._session

    def _set_state(self, state: ConnectionState) -> None:
        if state != self._state:
            logger.info(f"[{self.name}] {self._state.value} -> {state.value}")
            self._state = state

    def _reset(self) -> None:
        """Oublie la valeur courante et l'historique."""
        self._current = None
        self._history.clear()

    def _publish(self, reading: Reading) -> int:
        """Définit la valeur courante et la diffuse aux abonnés."""
        self._current = reading
        return self._subscribers.broadcast(reading)

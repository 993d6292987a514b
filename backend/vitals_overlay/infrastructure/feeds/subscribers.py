"""
Registre des abonnés d'un flux.

Chaque spectateur (canal SSE) s'enregistre avec un identifiant et un
callback de livraison. Le broadcast livre la mesure à tous les abonnés
présents; un échec de livraison est journalisé sans interrompre les autres
livraisons ni retirer l'abonné.

ARCHITECTURE:
- Pattern Observer
- Les callbacks sont synchrones et non bloquants (ex: asyncio.Queue.put_nowait)
- Toutes les mutations ont lieu dans la boucle asyncio du processus

UTILISATION:
    registry = SubscriberRegistry("heart_rate")
    unsubscribe = registry.add("viewer-1", queue.put_nowait)
    registry.broadcast(reading)
    unsubscribe()
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict

from vitals_overlay.domain.entities.reading import Reading

logger = logging.getLogger(__name__)

# Callback de livraison d'une mesure
DeliverCallback = Callable[[Reading], None]


@dataclass
class Subscriber:
    """
    Abonné à un flux.

    Attributes:
        id: Identifiant opaque du spectateur
        deliver: Callback de livraison
    """
    id: str
    deliver: DeliverCallback


class SubscriberRegistry:
    """Correspondance identifiant -> callback de livraison."""

    def __init__(self, name: str):
        """
        Args:
            name: Nom du flux (pour les logs)
        """
        self.name = name
        self._subscribers: Dict[str, Subscriber] = {}

    @property
    def count(self) -> int:
        """Nombre d'abonnés actifs."""
        return len(self._subscribers)

    def __contains__(self, subscriber_id: str) -> bool:
        return subscriber_id in self._subscribers

    def add(self, subscriber_id: str, deliver: DeliverCallback) -> Callable[[], None]:
        """
        Enregistre un abonné (remplace un abonné de même identifiant).

        Returns:
            Fonction de désabonnement idempotente
        """
        subscriber = Subscriber(id=subscriber_id, deliver=deliver)
        self._subscribers[subscriber_id] = subscriber
        logger.info(f"[{self.name}] Subscriber {subscriber_id} added (total: {self.count})")

        def unsubscribe() -> None:
            # Ne retire que l'enregistrement créé par cet appel
            if self._subscribers.get(subscriber_id) is subscriber:
                self.remove(subscriber_id)

        return unsubscribe

    def remove(self, subscriber_id: str) -> bool:
        """
        Retire un abonné.

        Returns:
            True si l'abonné était enregistré
        """
        if self._subscribers.pop(subscriber_id, None) is None:
            return False
        logger.info(f"[{self.name}] Subscriber {subscriber_id} removed (total: {self.count})")
        return True

    def deliver_to(self, subscriber_id: str, reading: Reading) -> bool:
        """Livre une mesure à un seul abonné."""
        subscriber = self._subscribers.get(subscriber_id)
        if subscriber is None:
            return False
        return self._deliver(subscriber, reading)

    def broadcast(self, reading: Reading) -> int:
        """
        Livre une mesure à tous les abonnés.

        Returns:
            Nombre d'abonnés livrés avec succès
        """
        delivered = 0
        for subscriber in list(self._subscribers.values()):
            if self._deliver(subscriber, reading):
                delivered += 1
        return delivered

    def _deliver(self, subscriber: Subscriber, reading: Reading) -> bool:
        try:
            subscriber.deliver(reading)
            return True
        except Exception as e:
            logger.warning(f"[{self.name}] Failed to deliver to {subscriber.id}: {e!r}")
            return False

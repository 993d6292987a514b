"""
Historique borné des mesures d'un flux.

Les mesures sont conservées en ordre chronologique croissant. Au-delà
de la capacité, les plus anciennes sont évincées (FIFO). Les lecteurs
reçoivent toujours une copie.
"""

from bisect import insort
from typing import Iterable, List, Optional

from vitals_overlay.domain.entities.reading import Reading


class ReadingHistory:
    """
    Historique à capacité fixe.

    Attributes:
        capacity: Nombre maximum de mesures conservées
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._items: List[Reading] = []

    def __len__(self) -> int:
        return len(self._items)

    @property
    def latest(self) -> Optional[Reading]:
        """Mesure la plus récente ou None."""
        return self._items[-1] if self._items else None

    def append(self, reading: Reading) -> None:
        """
        Ajoute une mesure poussée en direct et évince la plus ancienne si plein.

        Une mesure horodatée avant la dernière est insérée à sa place.
        """
        insort(self._items, reading, key=lambda r: r.timestamp)
        self._trim()

    def merge(self, readings: Iterable[Reading]) -> int:
        """
        Fusionne un lot en ignorant les horodatages déjà présents.

        Le lot peut être désordonné ou chevaucher une lecture précédente.

        Returns:
            Nombre de mesures ajoutées (avant éviction)
        """
        known = {item.timestamp for item in self._items}
        added = 0

        for reading in sorted(readings, key=lambda r: r.timestamp):
            if reading.timestamp in known:
                continue
            known.add(reading.timestamp)
            self._items.append(reading)
            added += 1

        if added:
            self._items.sort(key=lambda r: r.timestamp)
            self._trim()

        return added

    def snapshot(self) -> List[Reading]:
        """Copie de l'historique (les Reading sont immuables)."""
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def _trim(self) -> None:
        overflow = len(self._items) - self.capacity
        if overflow > 0:
            del self._items[:overflow]

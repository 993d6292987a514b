"""Entités du domaine."""

from vitals_overlay.domain.entities.reading import (
    ConnectionState,
    GlucoseTrend,
    Reading,
    map_dexcom_trend,
)

__all__ = [
    "ConnectionState",
    "GlucoseTrend",
    "Reading",
    "map_dexcom_trend",
]
